"""LangGraph workflow that validates a scheduling request against company rules.

Architecture:
  Two independent branches start together and meet at an explicit join:

    START ─┬─ transform_company_rules ─┐
           │   (subgraph: extract_rules → generate_validation_code)
           │                           ├─► validate_scheduling_request ─► send_user_reply ─► END
           └─ transform_user_input ────┘

  * **extract_rules** scrolls the document store for every document flagged
    ``date_time_scheduling_rule``.
  * **generate_validation_code** turns the rule texts into
    ``validateCustomerSchedulingParameters`` via the LLM.
  * **transform_user_input** turns the free-text inquiry into
    ``getCustomerSchedulingParameters`` via the LLM.
  * **validate_scheduling_request** runs both snippets in the Piston
    sandbox (see :mod:`src.executor`).
  * **send_user_reply** maps ``validation_passed`` to the final status.

  The two branches write disjoint state keys.  Nothing is retried: any
  exception aborts the run and reaches the caller of ``graph.invoke``.

  Collaborators (document store, sandbox, LLM) are passed in explicitly by
  :func:`create_scheduling_graph` and captured by the node closures.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from langchain_core.language_models import BaseChatModel
from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from src.codegen import (
    build_codegen_llm,
    generate_parameters_extraction_method,
    generate_validation_method,
)
from src.config import QDRANT_COLLECTION
from src.executor import execute_validation
from src.services.document_store import DocumentStore, scheduling_rules_only
from src.services.sandbox_client import PistonClient

logger = logging.getLogger(__name__)


class SchedulingStatus(str, Enum):
    PENDING = "pending"
    VALIDATION_PASSED = "validation_passed"
    VALIDATION_FAILED = "validation_failed"


# ── State schemas ────────────────────────────────────────────────────


class SchedulingState(TypedDict):
    """The state that flows through the scheduling graph.

    Fields are filled in stage by stage and never reset within a run.
    """

    customer_inquiry: str
    scheduling_rules: list[str]
    python_validation_method: str
    python_parameters_extraction_method: str
    validation_errors: list[str]
    validation_passed: bool
    status: SchedulingStatus


class CompanyRulesState(TypedDict):
    """State of the rules subgraph; a strict subset of :class:`SchedulingState`."""

    scheduling_rules: list[str]
    python_validation_method: str


def new_scheduling_state(customer_inquiry: str = "") -> SchedulingState:
    """Return a fresh state with every field at its default."""
    return {
        "customer_inquiry": customer_inquiry,
        "scheduling_rules": [],
        "python_validation_method": "",
        "python_parameters_extraction_method": "",
        "validation_errors": [],
        "validation_passed": False,
        "status": SchedulingStatus.PENDING,
    }


# ── Rule extraction ──────────────────────────────────────────────────


def extract_scheduling_rules(store: DocumentStore, collection: str) -> list[str]:
    """Return the text of every scheduling-rule document, in scroll order."""
    documents = store.scroll(collection, scheduling_rules_only())
    return [doc.page_content for doc in documents]


def _make_extract_rules_node(store: DocumentStore, collection: str):
    def extract_rules_node(state: CompanyRulesState) -> dict:
        logger.debug("extract_rules: start (collection=%s)", collection)
        try:
            rules = extract_scheduling_rules(store, collection)
        except Exception as exc:
            logger.error("extract_rules: failed: %s", exc)
            raise
        logger.info("extract_rules: found %d scheduling rules", len(rules))
        return {"scheduling_rules": rules}

    return extract_rules_node


def _make_validation_code_node(llm: BaseChatModel):
    def validation_code_node(state: CompanyRulesState) -> dict:
        logger.debug("generate_validation_code: start")
        source = generate_validation_method(llm, state.get("scheduling_rules", []))
        logger.debug("generate_validation_code: end\n%s", source)
        return {"python_validation_method": source}

    return validation_code_node


def _build_company_rules_subgraph(store: DocumentStore, llm: BaseChatModel, collection: str):
    graph = StateGraph(CompanyRulesState)
    graph.add_node("extract_rules", _make_extract_rules_node(store, collection))
    graph.add_node("generate_validation_code", _make_validation_code_node(llm))
    graph.add_edge(START, "extract_rules")
    graph.add_edge("extract_rules", "generate_validation_code")
    graph.add_edge("generate_validation_code", END)
    return graph.compile()


def _make_company_rules_node(subgraph):
    """Run the rules subgraph and hand back only the keys it owns."""

    def company_rules_node(state: SchedulingState) -> dict:
        result = subgraph.invoke({"scheduling_rules": [], "python_validation_method": ""})
        return {
            "scheduling_rules": result["scheduling_rules"],
            "python_validation_method": result["python_validation_method"],
        }

    return company_rules_node


# ── Inquiry branch ───────────────────────────────────────────────────


def _make_user_input_node(llm: BaseChatModel):
    def user_input_node(state: SchedulingState) -> dict:
        logger.debug("transform_user_input: start")
        source = generate_parameters_extraction_method(llm, state.get("customer_inquiry", ""))
        logger.debug("transform_user_input: end\n%s", source)
        return {"python_parameters_extraction_method": source}

    return user_input_node


# ── Join: sandbox validation ─────────────────────────────────────────


def _make_validation_node(sandbox: PistonClient):
    def validation_node(state: SchedulingState) -> dict:
        logger.debug("validate_scheduling_request: start")
        outcome = execute_validation(
            sandbox,
            state.get("python_validation_method", ""),
            state.get("python_parameters_extraction_method", ""),
        )
        logger.info(
            "validate_scheduling_request: passed=%s errors=%d",
            outcome["validation_passed"], len(outcome["validation_errors"]),
        )
        return outcome

    return validation_node


def send_user_reply(state: SchedulingState) -> dict:
    """Set the terminal status from ``validation_passed``."""
    if state.get("validation_passed"):
        status = SchedulingStatus.VALIDATION_PASSED
    else:
        status = SchedulingStatus.VALIDATION_FAILED
    logger.info("send_user_reply: %s", status.value)
    return {"status": status}


# ── Graph assembly ───────────────────────────────────────────────────


def create_scheduling_graph(
    store: DocumentStore,
    sandbox: PistonClient,
    llm: BaseChatModel | None = None,
    *,
    collection: str = QDRANT_COLLECTION,
):
    """Build and compile the scheduling validation graph.

    Returns a compiled graph that can be invoked with:
        graph.invoke(new_scheduling_state("Book me in next Tuesday at 10am"))
    """
    llm = llm or build_codegen_llm()

    graph = StateGraph(SchedulingState)
    graph.add_node(
        "transform_company_rules",
        _make_company_rules_node(_build_company_rules_subgraph(store, llm, collection)),
    )
    graph.add_node("transform_user_input", _make_user_input_node(llm))
    graph.add_node("validate_scheduling_request", _make_validation_node(sandbox))
    graph.add_node("send_user_reply", send_user_reply)

    graph.add_edge(START, "transform_company_rules")
    graph.add_edge(START, "transform_user_input")
    # Join: waits for both branches before running the sandbox.
    graph.add_edge(["transform_company_rules", "transform_user_input"], "validate_scheduling_request")
    graph.add_edge("validate_scheduling_request", "send_user_reply")
    graph.add_edge("send_user_reply", END)

    return graph.compile()


def run_scheduling_validation(graph, customer_inquiry: str) -> dict[str, Any]:
    """Validate *customer_inquiry* and return ``{"status", "validation_errors"}``."""
    result = graph.invoke(new_scheduling_state(customer_inquiry))
    return {
        "status": SchedulingStatus(result["status"]).value,
        "validation_errors": list(result.get("validation_errors", [])),
    }
