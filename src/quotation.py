"""LangGraph workflow that drafts a cleaning-service quotation.

  get_user_input ─► get_pricing_tables ─► generate_quotation ─► END

``get_pricing_tables`` runs a pricing subgraph that asks the LLM for up to
two matching service names and then fans out one pricing-table request per
service with ``Send``; the per-service results are merged by a reducer.
"""

from __future__ import annotations

import logging
import uuid
from typing import Annotated, Any

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage
from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, START, StateGraph
from langgraph.types import Send
from typing_extensions import TypedDict

from src.codegen import message_text
from src.config import ANTHROPIC_API_KEY, FAST_MODEL_NAME, QDRANT_COLLECTION
from src.prompts import PRICING_TABLE_PROMPT, SERVICES_PROMPT
from src.services.document_store import DocumentStore, exclude_scheduling_rules
from src.services.metrics import metrics

logger = logging.getLogger(__name__)

KNOWLEDGE_BASE_TOP_K = 2
MAX_SERVICES = 2


def merge_unique(existing: list[str], new: list[str]) -> list[str]:
    """Append the items of *new* not already present, keeping first-seen order."""
    merged = list(existing)
    for item in new:
        if item not in merged:
            merged.append(item)
    return merged


def merge_dicts(existing: dict[str, str], new: dict[str, str]) -> dict[str, str]:
    return {**existing, **new}


# ── State schemas ────────────────────────────────────────────────────


class QuotationState(TypedDict):
    user_input: str
    knowledge_base: str
    pricing_tables: Annotated[dict[str, str], merge_dicts]
    final_quotation: str
    status: str


class PricingState(TypedDict):
    user_input: str
    knowledge_base: str
    services: Annotated[list[str], merge_unique]
    prices: Annotated[dict[str, str], merge_dicts]


def build_pricing_llm() -> ChatAnthropic:
    """Build the cheap model used for service names and demo price tables."""
    return ChatAnthropic(
        model=FAST_MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.3,
        max_tokens=1024,
    )


def parse_service_names(text: str) -> list[str]:
    """Split a comma-separated reply into at most ``MAX_SERVICES`` names."""
    names = [name.strip().strip(".") for name in text.split(",")]
    return [name for name in names if name][:MAX_SERVICES]


# ── Pricing subgraph ─────────────────────────────────────────────────


def _make_generate_services_node(llm: BaseChatModel):
    def generate_services_node(state: PricingState) -> dict:
        prompt = SERVICES_PROMPT.format(
            user_input=state.get("user_input", ""),
            knowledge_base=state.get("knowledge_base", "") or "(nothing on file)",
        )
        with metrics.track("anthropic", "generate_services"):
            response = llm.invoke([HumanMessage(content=prompt)])
        services = parse_service_names(message_text(response))
        logger.info("generate_services: %s", services)
        return {"services": services}

    return generate_services_node


def _make_pricing_table_node(llm: BaseChatModel):
    def pricing_table_node(payload: dict) -> dict:
        service_name = payload["service_name"]
        with metrics.track("anthropic", "generate_pricing_table"):
            response = llm.invoke([HumanMessage(content=PRICING_TABLE_PROMPT.format(service_name=service_name))])
        return {"prices": {service_name: message_text(response)}}

    return pricing_table_node


def route_to_pricing_tables(state: PricingState) -> list[Send]:
    """Fan out one pricing-table request per service."""
    return [Send("generate_pricing_table", {"service_name": s}) for s in state.get("services", [])]


def _build_pricing_subgraph(llm: BaseChatModel):
    graph = StateGraph(PricingState)
    graph.add_node("generate_services", _make_generate_services_node(llm))
    graph.add_node("generate_pricing_table", _make_pricing_table_node(llm))
    graph.add_edge(START, "generate_services")
    graph.add_conditional_edges("generate_services", route_to_pricing_tables, ["generate_pricing_table"])
    graph.add_edge("generate_pricing_table", END)
    return graph.compile()


# ── Main graph nodes ─────────────────────────────────────────────────


def _make_user_input_node(store: DocumentStore, collection: str):
    def user_input_node(state: QuotationState) -> dict:
        user_input = state.get("user_input", "")
        documents = store.similarity_search(
            user_input, KNOWLEDGE_BASE_TOP_K, collection, exclude_scheduling_rules(),
        )
        return {
            "knowledge_base": "\n".join(doc.page_content for doc in documents),
            "status": "received",
        }

    return user_input_node


def _make_pricing_tables_node(subgraph):
    def pricing_tables_node(state: QuotationState) -> dict:
        result = subgraph.invoke(
            {
                "user_input": state.get("user_input", ""),
                "knowledge_base": state.get("knowledge_base", ""),
                "services": [],
                "prices": {},
            }
        )
        return {"pricing_tables": result.get("prices", {}), "status": "pricing_complete"}

    return pricing_tables_node


def generate_quotation(state: QuotationState) -> dict:
    """Render the collected pricing tables as the final quotation text."""
    details = "\n".join(
        f"{service}: {table}" for service, table in state.get("pricing_tables", {}).items()
    )
    return {"final_quotation": f"Quotation Details:\n{details}", "status": "completed"}


# ── Graph assembly ───────────────────────────────────────────────────


def create_quotation_graph(
    store: DocumentStore,
    llm: BaseChatModel | None = None,
    *,
    collection: str = QDRANT_COLLECTION,
):
    """Build and compile the quotation graph (checkpointed per thread)."""
    llm = llm or build_pricing_llm()

    graph = StateGraph(QuotationState)
    graph.add_node("get_user_input", _make_user_input_node(store, collection))
    graph.add_node("get_pricing_tables", _make_pricing_tables_node(_build_pricing_subgraph(llm)))
    graph.add_node("generate_quotation", generate_quotation)
    graph.add_edge(START, "get_user_input")
    graph.add_edge("get_user_input", "get_pricing_tables")
    graph.add_edge("get_pricing_tables", "generate_quotation")
    graph.add_edge("generate_quotation", END)

    return graph.compile(checkpointer=MemorySaver())


def run_quotation(graph, user_input: str, thread_id: str | None = None) -> dict[str, Any]:
    """Draft a quotation for *user_input*; returns input, status and quotation text."""
    thread_id = thread_id or f"thread_{uuid.uuid4()}"
    result = graph.invoke(
        {
            "user_input": user_input,
            "knowledge_base": "",
            "pricing_tables": {},
            "final_quotation": "",
            "status": "pending",
        },
        config={"configurable": {"thread_id": thread_id}},
    )
    return {
        "user_input": result["user_input"],
        "status": result["status"],
        "final_quotation": result["final_quotation"],
    }
