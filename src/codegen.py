"""LLM code generators for the scheduling validation workflow.

Both generators follow the same pattern: a fixed system prompt that spells
out the target function's name, signature and allowed libraries, plus a
data payload (the rule list or the raw customer inquiry).  The model's text
is returned verbatim; structural checks happen in :mod:`src.executor`
right before the code is run.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from src.config import ANTHROPIC_API_KEY, CODEGEN_MODEL_NAME
from src.prompts import PARAMETERS_EXTRACTION_SYSTEM_PROMPT, VALIDATION_METHOD_SYSTEM_PROMPT
from src.services.metrics import metrics

logger = logging.getLogger(__name__)


def build_codegen_llm() -> ChatAnthropic:
    """Build the LLM used for code generation."""
    return ChatAnthropic(
        model=CODEGEN_MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.0,  # same rules in, same code out
        max_tokens=4096,
    )


def message_text(message: BaseMessage) -> str:
    """Return the plain text of a chat model response.

    Anthropic responses may carry a list of content blocks instead of a
    string; only the text blocks are kept.
    """
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def _invoke(llm: BaseChatModel, operation: str, system_prompt: str, payload: str) -> str:
    messages = [SystemMessage(content=system_prompt), HumanMessage(content=payload)]
    with metrics.track("anthropic", operation):
        response = llm.invoke(messages)
    return message_text(response)


def generate_validation_method(llm: BaseChatModel, rules: Sequence[str]) -> str:
    """Ask the model for ``validateCustomerSchedulingParameters`` implementing *rules*."""
    payload = json.dumps({"validationRules": list(rules)})
    source = _invoke(llm, "generate_validation_method", VALIDATION_METHOD_SYSTEM_PROMPT, payload)
    logger.debug("Generated validation method (%d chars) for %d rules", len(source), len(rules))
    return source


def generate_parameters_extraction_method(llm: BaseChatModel, customer_inquiry: str) -> str:
    """Ask the model for ``getCustomerSchedulingParameters`` parsing *customer_inquiry*."""
    source = _invoke(
        llm,
        "generate_parameters_extraction_method",
        PARAMETERS_EXTRACTION_SYSTEM_PROMPT,
        customer_inquiry,
    )
    logger.debug("Generated parameters extraction method (%d chars)", len(source))
    return source
