"""Shared LLM utility functions for retry, fence-stripping, and JSON parsing.

This module provides:
- strip_json_fences: Remove markdown code fences from LLM output
- parse_json_response: Parse JSON from LLM response after stripping fences
- retry_on_overload: tenacity policy retrying Claude 529 OverloadedError
- response_text: Join the text blocks of an Anthropic message
- strict_json_schema: JSON schema for a pydantic model with extra properties rejected
- validate_structured: Validate a payload into a schema or raise MalformedStructuredOutput
"""

import json
from typing import Any

import structlog
from anthropic._exceptions import OverloadedError
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from arena.core.exceptions import MalformedStructuredOutput

logger = structlog.get_logger(__name__)


def strip_json_fences(content: str) -> str:
    """Remove markdown code fences wrapping JSON output."""
    content = content.strip()
    if content.startswith("```"):
        first_newline = content.find("\n")
        if first_newline != -1:
            content = content[first_newline + 1 :]
        if content.endswith("```"):
            content = content[:-3].rstrip()
    return content


def parse_json_response(content: str) -> dict | list:
    """Parse JSON from LLM response, stripping fences first."""
    return json.loads(strip_json_fences(content))


# Retries up to 3 times with exponential backoff (2s, 4s, 8s max 30s).
# Only OverloadedError (529) is retried; all other exceptions propagate immediately.
retry_on_overload = retry(
    retry=retry_if_exception_type(OverloadedError),
    stop=stop_after_attempt(4),
    wait=wait_exponential(multiplier=2, min=2, max=30),
    reraise=True,
    before_sleep=lambda rs: logger.warning(
        "claude_overloaded_retrying",
        attempt=rs.attempt_number,
        sleep_seconds=rs.next_action.sleep,
    ),
)


def response_text(response: Any) -> str:
    """Concatenate every text block of an Anthropic Message.

    Web-search responses interleave ``server_tool_use`` and result blocks with
    text, so only blocks of type ``text`` are kept.
    """
    parts = [block.text for block in response.content if getattr(block, "type", None) == "text"]
    return "".join(parts).strip()


def _forbid_additional_properties(node: Any) -> None:
    if isinstance(node, dict):
        if node.get("type") == "object" and "properties" in node:
            node["additionalProperties"] = False
        for value in node.values():
            _forbid_additional_properties(value)
    elif isinstance(node, list):
        for item in node:
            _forbid_additional_properties(item)


def strict_json_schema(schema: type[BaseModel]) -> dict:
    """Build a tool ``input_schema`` from a pydantic model.

    Every object in the schema (including ``$defs``) rejects properties that
    the model does not declare.
    """
    json_schema = schema.model_json_schema()
    _forbid_additional_properties(json_schema)
    return json_schema


def validate_structured(schema: type[BaseModel], payload: Any) -> Any:
    """Validate a structured payload, raising MalformedStructuredOutput on mismatch."""
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as exc:
        raise MalformedStructuredOutput(schema.__name__, json.dumps(payload, default=str), str(exc)) from exc
