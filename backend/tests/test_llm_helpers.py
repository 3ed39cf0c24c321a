"""Tests for LLM helper utilities."""
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from anthropic._exceptions import OverloadedError
from tenacity import wait_none

from arena.core.exceptions import MalformedStructuredOutput
from arena.llm.helpers import (
    parse_json_response,
    response_text,
    retry_on_overload,
    strict_json_schema,
    strip_json_fences,
    validate_structured,
)
from arena.schemas.evaluation import PersonaFeedback, StageSummary

pytestmark = pytest.mark.unit


def _make_overloaded_error():
    """Create a realistic OverloadedError instance using httpx request/response."""
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(status_code=529, text="Overloaded", request=request)
    return OverloadedError(message="Overloaded", response=response, body=None)


class TestStripJsonFences:
    def test_no_fences(self):
        raw = '{"key": "value"}'
        assert strip_json_fences(raw) == '{"key": "value"}'

    def test_json_fence(self):
        raw = '```json\n{"key": "value"}\n```'
        assert strip_json_fences(raw) == '{"key": "value"}'

    def test_plain_fence(self):
        raw = '```\n{"key": "value"}\n```'
        assert strip_json_fences(raw) == '{"key": "value"}'

    def test_fence_with_whitespace(self):
        raw = '  ```json\n{"key": "value"}\n```  '
        assert strip_json_fences(raw) == '{"key": "value"}'


class TestParseJsonResponse:
    def test_fenced_json(self):
        assert parse_json_response('```json\n{"key": "value"}\n```') == {"key": "value"}

    def test_invalid_json_raises(self):
        with pytest.raises(json.JSONDecodeError):
            parse_json_response("not json at all")


class TestResponseText:
    def test_joins_text_blocks_and_skips_tool_blocks(self):
        response = MagicMock()
        response.content = [
            MagicMock(type="text", text="Competitors: "),
            MagicMock(type="server_tool_use"),
            MagicMock(type="web_search_tool_result"),
            MagicMock(type="text", text="Acme and Globex."),
        ]
        assert response_text(response) == "Competitors: Acme and Globex."


class TestStrictJsonSchema:
    def test_top_level_and_nested_objects_reject_extra_properties(self):
        schema = strict_json_schema(PersonaFeedback)

        assert schema["additionalProperties"] is False
        assert schema["$defs"]["PersonaRatings"]["additionalProperties"] is False
        assert set(schema["required"]) >= {"ratings", "likes", "overall_summary"}


class TestValidateStructured:
    def test_valid_payload(self):
        summary = validate_structured(StageSummary, {"key_points": ["a"], "score": 6, "blocking_risks": []})
        assert summary.score == 6

    def test_extra_property_is_malformed(self):
        with pytest.raises(MalformedStructuredOutput) as exc_info:
            validate_structured(StageSummary, {"key_points": [], "score": 6, "mood": "happy"})

        assert exc_info.value.schema_name == "StageSummary"
        assert "mood" in exc_info.value.raw_text

    def test_out_of_range_score_is_malformed(self):
        with pytest.raises(MalformedStructuredOutput):
            validate_structured(StageSummary, {"key_points": [], "score": 11})


class TestRetryOnOverload:
    async def test_retries_on_overloaded(self):
        call = AsyncMock(side_effect=[_make_overloaded_error(), "OK"])

        @retry_on_overload
        async def invoke():
            return await call()

        result = await invoke.retry_with(wait=wait_none())()

        assert result == "OK"
        assert call.call_count == 2

    async def test_does_not_retry_on_other_errors(self):
        call = AsyncMock(side_effect=ValueError("Bad input"))

        @retry_on_overload
        async def invoke():
            return await call()

        with pytest.raises(ValueError, match="Bad input"):
            await invoke()

        assert call.call_count == 1

    async def test_exhausted_retries_reraise(self):
        call = AsyncMock(side_effect=_make_overloaded_error())

        @retry_on_overload
        async def invoke():
            return await call()

        with pytest.raises(OverloadedError):
            await invoke.retry_with(wait=wait_none())()

        assert call.call_count == 4  # 1 original + 3 retries
