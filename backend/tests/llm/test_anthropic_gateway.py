"""Tests for AnthropicGateway with a mocked AsyncAnthropic client.

No real API calls are made. Covers:
- complete(): text joined from response blocks
- structured(): forced tool call, strict input schema, validation and malformed output
- research(): web search tool attached
- stream(): text chunks forwarded, transport errors wrapped
- transport errors become UpstreamModelFailure; 529 overloads are retried
"""

from typing import AsyncIterator
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest
from anthropic._exceptions import OverloadedError
from tenacity import wait_none

from arena.core.exceptions import MalformedStructuredOutput, UpstreamModelFailure
from arena.llm.anthropic_gateway import WEB_SEARCH_TOOL, AnthropicGateway
from arena.schemas.evaluation import MarketSaturation, StageSummary

pytestmark = pytest.mark.unit

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


class MockStream:
    """Simulates AsyncMessageStreamManager context manager."""

    def __init__(self, chunks: list[str], error: Exception | None = None) -> None:
        self._chunks = chunks
        self._error = error

    async def __aenter__(self) -> "MockStream":
        return self

    async def __aexit__(self, *args) -> None:
        pass

    @property
    def text_stream(self) -> AsyncIterator[str]:
        return self._iter_text()

    async def _iter_text(self) -> AsyncIterator[str]:
        for chunk in self._chunks:
            yield chunk
        if self._error is not None:
            raise self._error


def make_text_block(text: str) -> MagicMock:
    block = MagicMock()
    block.type = "text"
    block.text = text
    return block


def make_tool_block(payload: dict) -> MagicMock:
    block = MagicMock()
    block.type = "tool_use"
    block.input = payload
    return block


def make_response(*blocks: MagicMock) -> MagicMock:
    response = MagicMock()
    response.content = list(blocks)
    return response


def make_client(response: MagicMock | None = None, side_effect=None) -> MagicMock:
    client = MagicMock()
    client.messages = MagicMock()
    client.messages.create = AsyncMock(return_value=response, side_effect=side_effect)
    return client


def _overloaded() -> OverloadedError:
    response = httpx.Response(status_code=529, text="Overloaded", request=_REQUEST)
    return OverloadedError(message="Overloaded", response=response, body=None)


async def test_complete_returns_text():
    client = make_client(make_response(make_text_block("Hello "), make_text_block("founder")))
    gateway = AnthropicGateway(client, model="claude-sonnet-4-20250514")

    result = await gateway.complete("system", [{"role": "user", "content": "hi"}], max_tokens=100)

    assert result == "Hello founder"
    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["model"] == "claude-sonnet-4-20250514"
    assert kwargs["system"] == "system"
    assert kwargs["max_tokens"] == 100


async def test_structured_forces_tool_call_with_strict_schema():
    payload = {"key_points": ["Real pain point"], "score": 7, "blocking_risks": []}
    client = make_client(make_response(make_tool_block(payload)))
    gateway = AnthropicGateway(client, model="m")

    summary = await gateway.structured("system", [{"role": "user", "content": "x"}], StageSummary)

    assert summary == StageSummary(**payload)
    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["tool_choice"] == {"type": "tool", "name": "StageSummary"}
    tool = kwargs["tools"][0]
    assert tool["name"] == "StageSummary"
    assert tool["input_schema"]["additionalProperties"] is False


async def test_structured_without_tool_call_is_malformed():
    client = make_client(make_response(make_text_block("I'd say about a 7.")))
    gateway = AnthropicGateway(client, model="m")

    with pytest.raises(MalformedStructuredOutput) as exc_info:
        await gateway.structured("system", [{"role": "user", "content": "x"}], StageSummary)

    assert exc_info.value.raw_text == "I'd say about a 7."


async def test_structured_schema_mismatch_is_malformed():
    client = make_client(make_response(make_tool_block({"market_saturation_score": 400})))
    gateway = AnthropicGateway(client, model="m")

    with pytest.raises(MalformedStructuredOutput):
        await gateway.structured("system", [{"role": "user", "content": "x"}], MarketSaturation)


async def test_research_attaches_web_search_tool():
    client = make_client(make_response(make_text_block("## Key Competitors\n* Acme")))
    gateway = AnthropicGateway(client, model="m", research_model="research-m")

    text = await gateway.research("system", "analyze competitors")

    assert text == "## Key Competitors\n* Acme"
    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["tools"] == [WEB_SEARCH_TOOL]
    assert kwargs["model"] == "research-m"


async def test_research_without_text_fails():
    client = make_client(make_response(MagicMock(type="server_tool_use")))
    gateway = AnthropicGateway(client, model="m")

    with pytest.raises(UpstreamModelFailure):
        await gateway.research("system", "analyze competitors")


async def test_transport_error_becomes_upstream_failure():
    client = make_client(side_effect=anthropic.APIConnectionError(request=_REQUEST))
    gateway = AnthropicGateway(client, model="m")

    with pytest.raises(UpstreamModelFailure):
        await gateway.complete("system", [{"role": "user", "content": "x"}])

    assert client.messages.create.call_count == 1


async def test_overload_is_retried(monkeypatch):
    monkeypatch.setattr(AnthropicGateway._create.retry, "wait", wait_none())
    client = make_client(side_effect=[_overloaded(), make_response(make_text_block("OK"))])
    gateway = AnthropicGateway(client, model="m")

    result = await gateway.complete("system", [{"role": "user", "content": "x"}])

    assert result == "OK"
    assert client.messages.create.call_count == 2


async def test_stream_yields_chunks():
    client = MagicMock()
    client.messages.stream = MagicMock(return_value=MockStream(["Who ", "pays ", "today?"]))
    gateway = AnthropicGateway(client, model="m")

    chunks = [c async for c in gateway.stream("system", [{"role": "user", "content": "x"}])]

    assert chunks == ["Who ", "pays ", "today?"]


async def test_stream_error_mid_way_becomes_upstream_failure():
    error = anthropic.APIConnectionError(request=_REQUEST)
    client = MagicMock()
    client.messages.stream = MagicMock(return_value=MockStream(["Who "], error=error))
    gateway = AnthropicGateway(client, model="m")

    received = []
    with pytest.raises(UpstreamModelFailure):
        async for chunk in gateway.stream("system", [{"role": "user", "content": "x"}]):
            received.append(chunk)

    assert received == ["Who "]
