"""AnthropicGateway: production ModelGateway on the Anthropic SDK.

Structured output is obtained by forcing a single tool call whose
``input_schema`` is the pydantic model's JSON schema, then validating the tool
input with the model itself. Web research uses the server-side web search tool.
"""

from collections.abc import AsyncIterator
from typing import Any

import anthropic
import structlog

from arena.core.exceptions import MalformedStructuredOutput, UpstreamModelFailure
from arena.llm.gateway import SchemaT
from arena.llm.helpers import response_text, retry_on_overload, strict_json_schema, validate_structured

logger = structlog.get_logger(__name__)

WEB_SEARCH_TOOL = {"type": "web_search_20250305", "name": "web_search", "max_uses": 5}


class AnthropicGateway:
    """ModelGateway backed by ``anthropic.AsyncAnthropic``.

    Transport errors surface as ``UpstreamModelFailure``; 529 overloads are
    retried by tenacity before that happens.
    """

    def __init__(
        self,
        client: anthropic.AsyncAnthropic,
        model: str,
        research_model: str | None = None,
    ):
        self._client = client
        self._model = model
        self._research_model = research_model or model

    @retry_on_overload
    async def _create(self, **kwargs: Any) -> Any:
        return await self._client.messages.create(**kwargs)

    async def _invoke(self, tag: str, **kwargs: Any) -> Any:
        try:
            return await self._create(**kwargs)
        except anthropic.APIError as exc:
            logger.warning("model_call_failed", tag=tag, error=str(exc), error_type=type(exc).__name__)
            raise UpstreamModelFailure(f"Model call failed: {exc}") from exc

    async def complete(
        self,
        system: str,
        messages: list[dict],
        *,
        max_tokens: int = 2048,
        tag: str = "",
    ) -> str:
        response = await self._invoke(
            tag,
            model=self._model,
            system=system,
            messages=messages,
            max_tokens=max_tokens,
        )
        return response_text(response)

    async def stream(
        self,
        system: str,
        messages: list[dict],
        *,
        max_tokens: int = 2048,
        tag: str = "",
    ) -> AsyncIterator[str]:
        try:
            async with self._client.messages.stream(
                model=self._model,
                system=system,
                messages=messages,
                max_tokens=max_tokens,
            ) as stream:
                async for chunk in stream.text_stream:
                    yield chunk
        except anthropic.APIError as exc:
            logger.warning("model_stream_failed", tag=tag, error=str(exc), error_type=type(exc).__name__)
            raise UpstreamModelFailure(f"Model stream failed: {exc}") from exc

    async def structured(
        self,
        system: str,
        messages: list[dict],
        schema: type[SchemaT],
        *,
        max_tokens: int = 2048,
        tag: str = "",
    ) -> SchemaT:
        tool_name = schema.__name__
        response = await self._invoke(
            tag,
            model=self._model,
            system=system,
            messages=messages,
            max_tokens=max_tokens,
            tools=[
                {
                    "name": tool_name,
                    "description": (schema.__doc__ or tool_name).strip(),
                    "input_schema": strict_json_schema(schema),
                }
            ],
            tool_choice={"type": "tool", "name": tool_name},
        )

        tool_block = next((b for b in response.content if getattr(b, "type", None) == "tool_use"), None)
        if tool_block is None:
            raise MalformedStructuredOutput(tool_name, response_text(response), "no tool call in response")

        return validate_structured(schema, tool_block.input)

    async def research(
        self,
        system: str,
        prompt: str,
        *,
        max_tokens: int = 4096,
        tag: str = "",
    ) -> str:
        response = await self._invoke(
            tag,
            model=self._research_model,
            system=system,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            tools=[WEB_SEARCH_TOOL],
        )
        text = response_text(response)
        if not text:
            raise UpstreamModelFailure("Research call returned no text")
        return text
