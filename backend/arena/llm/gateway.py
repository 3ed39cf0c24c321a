"""ModelGateway protocol: the single seam between the engine and the LLM service.

Four call shapes are supported:
- complete: plain chat completion returning text
- stream: streamed chat completion yielding text chunks
- structured: schema-constrained completion validated into a pydantic model
- research: web-search-enabled completion returning text

Implementations raise ``UpstreamModelFailure`` for transport errors and
``MalformedStructuredOutput`` when structured output does not match the schema.
The ``tag`` argument identifies the caller (e.g. ``"persona:Venture Capitalist"``)
for logging and for scenario routing in the fake.
"""

from collections.abc import AsyncIterator
from typing import Protocol, TypeVar

from pydantic import BaseModel

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ModelGateway(Protocol):
    """Protocol for language-model access.

    Two implementations exist:
    - AnthropicGateway: Production implementation on the Anthropic SDK
    - GatewayFake: Scenario-based test double with deterministic output
    """

    async def complete(
        self,
        system: str,
        messages: list[dict],
        *,
        max_tokens: int = 2048,
        tag: str = "",
    ) -> str:
        """Return the full text of one chat completion."""
        ...

    def stream(
        self,
        system: str,
        messages: list[dict],
        *,
        max_tokens: int = 2048,
        tag: str = "",
    ) -> AsyncIterator[str]:
        """Yield text chunks of one chat completion as they arrive."""
        ...

    async def structured(
        self,
        system: str,
        messages: list[dict],
        schema: type[SchemaT],
        *,
        max_tokens: int = 2048,
        tag: str = "",
    ) -> SchemaT:
        """Return a completion validated against ``schema``.

        Raises:
            MalformedStructuredOutput: If the output does not match the schema
            UpstreamModelFailure: On transport failure
        """
        ...

    async def research(
        self,
        system: str,
        prompt: str,
        *,
        max_tokens: int = 4096,
        tag: str = "",
    ) -> str:
        """Return the text of a web-search-enabled completion."""
        ...
