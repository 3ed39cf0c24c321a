"""GatewayFake: Scenario-based test double for the ModelGateway protocol.

Provides deterministic, instant responses for named scenarios:
- happy_path: Every call succeeds with realistic content
- llm_failure: Every call raises UpstreamModelFailure
- malformed_output: Structured calls raise MalformedStructuredOutput
- stream_interrupted: Streams yield a few chunks, then fail

Individual calls can additionally be steered by ``tag``: tags listed in
``failing_tags`` raise UpstreamModelFailure, ``malformed_tags`` raise
MalformedStructuredOutput, ``slow_tags`` sleep before answering, and
``structured_overrides`` supply the payload validated into the schema.
"""

import asyncio
from collections.abc import AsyncIterator

from arena.core.exceptions import MalformedStructuredOutput, UpstreamModelFailure
from arena.llm.gateway import SchemaT
from arena.llm.helpers import validate_structured

DEFAULT_REPLY = (
    "Thanks for walking me through it. Who exactly would pay for this first, "
    "and how are they solving the problem today?"
)

DEFAULT_RESEARCH = (
    "## Competitor Analysis\n\n"
    "1. **Notion** - broad workspace tool with templates that overlap the core use case.\n"
    "2. **Airtable** - flexible database product popular with small teams.\n"
    "3. **Trello** - lightweight boards with a large free user base.\n\n"
    "Market saturation score: 72. The space is crowded at the top but niche "
    "segments remain underserved."
)

DEFAULT_SUMMARY = (
    "## What Works Well\n- Clear problem statement\n\n"
    "## What Needs Improvement\n- Pricing is undefined\n\n"
    "## Next Steps\n- Interview ten target customers"
)

CANNED_STRUCTURED: dict[str, dict] = {
    "StageSummary": {
        "key_points": [
            "The problem is felt weekly by the target customer",
            "Existing alternatives are spreadsheets and manual follow-up",
        ],
        "score": 7,
        "blocking_risks": ["Willingness to pay is unproven"],
    },
    "PersonaFeedback": {
        "ratings": {
            "market_potential": 7,
            "feasibility": 8,
            "innovation": 6,
            "competitiveness": 5,
            "profit_potential": 7,
        },
        "personal_opinion": "A practical idea with a clear first customer.",
        "likes": ["Solves a recurring pain point"],
        "dislikes": ["Crowded adjacent market"],
        "suggestions": ["Start with a single vertical"],
        "overall_summary": "Promising if the go-to-market stays focused.",
    },
    "MarketSaturation": {
        "market_saturation_score": 72,
        "rationale": "Several well-funded incumbents cover the core use case.",
    },
}


class GatewayFake:
    """Scenario-based test double for ModelGateway.

    Every call is recorded in ``calls`` as ``(kind, tag)`` so tests can assert
    which personas were consulted and in what shape.
    """

    VALID_SCENARIOS = {"happy_path", "llm_failure", "malformed_output", "stream_interrupted"}

    def __init__(
        self,
        scenario: str = "happy_path",
        *,
        reply: str = DEFAULT_REPLY,
        research_text: str = DEFAULT_RESEARCH,
        summary_text: str = DEFAULT_SUMMARY,
        failing_tags: set[str] | None = None,
        malformed_tags: set[str] | None = None,
        slow_tags: set[str] | None = None,
        slow_seconds: float = 5.0,
        structured_overrides: dict[str, dict] | None = None,
    ):
        """Initialize GatewayFake with a named scenario.

        Raises:
            ValueError: If scenario is not recognized
        """
        if scenario not in self.VALID_SCENARIOS:
            raise ValueError(
                f"Unknown scenario: {scenario}. Valid scenarios: {self.VALID_SCENARIOS}"
            )
        self.scenario = scenario
        self.reply = reply
        self.research_text = research_text
        self.summary_text = summary_text
        self.failing_tags = failing_tags or set()
        self.malformed_tags = malformed_tags or set()
        self.slow_tags = slow_tags or set()
        self.slow_seconds = slow_seconds
        self.structured_overrides = structured_overrides or {}
        self.calls: list[tuple[str, str]] = []

    async def _enter(self, kind: str, tag: str) -> None:
        self.calls.append((kind, tag))
        if tag in self.slow_tags:
            await asyncio.sleep(self.slow_seconds)
        if self.scenario == "llm_failure" or tag in self.failing_tags:
            raise UpstreamModelFailure(f"Anthropic API unavailable ({kind}, {tag or 'untagged'})")

    def tags(self, kind: str) -> list[str]:
        """Return the tags of every recorded call of one kind."""
        return [tag for call_kind, tag in self.calls if call_kind == kind]

    async def complete(
        self,
        system: str,
        messages: list[dict],
        *,
        max_tokens: int = 2048,
        tag: str = "",
    ) -> str:
        await self._enter("complete", tag)
        if tag.startswith("executive_summary"):
            return self.summary_text
        return self.reply

    async def stream(
        self,
        system: str,
        messages: list[dict],
        *,
        max_tokens: int = 2048,
        tag: str = "",
    ) -> AsyncIterator[str]:
        await self._enter("stream", tag)
        words = self.reply.split(" ")
        for index, word in enumerate(words):
            if self.scenario == "stream_interrupted" and index == 3:
                raise UpstreamModelFailure("Stream interrupted by upstream")
            yield word if index == 0 else " " + word

    async def structured(
        self,
        system: str,
        messages: list[dict],
        schema: type[SchemaT],
        *,
        max_tokens: int = 2048,
        tag: str = "",
    ) -> SchemaT:
        await self._enter("structured", tag)
        name = schema.__name__
        if self.scenario == "malformed_output" or tag in self.malformed_tags:
            raise MalformedStructuredOutput(name, "I'd give this idea a solid seven overall.", "no tool call in response")
        payload = self.structured_overrides.get(tag) or CANNED_STRUCTURED.get(name)
        if payload is None:
            raise MalformedStructuredOutput(name, "", "no canned payload for schema")
        return validate_structured(schema, payload)

    async def research(
        self,
        system: str,
        prompt: str,
        *,
        max_tokens: int = 4096,
        tag: str = "",
    ) -> str:
        await self._enter("research", tag)
        return self.research_text
