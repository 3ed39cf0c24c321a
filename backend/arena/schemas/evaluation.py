"""Structured model outputs requested through ModelGateway.structured.

Every model rejects undeclared properties; the same constraint is sent to the
model as the tool input schema.
"""

from pydantic import BaseModel, ConfigDict, Field


class StageSummary(BaseModel):
    """Summary of a completed evaluator conversation about a business idea."""

    model_config = ConfigDict(extra="forbid")

    key_points: list[str] = Field(description="Brief bullet points of what was learned about the idea")
    score: int = Field(ge=0, le=10, description="Overall assessment from 0 (not viable) to 10 (exceptional)")
    blocking_risks: list[str] = Field(default_factory=list, description="Risks that would block success")


class PersonaRatings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    market_potential: int = Field(ge=1, le=10)
    feasibility: int = Field(ge=1, le=10)
    innovation: int = Field(ge=1, le=10)
    competitiveness: int = Field(ge=1, le=10)
    profit_potential: int = Field(ge=1, le=10)


class PersonaFeedback(BaseModel):
    """One persona's independent evaluation of a business idea."""

    model_config = ConfigDict(extra="forbid")

    ratings: PersonaRatings
    personal_opinion: str
    likes: list[str]
    dislikes: list[str]
    suggestions: list[str]
    overall_summary: str


class MarketSaturation(BaseModel):
    """Market saturation extracted from a competitor analysis."""

    model_config = ConfigDict(extra="forbid")

    market_saturation_score: int = Field(
        ge=1,
        le=100,
        description="1 = virtually no competitors, 100 = extremely crowded market",
    )
    rationale: str = ""
