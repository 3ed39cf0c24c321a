"""Pydantic schemas for batch idea analysis.

Defines schemas for:
- The analysis request (idea fields submitted by the user)
- Per-persona results (success entries and error entries)
- The aggregated analysis report
"""

from typing import Literal

from pydantic import BaseModel, Field


class AnalysisRequest(BaseModel):
    """Idea submitted for batch analysis.

    Required fields are validated by the analyzer so that a missing name or
    description is reported as ``missing_required_field``.
    """

    idea_name: str = Field("", description="Short name of the idea (required)")
    idea_description: str = Field("", description="Free-form description (required)")
    target_audience: str | None = Field(None, description="Who the idea is for")
    core_problem: str | None = Field(None, description="Problem being solved")
    revenue_strategy: str | None = Field(None, description="How the idea makes money")
    unique_value: str | None = Field(None, description="Unique value proposition")


class PersonaAnalysis(BaseModel):
    """Feedback from one persona that answered successfully."""

    persona: str
    error: Literal[False] = False
    feedback: dict


class PersonaAnalysisError(BaseModel):
    """Marker for a persona whose call failed, timed out, or returned malformed output."""

    persona: str
    error: Literal[True] = True
    error_type: str
    message: str


class AdditionalDetails(BaseModel):
    core_problem: str | None = None
    unique_value: str | None = None
    revenue_strategy: str | None = None


class AnalysisReport(BaseModel):
    """Aggregated batch analysis result. Not persisted."""

    idea_summary: str
    executive_summary: str
    competitor_analysis: str | None = None
    market_saturation_score: int | None = None
    saturation_source: Literal["structured", "heuristic", "default"] | None = None
    analyses: list[PersonaAnalysis | PersonaAnalysisError]
    aggregate_ratings: dict[str, float]
    overall_score: int = Field(..., ge=0, le=100)
    scored: bool
    succeeded: int
    failed: int
    remaining_runs: int
    is_premium: bool
    additional_details: AdditionalDetails
