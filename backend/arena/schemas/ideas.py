"""Pydantic schemas for ideas and their aggregate reports."""

from datetime import datetime

from pydantic import BaseModel, Field


class CreateIdeaRequest(BaseModel):
    """Request to create an idea. Consumes one run credit."""

    title: str = Field("", description="Idea title (required)")
    description: str = Field("", description="Raw idea description (required)")
    target_customer: str | None = Field(None, description="Ideal customer")
    problem: str | None = Field(None, description="Problem being solved")
    current_alternatives: str | None = Field(None, description="How the problem is solved today")
    value_proposition: str | None = Field(None, description="Why this is better")


class CreateIdeaResponse(BaseModel):
    idea_id: str
    remaining_runs: int


class IdeaResponse(BaseModel):
    id: str
    title: str
    description: str
    target_customer: str | None = None
    problem: str | None = None
    current_alternatives: str | None = None
    value_proposition: str | None = None
    created_at: datetime
    next_persona: str | None = Field(None, description="First persona without a completed stage")
    completed_stages: list[str] = Field(default_factory=list)


class StageReport(BaseModel):
    persona: str
    completed: bool
    score: int | None = None
    summary: dict | None = None


class IdeaReport(BaseModel):
    """Average of completed stage scores, rounded half-up."""

    idea_id: str
    average_score: int | None = Field(None, description="Null until at least one stage is completed")
    completed_stages: int
    total_stages: int
    is_final: bool
    stages: list[StageReport]
