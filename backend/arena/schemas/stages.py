"""Pydantic schemas for conversational stages."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    id: str
    role: str
    content: str
    sequence: int
    created_at: datetime


class StartStageRequest(BaseModel):
    idea_id: UUID
    persona: str = Field(..., description="customer | designer | marketer | investor")


class StartStageResponse(BaseModel):
    stage_id: str
    persona: str
    resumed: bool = Field(..., description="True when an existing stage was returned")
    completed: bool
    messages: list[MessageResponse]


class StageLookupResponse(BaseModel):
    exists: bool
    stage_id: str | None = None
    completed: bool = False
    messages: list[MessageResponse] = Field(default_factory=list)


class SendMessageRequest(BaseModel):
    content: str = Field("", description="User message text (non-empty)")


class FinishStageResponse(BaseModel):
    next_stage: str | None = None
    summary: dict
    score: int
