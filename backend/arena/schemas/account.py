"""Pydantic schemas for the account entitlement view and persona listing."""

from pydantic import BaseModel


class AccountResponse(BaseModel):
    user_id: str
    is_verified: bool
    remaining_runs: int
    tier: str
    is_premium: bool


class PersonaInfo(BaseModel):
    key: str
    name: str
    goal: str = ""


class PersonasResponse(BaseModel):
    stage_personas: list[PersonaInfo]
    batch_tier: str
    batch_personas: list[PersonaInfo]
