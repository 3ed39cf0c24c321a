"""Idea routes: create, list, detail, delete, and aggregate report."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response

from arena.api.deps import get_idea_pipeline
from arena.core.auth import ClerkUser, require_auth
from arena.db.models.idea import Idea
from arena.schemas.ideas import CreateIdeaRequest, CreateIdeaResponse, IdeaReport, IdeaResponse
from arena.services.idea_pipeline import IdeaPipeline

router = APIRouter()


def _idea_response(idea: Idea, completed: list[str] | None = None, next_persona: str | None = None) -> IdeaResponse:
    return IdeaResponse(
        id=str(idea.id),
        title=idea.title,
        description=idea.description,
        target_customer=idea.target_customer,
        problem=idea.problem,
        current_alternatives=idea.current_alternatives,
        value_proposition=idea.value_proposition,
        created_at=idea.created_at,
        next_persona=next_persona,
        completed_stages=completed or [],
    )


@router.post("", response_model=CreateIdeaResponse, status_code=201)
async def create_idea(
    body: CreateIdeaRequest,
    user: ClerkUser = Depends(require_auth),
    pipeline: IdeaPipeline = Depends(get_idea_pipeline),
):
    """Create an idea. Consumes one run credit.

    Raises:
        403: Unverified or no credits remaining
        400: Missing title or description
    """
    idea, remaining = await pipeline.create_idea(user.user_id, user.claims, body)
    return CreateIdeaResponse(idea_id=str(idea.id), remaining_runs=remaining)


@router.get("", response_model=list[IdeaResponse])
async def list_ideas(
    user: ClerkUser = Depends(require_auth),
    pipeline: IdeaPipeline = Depends(get_idea_pipeline),
):
    ideas = await pipeline.list_ideas(user.user_id)
    return [_idea_response(idea) for idea in ideas]


@router.get("/{idea_id}", response_model=IdeaResponse)
async def get_idea(
    idea_id: UUID,
    user: ClerkUser = Depends(require_auth),
    pipeline: IdeaPipeline = Depends(get_idea_pipeline),
):
    detail = await pipeline.get_idea(user.user_id, idea_id)
    return _idea_response(
        detail.idea,
        completed=[p.value for p in detail.completed],
        next_persona=detail.next_persona.value if detail.next_persona else None,
    )


@router.delete("/{idea_id}", status_code=204)
async def delete_idea(
    idea_id: UUID,
    user: ClerkUser = Depends(require_auth),
    pipeline: IdeaPipeline = Depends(get_idea_pipeline),
):
    """Delete an idea with all of its stages and messages."""
    await pipeline.delete_idea(user.user_id, idea_id)
    return Response(status_code=204)


@router.get("/{idea_id}/report", response_model=IdeaReport)
async def get_report(
    idea_id: UUID,
    user: ClerkUser = Depends(require_auth),
    pipeline: IdeaPipeline = Depends(get_idea_pipeline),
):
    return await pipeline.report(user.user_id, idea_id)
