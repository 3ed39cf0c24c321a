"""Batch analysis route."""

from fastapi import APIRouter, Depends

from arena.api.deps import get_batch_analyzer
from arena.core.auth import ClerkUser, require_auth
from arena.schemas.analysis import AnalysisReport, AnalysisRequest
from arena.services.batch_analyzer import BatchAnalyzer

router = APIRouter()


@router.post("", response_model=AnalysisReport)
async def analyze_idea(
    body: AnalysisRequest,
    user: ClerkUser = Depends(require_auth),
    analyzer: BatchAnalyzer = Depends(get_batch_analyzer),
):
    """Score an idea with every persona on the caller's tier.

    Raises:
        403: Unverified or no credits remaining
        400: Missing idea_name or idea_description
        429: Rate limit exceeded
        503: No personas configured for the tier
    """
    return await analyzer.analyze(user.user_id, user.claims, body)
