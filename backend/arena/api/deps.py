"""FastAPI dependencies wiring services to the gateway, database, and Redis.

Override any of these in tests via ``app.dependency_overrides``.
"""

from functools import lru_cache

from anthropic import AsyncAnthropic
from fastapi import Depends

from arena.core.config import get_settings
from arena.db.base import get_session_factory
from arena.db.redis import get_redis
from arena.llm.gateway import ModelGateway
from arena.llm.gateway_fake import GatewayFake
from arena.personas.registry import PersonaCatalog, default_catalog
from arena.services.batch_analyzer import BatchAnalyzer
from arena.services.entitlements import EntitlementGate
from arena.services.idea_pipeline import IdeaPipeline
from arena.services.rate_limit import FixedWindowRateLimiter
from arena.services.stage_machine import StageStateMachine


@lru_cache
def _anthropic_client() -> AsyncAnthropic:
    return AsyncAnthropic(api_key=get_settings().anthropic_api_key)


def _gateway_for(model: str) -> ModelGateway:
    settings = get_settings()
    if settings.anthropic_api_key:
        from arena.llm.anthropic_gateway import AnthropicGateway

        return AnthropicGateway(_anthropic_client(), model=model, research_model=settings.research_model)
    return GatewayFake()


def get_gateway() -> ModelGateway:
    """Gateway for stage conversations.

    Returns AnthropicGateway when ANTHROPIC_API_KEY is set.
    Falls back to GatewayFake for local dev without API key.
    """
    return _gateway_for(get_settings().evaluator_model)


def get_analysis_gateway() -> ModelGateway:
    """Gateway for batch analysis (analyst model)."""
    return _gateway_for(get_settings().analyst_model)


def get_persona_catalog() -> PersonaCatalog:
    return default_catalog()


def get_entitlement_gate() -> EntitlementGate:
    return EntitlementGate(get_session_factory())


def get_rate_limiter() -> FixedWindowRateLimiter:
    settings = get_settings()
    return FixedWindowRateLimiter(
        get_redis(),
        limit=settings.analysis_rate_limit,
        window_seconds=settings.analysis_rate_window_seconds,
    )


def get_idea_pipeline(gate: EntitlementGate = Depends(get_entitlement_gate)) -> IdeaPipeline:
    return IdeaPipeline(get_session_factory(), gate)


def get_stage_machine(
    gateway: ModelGateway = Depends(get_gateway),
    pipeline: IdeaPipeline = Depends(get_idea_pipeline),
) -> StageStateMachine:
    return StageStateMachine(
        gateway,
        get_session_factory(),
        pipeline,
        max_exchanges=get_settings().max_stage_exchanges,
    )


def get_batch_analyzer(
    gateway: ModelGateway = Depends(get_analysis_gateway),
    gate: EntitlementGate = Depends(get_entitlement_gate),
    catalog: PersonaCatalog = Depends(get_persona_catalog),
    rate_limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
) -> BatchAnalyzer:
    settings = get_settings()
    return BatchAnalyzer(
        gateway,
        gate,
        catalog,
        rate_limiter,
        concurrency=settings.batch_concurrency,
        persona_timeout=settings.persona_call_timeout_seconds,
        research_timeout=settings.research_timeout_seconds,
    )
