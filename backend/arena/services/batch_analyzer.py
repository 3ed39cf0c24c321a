"""BatchAnalyzer — parallel multi-persona scoring of a single idea.

Responsibilities:
- Fail-fast entitlement, validation, and rate-limit checks before any model call
- Bounded, time-limited fan-out with per-persona failure isolation
- Score aggregation over succeeding personas only
- Premium enrichment: competitor research and market saturation
- Executive summary per tier
- Credit consumption after the report is built (one credit, only if any persona succeeded)
"""

import asyncio

import structlog

from arena.core.exceptions import ArenaError, MissingRequiredField, NoServicesConfigured
from arena.domain.scoring import aggregate_batch
from arena.domain.signals import heuristic_saturation
from arena.llm.gateway import ModelGateway
from arena.personas.prompts import (
    COMPETITOR_SYSTEM,
    FREE_SUMMARY_SYSTEM,
    PREMIUM_SUMMARY_SYSTEM,
    SATURATION_SYSTEM,
    UPGRADE_SECTION,
    build_competitor_prompt,
    build_feedback_prompt,
    build_free_summary_prompt,
    build_premium_summary_prompt,
    build_saturation_prompt,
)
from arena.personas.registry import Persona, PersonaCatalog
from arena.schemas.analysis import (
    AdditionalDetails,
    AnalysisReport,
    AnalysisRequest,
    PersonaAnalysis,
    PersonaAnalysisError,
)
from arena.schemas.evaluation import MarketSaturation, PersonaFeedback
from arena.services.entitlements import EntitlementGate
from arena.services.rate_limit import FixedWindowRateLimiter

logger = structlog.get_logger(__name__)

COMPETITOR_UNAVAILABLE = "We couldn't perform competitor analysis at this time. Please try again later."
SUMMARY_UNAVAILABLE = (
    "We couldn't generate an executive summary at this time. "
    "The individual persona feedback below is still available."
)
NO_RESULTS_SUMMARY = (
    "None of the personas could evaluate this idea right now. "
    "No run credit was used, so please try again shortly."
)
DEFAULT_SATURATION = 50


def build_idea_summary(request: AnalysisRequest) -> str:
    """One-line summary: name, description truncated to 100 chars, optional target."""
    description = request.idea_description
    summary = f"{request.idea_name}: {description[:100]}{'...' if len(description) > 100 else ''}"
    if request.target_audience:
        summary += f" Target: {request.target_audience}"
    return summary


class BatchAnalyzer:
    """Fan out one idea to a tier's persona roster and aggregate the results."""

    def __init__(
        self,
        gateway: ModelGateway,
        gate: EntitlementGate,
        catalog: PersonaCatalog,
        rate_limiter: FixedWindowRateLimiter | None = None,
        *,
        concurrency: int = 4,
        persona_timeout: float = 45.0,
        research_timeout: float = 90.0,
    ):
        self.gateway = gateway
        self.gate = gate
        self.catalog = catalog
        self.rate_limiter = rate_limiter
        self.concurrency = concurrency
        self.persona_timeout = persona_timeout
        self.research_timeout = research_timeout

    async def analyze(self, user_id: str, claims: dict, request: AnalysisRequest) -> AnalysisReport:
        """Run one batch analysis for ``user_id``.

        Raises:
            Unverified / NoCreditsRemaining: Entitlement check failed (before any model call)
            MissingRequiredField: idea_name or idea_description empty
            RateLimitExceeded: Too many analyses in the current window
            NoServicesConfigured: The tier's roster is empty
            NoCreditsRemaining: Credits ran out while the analysis was running
        """
        entitlement = await self.gate.check(user_id, claims)

        missing = [name for name in ("idea_name", "idea_description") if not getattr(request, name).strip()]
        if missing:
            raise MissingRequiredField(missing)

        if self.rate_limiter is not None:
            await self.rate_limiter.hit("analysis", user_id)

        roster = self.catalog.for_tier(entitlement.persona_set)
        if not roster.personas:
            raise NoServicesConfigured()

        log = logger.bind(user_id=user_id, tier=entitlement.tier, personas=len(roster))
        log.info("batch_analysis_started")

        semaphore = asyncio.Semaphore(self.concurrency)
        fan_out = asyncio.gather(*(self._evaluate(semaphore, persona, request) for persona in roster.personas))
        if entitlement.competitor_analysis:
            analyses, (competitor_analysis, saturation, saturation_source) = await asyncio.gather(
                fan_out, self._enrich(request)
            )
        else:
            analyses = await fan_out
            competitor_analysis, saturation, saturation_source = None, None, None

        successes = [a for a in analyses if isinstance(a, PersonaAnalysis)]
        score = aggregate_batch([a.feedback["ratings"] for a in successes])
        failed = len(analyses) - len(successes)

        if successes:
            executive_summary = await self._summarize(
                request,
                entitlement.is_premium,
                score.overall_score,
                score.aggregate_ratings,
                competitor_analysis,
                successes,
            )
            remaining_runs = await self.gate.consume(user_id)
        else:
            executive_summary = NO_RESULTS_SUMMARY
            remaining_runs = entitlement.remaining_runs

        log.info(
            "batch_analysis_completed",
            succeeded=score.succeeded,
            failed=failed,
            overall_score=score.overall_score,
            remaining_runs=remaining_runs,
        )

        return AnalysisReport(
            idea_summary=build_idea_summary(request),
            executive_summary=executive_summary,
            competitor_analysis=competitor_analysis,
            market_saturation_score=saturation,
            saturation_source=saturation_source,
            analyses=analyses,
            aggregate_ratings=score.aggregate_ratings,
            overall_score=score.overall_score,
            scored=score.scored,
            succeeded=score.succeeded,
            failed=failed,
            remaining_runs=remaining_runs,
            is_premium=entitlement.is_premium,
            additional_details=AdditionalDetails(
                core_problem=request.core_problem,
                unique_value=request.unique_value,
                revenue_strategy=request.revenue_strategy,
            ),
        )

    async def _evaluate(
        self,
        semaphore: asyncio.Semaphore,
        persona: Persona,
        request: AnalysisRequest,
    ) -> PersonaAnalysis | PersonaAnalysisError:
        """One persona call; every failure becomes an error entry."""
        tag = f"persona:{persona.name}"
        async with semaphore:
            try:
                feedback = await asyncio.wait_for(
                    self.gateway.structured(
                        persona.prompt,
                        [{"role": "user", "content": build_feedback_prompt(request)}],
                        PersonaFeedback,
                        tag=tag,
                    ),
                    timeout=self.persona_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("persona_call_timeout", persona=persona.name, timeout=self.persona_timeout)
                return PersonaAnalysisError(
                    persona=persona.name,
                    error_type="timeout",
                    message=f"Analysis timed out after {self.persona_timeout:g}s.",
                )
            except ArenaError as exc:
                logger.warning("persona_call_failed", persona=persona.name, error=exc.message, error_type=exc.code)
                return PersonaAnalysisError(persona=persona.name, error_type=exc.code, message=exc.message)
            except Exception as exc:
                logger.error(
                    "persona_call_error",
                    persona=persona.name,
                    error=str(exc),
                    error_type=type(exc).__name__,
                    exc_info=True,
                )
                return PersonaAnalysisError(
                    persona=persona.name,
                    error_type="internal_error",
                    message="Analysis could not be completed for this persona.",
                )

        return PersonaAnalysis(persona=persona.name, feedback=feedback.model_dump())

    async def _enrich(self, request: AnalysisRequest) -> tuple[str, int, str]:
        """Competitor narrative plus market saturation, never raising.

        Returns:
            (competitor_analysis, market_saturation_score, saturation_source)
        """
        try:
            narrative = await asyncio.wait_for(
                self.gateway.research(COMPETITOR_SYSTEM, build_competitor_prompt(request), tag="competitor_analysis"),
                timeout=self.research_timeout,
            )
        except (ArenaError, asyncio.TimeoutError) as exc:
            logger.warning("competitor_analysis_failed", error=str(exc), error_type=type(exc).__name__)
            return COMPETITOR_UNAVAILABLE, DEFAULT_SATURATION, "default"
        except Exception as exc:
            logger.error(
                "competitor_analysis_error", error=str(exc), error_type=type(exc).__name__, exc_info=True
            )
            return COMPETITOR_UNAVAILABLE, DEFAULT_SATURATION, "default"

        try:
            saturation = await asyncio.wait_for(
                self.gateway.structured(
                    SATURATION_SYSTEM,
                    [{"role": "user", "content": build_saturation_prompt(narrative)}],
                    MarketSaturation,
                    tag="market_saturation",
                ),
                timeout=self.persona_timeout,
            )
        except (ArenaError, asyncio.TimeoutError) as exc:
            score, source = heuristic_saturation(narrative)
            logger.info("market_saturation_fallback", source=source, score=score, error_type=type(exc).__name__)
            return narrative, score, source
        except Exception as exc:
            score, source = heuristic_saturation(narrative)
            logger.error(
                "market_saturation_error", source=source, score=score, error_type=type(exc).__name__, exc_info=True
            )
            return narrative, score, source

        return narrative, saturation.market_saturation_score, "structured"

    async def _summarize(
        self,
        request: AnalysisRequest,
        is_premium: bool,
        overall_score: int,
        aggregate_ratings: dict[str, float],
        competitor_analysis: str | None,
        successes: list[PersonaAnalysis],
    ) -> str:
        feedback = [{"persona": a.persona, **a.feedback} for a in successes]
        if is_premium:
            system = PREMIUM_SUMMARY_SYSTEM
            prompt = build_premium_summary_prompt(
                request, overall_score, aggregate_ratings, competitor_analysis, feedback
            )
        else:
            system = FREE_SUMMARY_SYSTEM
            prompt = build_free_summary_prompt(request, overall_score, aggregate_ratings, feedback)

        tier = "premium" if is_premium else "free"
        try:
            summary = await asyncio.wait_for(
                self.gateway.complete(
                    system,
                    [{"role": "user", "content": prompt}],
                    max_tokens=1500,
                    tag=f"executive_summary:{tier}",
                ),
                timeout=self.persona_timeout,
            )
        except (ArenaError, asyncio.TimeoutError) as exc:
            logger.warning("executive_summary_failed", tier=tier, error=str(exc), error_type=type(exc).__name__)
            summary = SUMMARY_UNAVAILABLE

        if not is_premium:
            summary += UPGRADE_SECTION
        return summary
