"""IdeaPipeline — ideas, persona ordering, reports, and transactional deletion.

Responsibilities:
- Idea lifecycle: create (consumes a credit), read, list, delete
- User isolation via clerk_user_id filtering (other users' ideas are 404)
- Persona order enforcement for stage creation
- Aggregate report over completed stages
"""

from dataclasses import dataclass, field
from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from arena.core.exceptions import MissingRequiredField, NoCreditsRemaining, NotFound, OutOfOrderStageAdvancement
from arena.db.models.idea import Idea
from arena.db.models.message import Message
from arena.db.models.stage import Stage
from arena.domain.personas import (
    STAGE_ORDER,
    TOTAL_STAGES,
    StagePersona,
    blocking_persona,
    first_incomplete,
)
from arena.domain.scoring import average_stage_score
from arena.schemas.ideas import CreateIdeaRequest, IdeaReport, StageReport
from arena.services.entitlements import EntitlementGate, decrement_run

logger = structlog.get_logger(__name__)

_NO_SYNC = {"synchronize_session": False}


@dataclass
class IdeaDetail:
    idea: Idea
    completed: list[StagePersona] = field(default_factory=list)
    next_persona: StagePersona | None = None


class IdeaPipeline:
    """Service layer for ideas and stage ordering."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], gate: EntitlementGate):
        self.session_factory = session_factory
        self.gate = gate

    async def create_idea(self, user_id: str, claims: dict, payload: CreateIdeaRequest) -> tuple[Idea, int]:
        """Create an idea, consuming one credit in the same transaction.

        Returns:
            (idea, remaining_runs)

        Raises:
            Unverified / NoCreditsRemaining: Entitlement check failed
            MissingRequiredField: title or description empty
        """
        await self.gate.check(user_id, claims)

        missing = [name for name in ("title", "description") if not getattr(payload, name).strip()]
        if missing:
            raise MissingRequiredField(missing)

        async with self.session_factory() as session:
            remaining = await decrement_run(session, user_id)
            if remaining is None:
                await session.rollback()
                raise NoCreditsRemaining()

            idea = Idea(
                clerk_user_id=user_id,
                title=payload.title.strip(),
                description=payload.description.strip(),
                target_customer=payload.target_customer,
                problem=payload.problem,
                current_alternatives=payload.current_alternatives,
                value_proposition=payload.value_proposition,
            )
            session.add(idea)
            await session.commit()
            await session.refresh(idea)

        logger.info("idea_created", user_id=user_id, idea_id=str(idea.id), remaining_runs=remaining)
        return idea, remaining

    async def list_ideas(self, user_id: str) -> list[Idea]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Idea).where(Idea.clerk_user_id == user_id).order_by(Idea.created_at.desc())
            )
            return list(result.scalars().all())

    async def get_idea(self, user_id: str, idea_id: UUID) -> IdeaDetail:
        async with self.session_factory() as session:
            idea = await self.get_owned_idea(session, user_id, idea_id)
            completed = await self.completed_personas(session, idea.id)

        return IdeaDetail(
            idea=idea,
            completed=[p for p in STAGE_ORDER if p in completed],
            next_persona=first_incomplete(completed),
        )

    async def get_owned_idea(self, session: AsyncSession, user_id: str, idea_id: UUID) -> Idea:
        """Load an idea owned by ``user_id``.

        Raises:
            NotFound: Missing or owned by another user
        """
        result = await session.execute(
            select(Idea).where(Idea.id == idea_id, Idea.clerk_user_id == user_id)
        )
        idea = result.scalar_one_or_none()
        if idea is None:
            raise NotFound("Idea not found")
        return idea

    async def completed_personas(self, session: AsyncSession, idea_id: UUID) -> set[StagePersona]:
        result = await session.execute(
            select(Stage.persona).where(Stage.idea_id == idea_id, Stage.completed_at.is_not(None))
        )
        return {StagePersona(p) for p in result.scalars().all()}

    async def next_persona(self, session: AsyncSession, idea_id: UUID) -> StagePersona | None:
        """First persona in fixed order without a completed stage, or None."""
        return first_incomplete(await self.completed_personas(session, idea_id))

    async def ensure_can_start(self, session: AsyncSession, idea_id: UUID, persona: StagePersona) -> None:
        """Reject starting ``persona`` while an earlier persona is incomplete.

        Raises:
            OutOfOrderStageAdvancement: An earlier persona has no completed stage
        """
        blocking = blocking_persona(persona, await self.completed_personas(session, idea_id))
        if blocking is not None:
            raise OutOfOrderStageAdvancement(persona.value, blocking.value)

    async def report(self, user_id: str, idea_id: UUID) -> IdeaReport:
        """Average completed stage scores, with per-stage summaries in persona order."""
        async with self.session_factory() as session:
            idea = await self.get_owned_idea(session, user_id, idea_id)
            result = await session.execute(select(Stage).where(Stage.idea_id == idea.id))
            stages = {StagePersona(s.persona): s for s in result.scalars().all()}

        stage_reports = []
        scores = []
        for persona in STAGE_ORDER:
            stage = stages.get(persona)
            completed = stage is not None and stage.is_completed
            if completed:
                scores.append(stage.score)
            stage_reports.append(
                StageReport(
                    persona=persona.value,
                    completed=completed,
                    score=stage.score if completed else None,
                    summary=stage.summary if completed else None,
                )
            )

        return IdeaReport(
            idea_id=str(idea.id),
            average_score=average_stage_score(scores),
            completed_stages=len(scores),
            total_stages=TOTAL_STAGES,
            is_final=len(scores) == TOTAL_STAGES,
            stages=stage_reports,
        )

    async def delete_idea(self, user_id: str, idea_id: UUID) -> None:
        """Delete an idea with all of its stages and messages in one transaction."""
        async with self.session_factory() as session:
            async with session.begin():
                idea = await self.get_owned_idea(session, user_id, idea_id)
                stage_ids = select(Stage.id).where(Stage.idea_id == idea.id)

                messages = await session.execute(
                    delete(Message).where(Message.stage_id.in_(stage_ids)), execution_options=_NO_SYNC
                )
                stages = await session.execute(
                    delete(Stage).where(Stage.idea_id == idea.id), execution_options=_NO_SYNC
                )
                await session.execute(delete(Idea).where(Idea.id == idea.id), execution_options=_NO_SYNC)

        logger.info(
            "idea_deleted",
            user_id=user_id,
            idea_id=str(idea_id),
            stages_deleted=stages.rowcount,
            messages_deleted=messages.rowcount,
        )
