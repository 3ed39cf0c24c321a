"""StageStateMachine — one persona's turn-bounded conversation about an idea.

States: uninitialized -> active -> completed.

Responsibilities:
- Idempotent stage start (resume existing stage and its messages)
- Streaming evaluator replies through a tee that persists only a fully drained reply
- Turn bounding: the machine finishes the stage itself after max exchanges,
  or earlier when the evaluator embeds a completion marker
- Structured finish with a conditional single write of summary and score
"""

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from arena.core.exceptions import (
    ConcurrentStageTurn,
    MalformedStructuredOutput,
    NotFound,
    StageAlreadyCompleted,
    UpstreamModelFailure,
    ValidationError,
)
from arena.db.models.idea import Idea
from arena.db.models.message import Message
from arena.db.models.stage import Stage
from arena.domain.personas import StagePersona, next_persona_after, parse_persona
from arena.domain.signals import CompletionMarker, extract_completion_marker
from arena.llm.gateway import ModelGateway
from arena.llm.streaming import tee_stream
from arena.personas.prompts import (
    SUMMARY_SYSTEM,
    build_stage_system_prompt,
    build_summarization_prompt,
    build_transcript,
)
from arena.personas.registry import stage_persona
from arena.schemas.evaluation import StageSummary
from arena.services.idea_pipeline import IdeaPipeline

logger = structlog.get_logger(__name__)

ROLE_USER = "user"
ROLE_EVALUATOR = "evaluator"


@dataclass
class StageSnapshot:
    stage: Stage
    messages: list[Message] = field(default_factory=list)
    resumed: bool = False


@dataclass
class FinishResult:
    next_stage: StagePersona | None
    summary: dict
    score: int


StreamEvent = tuple[str, dict]


class StageStateMachine:
    """Service layer for conversational stages with ModelGateway integration."""

    def __init__(
        self,
        gateway: ModelGateway,
        session_factory: async_sessionmaker[AsyncSession],
        pipeline: IdeaPipeline,
        max_exchanges: int = 3,
    ):
        """Initialize with a ModelGateway, session factory, and idea pipeline.

        Args:
            gateway: GatewayFake for tests, AnthropicGateway for production
            session_factory: SQLAlchemy async session factory for database access
            pipeline: Owner of idea lookups and persona ordering
            max_exchanges: Evaluator replies after which the stage finishes itself
        """
        self.gateway = gateway
        self.session_factory = session_factory
        self.pipeline = pipeline
        self.max_exchanges = max_exchanges

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def _owned_stage(self, session: AsyncSession, user_id: str, stage_id: UUID) -> tuple[Stage, Idea]:
        result = await session.execute(
            select(Stage, Idea)
            .join(Idea, Stage.idea_id == Idea.id)
            .where(Stage.id == stage_id, Idea.clerk_user_id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFound("Stage not found")
        return row[0], row[1]

    async def _messages(self, session: AsyncSession, stage_id: UUID) -> list[Message]:
        result = await session.execute(
            select(Message).where(Message.stage_id == stage_id).order_by(Message.sequence)
        )
        return list(result.scalars().all())

    async def _find_stage(self, session: AsyncSession, idea_id: UUID, persona: StagePersona) -> Stage | None:
        result = await session.execute(
            select(Stage).where(Stage.idea_id == idea_id, Stage.persona == persona.value)
        )
        return result.scalar_one_or_none()

    async def get_stage(self, user_id: str, idea_id: UUID, persona: str) -> StageSnapshot | None:
        """Look up the stage for ``(idea, persona)`` without creating it."""
        persona_key = _parse(persona)
        async with self.session_factory() as session:
            idea = await self.pipeline.get_owned_idea(session, user_id, idea_id)
            stage = await self._find_stage(session, idea.id, persona_key)
            if stage is None:
                return None
            return StageSnapshot(stage=stage, messages=await self._messages(session, stage.id), resumed=True)

    async def list_messages(self, user_id: str, stage_id: UUID) -> list[Message]:
        async with self.session_factory() as session:
            await self._owned_stage(session, user_id, stage_id)
            return await self._messages(session, stage_id)

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    async def start_stage(self, user_id: str, idea_id: UUID, persona: str) -> StageSnapshot:
        """Create the stage for ``(idea, persona)`` or resume the existing one.

        Raises:
            ValidationError: Unknown persona
            NotFound: Idea missing or owned by another user
            OutOfOrderStageAdvancement: An earlier persona is not completed
        """
        persona_key = _parse(persona)
        log = logger.bind(user_id=user_id, idea_id=str(idea_id), persona=persona_key.value)

        async with self.session_factory() as session:
            idea = await self.pipeline.get_owned_idea(session, user_id, idea_id)

            existing = await self._find_stage(session, idea.id, persona_key)
            if existing is not None:
                log.info("stage_resumed", stage_id=str(existing.id))
                return StageSnapshot(stage=existing, messages=await self._messages(session, existing.id), resumed=True)

            await self.pipeline.ensure_can_start(session, idea.id, persona_key)

            stage = Stage(idea_id=idea.id, persona=persona_key.value)
            session.add(stage)
            try:
                await session.commit()
            except IntegrityError:
                # Concurrent start for the same (idea, persona) won the insert
                await session.rollback()
                existing = await self._find_stage(session, idea.id, persona_key)
                if existing is None:
                    raise
                log.info("stage_resumed_after_race", stage_id=str(existing.id))
                return StageSnapshot(stage=existing, messages=await self._messages(session, existing.id), resumed=True)

            await session.refresh(stage)

        log.info("stage_started", stage_id=str(stage.id))
        return StageSnapshot(stage=stage, messages=[], resumed=False)

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    async def _append(self, session: AsyncSession, stage_id: UUID, role: str, content: str) -> Message:
        result = await session.execute(
            select(func.coalesce(func.max(Message.sequence), 0)).where(Message.stage_id == stage_id)
        )
        message = Message(stage_id=stage_id, role=role, content=content, sequence=result.scalar_one() + 1)
        session.add(message)
        try:
            await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            raise ConcurrentStageTurn() from exc
        return message

    async def stream_reply(self, user_id: str, stage_id: UUID, text: str) -> AsyncIterator[StreamEvent]:
        """Append the user's message and return the evaluator reply as an event stream.

        All validation happens before this coroutine returns, so failures
        surface as regular errors rather than mid-stream events.

        Events:
            ("delta", {"text": ...}) for each chunk
            ("done", {"stage_complete": bool, ...}) after the reply is persisted
            ("error", {"code": ..., "detail": ...}) if the upstream model fails

        Raises:
            ValidationError: Empty text, or turn limit already reached
            StageAlreadyCompleted: Stage is read-only
            ConcurrentStageTurn: Another append for this stage won the race
        """
        if not text or not text.strip():
            raise ValidationError("Message content must not be empty")

        async with self.session_factory() as session:
            stage, idea = await self._owned_stage(session, user_id, stage_id)
            if stage.is_completed:
                raise StageAlreadyCompleted()

            history = await self._messages(session, stage.id)
            evaluator_turns = sum(1 for m in history if m.role == ROLE_EVALUATOR)
            if evaluator_turns >= self.max_exchanges:
                raise ValidationError("Turn limit reached; finish the stage to continue")

            user_message = await self._append(session, stage.id, ROLE_USER, text.strip())
            history.append(user_message)

        persona_key = StagePersona(stage.persona)
        system = build_stage_system_prompt(stage_persona(persona_key), idea.prompt_fields(), self.max_exchanges)
        chat = [
            {"role": "assistant" if m.role == ROLE_EVALUATOR else "user", "content": m.content}
            for m in history
        ]
        return self._reply_events(user_id, stage.id, persona_key, system, chat, evaluator_turns + 1)

    async def _reply_events(
        self,
        user_id: str,
        stage_id: UUID,
        persona: StagePersona,
        system: str,
        chat: list[dict],
        turn: int,
    ) -> AsyncIterator[StreamEvent]:
        log = logger.bind(user_id=user_id, stage_id=str(stage_id), persona=persona.value, turn=turn)
        reply: list[str] = []

        async def persist(full_text: str) -> None:
            if not full_text.strip():
                raise UpstreamModelFailure("Evaluator returned an empty reply")
            async with self.session_factory() as session:
                await self._append(session, stage_id, ROLE_EVALUATOR, full_text)
            reply.append(full_text)

        source = self.gateway.stream(system, chat, tag=f"stage:{persona.value}")
        try:
            async for chunk in tee_stream(source, persist):
                yield "delta", {"text": chunk}
        except (UpstreamModelFailure, ConcurrentStageTurn) as exc:
            log.warning("stage_reply_failed", error=exc.message, error_type=exc.code)
            yield "error", {"code": exc.code, "detail": exc.message}
            return

        log.info("stage_reply_persisted", length=len(reply[0]))

        marker = extract_completion_marker(reply[0])
        if marker is None and turn < self.max_exchanges:
            yield "done", {"stage_complete": False, "turns_remaining": self.max_exchanges - turn}
            return

        log.info("stage_auto_finish", reason="marker" if marker is not None else "turn_limit")
        try:
            result = await self.finish_stage(user_id, stage_id, marker=marker)
        except StageAlreadyCompleted:
            yield "done", {"stage_complete": True, "turns_remaining": 0}
            return
        except UpstreamModelFailure as exc:
            # Reply is saved; the stage stays active so the client can retry finish
            log.warning("stage_auto_finish_failed", error=exc.message)
            yield "done", {"stage_complete": False, "turns_remaining": 0, "finish_error": exc.code}
            return

        yield "done", {
            "stage_complete": True,
            "turns_remaining": 0,
            "next_stage": result.next_stage.value if result.next_stage else None,
            "summary": result.summary,
            "score": result.score,
        }

    # ------------------------------------------------------------------
    # Finish
    # ------------------------------------------------------------------

    async def finish_stage(
        self, user_id: str, stage_id: UUID, marker: CompletionMarker | None = None
    ) -> FinishResult:
        """Summarize the transcript and complete the stage exactly once.

        Malformed structured output falls back to the completion marker the
        evaluator embedded (its score and takeaways) when one carries a score,
        otherwise to score 0 with the raw model text as the only key point.

        Raises:
            StageAlreadyCompleted: Stage was completed before or concurrently
            ValidationError: Stage has no messages
            UpstreamModelFailure: Gateway transport failed; stage stays active
        """
        async with self.session_factory() as session:
            stage, _ = await self._owned_stage(session, user_id, stage_id)
            if stage.is_completed:
                raise StageAlreadyCompleted()
            messages = await self._messages(session, stage.id)

        if not messages:
            raise ValidationError("Stage has no messages to summarize")

        persona_key = StagePersona(stage.persona)
        persona = stage_persona(persona_key)
        log = logger.bind(user_id=user_id, stage_id=str(stage_id), persona=persona_key.value)

        transcript = build_transcript([(m.role, m.content) for m in messages])
        try:
            summary = await self.gateway.structured(
                SUMMARY_SYSTEM,
                [{"role": "user", "content": build_summarization_prompt(transcript, persona)}],
                StageSummary,
                tag=f"stage_summary:{persona_key.value}",
            )
        except MalformedStructuredOutput as exc:
            log.warning("stage_summary_malformed", reason=exc.reason)
            if marker is not None and marker.score is not None:
                summary = StageSummary(
                    key_points=marker.takeaways or [exc.raw_text], score=marker.score, blocking_risks=[]
                )
            else:
                summary = StageSummary(key_points=[exc.raw_text], score=0, blocking_risks=[])

        summary_data = summary.model_dump()
        async with self.session_factory() as session:
            result = await session.execute(
                update(Stage)
                .where(Stage.id == stage_id, Stage.completed_at.is_(None))
                .values(summary=summary_data, score=summary.score, completed_at=datetime.now(UTC))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await session.rollback()
                raise StageAlreadyCompleted()
            await session.commit()

        log.info("stage_completed", score=summary.score)
        return FinishResult(next_stage=next_persona_after(persona_key), summary=summary_data, score=summary.score)


def _parse(persona: str) -> StagePersona:
    try:
        return parse_persona(persona)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
