"""Tests for IdeaPipeline: creation with credits, isolation, ordering, reports, deletion."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from arena.core.exceptions import (
    MissingRequiredField,
    NoCreditsRemaining,
    NotFound,
    OutOfOrderStageAdvancement,
    Unverified,
)
from arena.db.models.idea import Idea
from arena.db.models.message import Message
from arena.db.models.stage import Stage
from arena.domain.personas import StagePersona
from arena.schemas.ideas import CreateIdeaRequest
from arena.services.idea_pipeline import IdeaPipeline

pytestmark = pytest.mark.integration

VERIFIED = {"email_verified": True}


@pytest.fixture
def pipeline(session_factory, gate) -> IdeaPipeline:
    return IdeaPipeline(session_factory, gate)


def _payload(**overrides) -> CreateIdeaRequest:
    data = {
        "title": "Shift swap app",
        "description": "Lets hourly workers trade shifts without a manager in the loop.",
        "target_customer": "Retail staff",
    }
    data.update(overrides)
    return CreateIdeaRequest(**data)


async def _complete_stage(session_factory, idea_id, persona: StagePersona, score: int) -> Stage:
    async with session_factory() as session:
        stage = Stage(
            idea_id=idea_id,
            persona=persona.value,
            score=score,
            summary={"key_points": [f"{persona.value} done"], "score": score, "blocking_risks": []},
            completed_at=datetime.now(UTC),
        )
        session.add(stage)
        await session.commit()
        return stage


async def test_create_idea_consumes_one_credit(pipeline, make_account, remaining_runs):
    await make_account("user_a", remaining_runs=2)

    idea, remaining = await pipeline.create_idea("user_a", VERIFIED, _payload())

    assert idea.title == "Shift swap app"
    assert remaining == 1
    assert await remaining_runs("user_a") == 1


async def test_create_idea_without_credits(pipeline, make_account, session_factory):
    await make_account("user_a", remaining_runs=0)

    with pytest.raises(NoCreditsRemaining):
        await pipeline.create_idea("user_a", VERIFIED, _payload())

    async with session_factory() as session:
        assert (await session.execute(select(func.count(Idea.id)))).scalar_one() == 0


async def test_create_idea_unverified(pipeline, make_account):
    await make_account("user_a", remaining_runs=3, verified=False)

    with pytest.raises(Unverified):
        await pipeline.create_idea("user_a", {}, _payload())


async def test_create_idea_missing_fields_keeps_credit(pipeline, make_account, remaining_runs):
    await make_account("user_a", remaining_runs=1)

    with pytest.raises(MissingRequiredField) as exc_info:
        await pipeline.create_idea("user_a", VERIFIED, _payload(title="  ", description=""))

    assert exc_info.value.fields == ["title", "description"]
    assert await remaining_runs("user_a") == 1


async def test_other_users_idea_is_not_found(pipeline, make_account):
    await make_account("user_a")
    idea, _ = await pipeline.create_idea("user_a", VERIFIED, _payload())

    with pytest.raises(NotFound):
        await pipeline.get_idea("user_b", idea.id)
    with pytest.raises(NotFound):
        await pipeline.delete_idea("user_b", idea.id)
    assert await pipeline.list_ideas("user_b") == []


async def test_next_persona_follows_completed_stages(pipeline, make_account, session_factory):
    await make_account("user_a")
    idea, _ = await pipeline.create_idea("user_a", VERIFIED, _payload())

    assert (await pipeline.get_idea("user_a", idea.id)).next_persona == StagePersona.CUSTOMER

    await _complete_stage(session_factory, idea.id, StagePersona.CUSTOMER, 6)
    detail = await pipeline.get_idea("user_a", idea.id)

    assert detail.completed == [StagePersona.CUSTOMER]
    assert detail.next_persona == StagePersona.DESIGNER


async def test_ensure_can_start_rejects_skipping(pipeline, make_account, session_factory):
    await make_account("user_a")
    idea, _ = await pipeline.create_idea("user_a", VERIFIED, _payload())

    async with session_factory() as session:
        with pytest.raises(OutOfOrderStageAdvancement) as exc_info:
            await pipeline.ensure_can_start(session, idea.id, StagePersona.MARKETER)

    assert exc_info.value.blocking == "customer"


async def test_report_averages_completed_stages(pipeline, make_account, session_factory):
    await make_account("user_a")
    idea, _ = await pipeline.create_idea("user_a", VERIFIED, _payload())
    await _complete_stage(session_factory, idea.id, StagePersona.CUSTOMER, 7)
    await _complete_stage(session_factory, idea.id, StagePersona.DESIGNER, 8)

    report = await pipeline.report("user_a", idea.id)

    assert report.average_score == 8  # 7.5 rounds half-up
    assert report.completed_stages == 2
    assert report.total_stages == 4
    assert report.is_final is False
    assert [s.persona for s in report.stages] == ["customer", "designer", "marketer", "investor"]
    assert report.stages[2].completed is False


async def test_report_is_final_after_all_stages(pipeline, make_account, session_factory):
    await make_account("user_a")
    idea, _ = await pipeline.create_idea("user_a", VERIFIED, _payload())
    for persona, score in zip(StagePersona, (6, 7, 8, 6)):
        await _complete_stage(session_factory, idea.id, persona, score)

    report = await pipeline.report("user_a", idea.id)

    assert report.is_final is True
    assert report.average_score == 7


async def test_report_without_completed_stages(pipeline, make_account):
    await make_account("user_a")
    idea, _ = await pipeline.create_idea("user_a", VERIFIED, _payload())

    report = await pipeline.report("user_a", idea.id)

    assert report.average_score is None
    assert report.completed_stages == 0


async def test_delete_removes_stages_and_messages(pipeline, make_account, session_factory):
    await make_account("user_a", remaining_runs=2)
    idea, _ = await pipeline.create_idea("user_a", VERIFIED, _payload())
    other, _ = await pipeline.create_idea("user_a", VERIFIED, _payload(title="Other idea"))

    stage = await _complete_stage(session_factory, idea.id, StagePersona.CUSTOMER, 6)
    other_stage = await _complete_stage(session_factory, other.id, StagePersona.CUSTOMER, 5)
    async with session_factory() as session:
        session.add_all(
            [
                Message(stage_id=stage.id, role="user", content="hi", sequence=1),
                Message(stage_id=stage.id, role="evaluator", content="hello", sequence=2),
                Message(stage_id=other_stage.id, role="user", content="keep me", sequence=1),
            ]
        )
        await session.commit()

    await pipeline.delete_idea("user_a", idea.id)

    async with session_factory() as session:
        stage_ids = select(Stage.id).where(Stage.idea_id == idea.id)
        assert (await session.execute(select(func.count(Stage.id)).where(Stage.idea_id == idea.id))).scalar_one() == 0
        assert (
            await session.execute(select(func.count(Message.id)).where(Message.stage_id.in_(stage_ids)))
        ).scalar_one() == 0
        assert (await session.execute(select(func.count(Message.id)).where(Message.stage_id == stage.id))).scalar_one() == 0
        assert (await session.execute(select(Idea).where(Idea.id == idea.id))).scalar_one_or_none() is None
        # Unrelated idea untouched
        assert (await session.execute(select(func.count(Message.id)))).scalar_one() == 1

    with pytest.raises(NotFound):
        await pipeline.get_idea("user_a", idea.id)


async def test_delete_unknown_idea(pipeline):
    with pytest.raises(NotFound):
        await pipeline.delete_idea("user_a", uuid4())
