"""Idempotent seed data for plan tiers."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from arena.db.base import get_session_factory
from arena.db.models.plan_tier import PlanTier

PLAN_TIERS = [
    {
        "slug": "free",
        "name": "Free",
        "price_monthly_cents": 0,
        "runs_included": 1,
        "persona_set": "free",
        "competitor_analysis": False,
    },
    {
        "slug": "premium",
        "name": "Premium",
        "price_monthly_cents": 1900,
        "runs_included": 20,
        "persona_set": "premium",
        "competitor_analysis": True,
    },
]


async def seed_plan_tiers(session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    """Insert default plan tiers if they don't already exist."""
    factory = session_factory or get_session_factory()

    async with factory() as session:
        for tier_data in PLAN_TIERS:
            result = await session.execute(
                select(PlanTier).where(PlanTier.slug == tier_data["slug"])
            )
            existing = result.scalar_one_or_none()

            if existing is None:
                session.add(PlanTier(**tier_data))

        await session.commit()
