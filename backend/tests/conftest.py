"""Shared test fixtures for all test groups."""

import os

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from arena.db.base import Base, create_engine
from arena.db.models.plan_tier import PlanTier
from arena.db.models.user_account import UserAccount
from arena.db.seed import seed_plan_tiers
from arena.llm.gateway_fake import GatewayFake
from arena.services.entitlements import EntitlementGate


def _database_url(tmp_path) -> str:
    """SQLite file per test unless TEST_DATABASE_URL points at a real server."""
    return os.getenv("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'arena_test.db'}")


@pytest.fixture
async def engine(tmp_path) -> AsyncEngine:
    """Create a test engine with fresh tables and seeded plan tiers."""
    import arena.db.models  # noqa: F401

    engine = create_engine(_database_url(tmp_path))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await seed_plan_tiers(factory)
    return factory


@pytest.fixture
def gateway_fake():
    """Fresh GatewayFake with happy_path scenario (default)."""
    return GatewayFake(scenario="happy_path")


@pytest.fixture
def gateway_fake_failing():
    """GatewayFake with llm_failure scenario."""
    return GatewayFake(scenario="llm_failure")


@pytest.fixture
def gate(session_factory) -> EntitlementGate:
    return EntitlementGate(session_factory, default_free_runs=1)


@pytest.fixture
def make_account(session_factory):
    """Create (or overwrite) a user account with explicit credits and tier."""

    async def _make(user_id: str, *, remaining_runs: int = 5, verified: bool = True, tier: str = "free") -> None:
        async with session_factory() as session:
            tier_row = (await session.execute(select(PlanTier).where(PlanTier.slug == tier))).scalar_one()
            account = (
                await session.execute(select(UserAccount).where(UserAccount.clerk_user_id == user_id))
            ).scalar_one_or_none()
            if account is None:
                account = UserAccount(clerk_user_id=user_id, plan_tier_id=tier_row.id)
                session.add(account)
            account.plan_tier_id = tier_row.id
            account.remaining_runs = remaining_runs
            account.is_verified = verified
            await session.commit()

    return _make


@pytest.fixture
def remaining_runs(session_factory):
    """Read a user's current credit balance straight from the database."""

    async def _read(user_id: str) -> int:
        async with session_factory() as session:
            result = await session.execute(
                select(UserAccount.remaining_runs).where(UserAccount.clerk_user_id == user_id)
            )
            return result.scalar_one()

    return _read
