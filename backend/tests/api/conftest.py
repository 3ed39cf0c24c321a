"""API-specific test fixtures."""

import os
from contextlib import asynccontextmanager

import fakeredis
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from arena.core.auth import ClerkUser, require_auth
from arena.db.base import Base

USER_A = ClerkUser(user_id="user_a", claims={"sub": "user_a", "email_verified": True})
USER_B = ClerkUser(user_id="user_b", claims={"sub": "user_b", "email_verified": True})


@pytest.fixture
def api_gateway():
    """GatewayFake shared by every request of one test client."""
    from arena.llm.gateway_fake import GatewayFake

    return GatewayFake()


@pytest.fixture
def api_client(tmp_path, api_gateway):
    """FastAPI test client with an isolated database and in-memory Redis.

    The database and Redis globals are initialized inside the TestClient's
    own event loop so route handlers can use get_session_factory() and
    get_redis(). Requests are authenticated as ``USER_A`` until a test
    calls ``authenticate_as``.
    """
    import arena.db.base as db_mod
    from arena.api.deps import get_analysis_gateway, get_entitlement_gate, get_gateway
    from arena.api.routes import api_router
    from arena.core.config import get_settings
    from arena.db import close_db, close_redis, init_db, init_redis
    from arena.db.base import get_session_factory
    from arena.db.seed import seed_plan_tiers
    from arena.main import register_exception_handlers
    from arena.middleware.correlation import setup_correlation_middleware
    from arena.services.entitlements import EntitlementGate

    db_url = os.getenv("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'arena_api.db'}")

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        """Test lifespan - initialize DB and Redis in TestClient's event loop."""
        db_mod._engine = None
        db_mod._session_factory = None
        await init_db(db_url)
        async with db_mod._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        await seed_plan_tiers()

        await init_redis(client=fakeredis.FakeAsyncRedis(decode_responses=True))
        yield
        await close_redis()
        await close_db()

    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Idea Arena - Test Client",
        version="0.1.0",
        lifespan=test_lifespan,
    )
    setup_correlation_middleware(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    app.dependency_overrides[require_auth] = lambda: USER_A
    app.dependency_overrides[get_gateway] = lambda: api_gateway
    app.dependency_overrides[get_analysis_gateway] = lambda: api_gateway
    app.dependency_overrides[get_entitlement_gate] = lambda: EntitlementGate(
        get_session_factory(), default_free_runs=5
    )

    with TestClient(app) as client:
        yield client


@pytest.fixture
def authenticate_as(api_client):
    """Switch the authenticated caller for subsequent requests."""

    def _as(user: ClerkUser) -> None:
        api_client.app.dependency_overrides[require_auth] = lambda: user

    return _as


@pytest.fixture
def free_runs(api_client):
    """Change the credits granted to accounts provisioned from now on."""
    from arena.api.deps import get_entitlement_gate
    from arena.db.base import get_session_factory
    from arena.services.entitlements import EntitlementGate

    def _set(runs: int) -> None:
        api_client.app.dependency_overrides[get_entitlement_gate] = lambda: EntitlementGate(
            get_session_factory(), default_free_runs=runs
        )

    return _set


@pytest.fixture
def user_a() -> ClerkUser:
    return USER_A


@pytest.fixture
def user_b() -> ClerkUser:
    return USER_B
