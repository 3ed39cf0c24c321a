"""Liveness and readiness probes."""

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from arena.core.logging import SERVICE_NAME
from arena.db.base import get_session_factory
from arena.db.redis import get_redis

logger = structlog.get_logger(__name__)

router = APIRouter()


async def _database_ready() -> bool:
    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("readiness_database_failed", error=str(e), error_type=type(e).__name__)
        return False
    return True


async def _redis_ready() -> bool:
    try:
        await get_redis().ping()
    except Exception as e:
        logger.error("readiness_redis_failed", error=str(e), error_type=type(e).__name__)
        return False
    return True


@router.get("/health")
async def health_check(request: Request):
    """Liveness check. Returns 503 once SIGTERM has been received."""
    if getattr(request.app.state, "shutting_down", False):
        return JSONResponse(status_code=503, content={"status": "shutting_down", "service": SERVICE_NAME})
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/ready")
async def readiness_check():
    """Readiness check: the database answers a query and Redis answers PING."""
    checks = {"database": await _database_ready(), "redis": await _redis_ready()}
    ready = all(checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "degraded", "checks": checks},
    )
