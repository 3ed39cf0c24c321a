"""Redis client shared by the analysis rate limiter and the readiness probe."""

import redis.asyncio as redis
import structlog

from arena.core.config import get_settings

logger = structlog.get_logger(__name__)

_redis: redis.Redis | None = None


async def init_redis(url: str | None = None, client: redis.Redis | None = None) -> redis.Redis:
    """Install the process-wide Redis client and verify it with PING.

    ``client`` lets callers supply a ready-made client (tests use fakeredis);
    otherwise one is built from ``url`` or ``settings.redis_url``. Calling
    this again after a successful init returns the existing client.
    """
    global _redis

    if _redis is not None:
        return _redis

    if client is None:
        client = redis.from_url(
            url or get_settings().redis_url,
            encoding="utf-8",
            decode_responses=True,
            health_check_interval=30,
        )

    await client.ping()
    _redis = client
    logger.debug("redis_client_installed", client_type=type(client).__name__)
    return _redis


async def close_redis() -> None:
    global _redis

    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> redis.Redis:
    """Return the shared Redis client.

    Raises RuntimeError if init_redis() has not been called.
    """
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis
