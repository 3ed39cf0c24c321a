"""Fixed-window rate limiter on Redis (INCR + EXPIRE)."""

import redis.asyncio as redis
import structlog

from arena.core.exceptions import RateLimitExceeded

logger = structlog.get_logger(__name__)


class FixedWindowRateLimiter:
    """Allow ``limit`` hits per key per ``window_seconds``.

    The window starts at the first hit and expires with its Redis key.
    """

    def __init__(self, redis_client: redis.Redis, limit: int, window_seconds: int, prefix: str = "arena:ratelimit"):
        self.redis = redis_client
        self.limit = limit
        self.window_seconds = window_seconds
        self.prefix = prefix

    def _key(self, scope: str, subject: str) -> str:
        return f"{self.prefix}:{scope}:{subject}"

    async def hit(self, scope: str, subject: str) -> int:
        """Record one hit and return the count in the current window.

        Raises:
            RateLimitExceeded: If the hit exceeds the limit
        """
        key = self._key(scope, subject)
        count = await self.redis.incr(key)
        if count == 1:
            await self.redis.expire(key, self.window_seconds)

        if count > self.limit:
            ttl = await self.redis.ttl(key)
            if ttl < 0:
                # Key lost its expiry (e.g. crash between INCR and EXPIRE)
                await self.redis.expire(key, self.window_seconds)
                ttl = self.window_seconds
            logger.warning("rate_limit_exceeded", scope=scope, subject=subject, count=count, limit=self.limit)
            raise RateLimitExceeded(self.limit, max(ttl, 1))

        return count
