"""
Fixed-window rate limiting

Both limiters share one contract: ``await limiter.allow(key)`` returns True
when the request may proceed. A window opens with the first request from a
key and lasts ``window_seconds``; within it at most ``limit`` requests pass.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict

import structlog
from redis.exceptions import RedisError

logger = structlog.get_logger(__name__)


def rate_limit_key(identifier: str, action: str = "requests") -> str:
    """Key under which a client's counter is stored"""
    return f"rate_limit:{action}:{identifier}"


@dataclass
class WindowCounter:
    count: int
    window_start: float


class InMemoryRateLimiter:
    """
    Per-process fixed-window counter table.

    allow() never awaits, so table updates cannot interleave on the event loop.
    Expired entries are purged lazily on every call.
    """

    def __init__(self, limit: int = 100, window_seconds: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._counters: Dict[str, WindowCounter] = {}

    def _purge_expired(self, now: float):
        expired = [key for key, counter in self._counters.items()
                   if now - counter.window_start > self.window_seconds]
        for key in expired:
            del self._counters[key]

    async def allow(self, key: str) -> bool:
        now = self._clock()
        self._purge_expired(now)

        counter = self._counters.get(key)
        if counter is None:
            self._counters[key] = WindowCounter(count=1, window_start=now)
            return True

        if counter.count >= self.limit:
            return False

        counter.count += 1
        return True

    def tracked_keys(self) -> int:
        """Number of keys with an open window"""
        return len(self._counters)

    async def close(self):
        self._counters.clear()


class RedisRateLimiter:
    """
    Fixed-window counter kept in Redis so several proxy instances share limits.

    The first INCR of a window sets the key expiry; the key disappears when
    the window ends, which resets the count. A counter found without a TTL
    gets one on the next request. Redis failures let the request through.
    """

    def __init__(self, redis, limit: int = 100, window_seconds: int = 60):
        self.redis = redis
        self.limit = limit
        self.window_seconds = int(window_seconds)

    async def allow(self, key: str) -> bool:
        redis_key = rate_limit_key(key)
        try:
            count = await self.redis.incr(redis_key)
            if count == 1 or await self.redis.ttl(redis_key) == -1:
                await self.redis.expire(redis_key, self.window_seconds)
        except RedisError as e:
            logger.warning("Rate limiter unavailable, allowing request", key=redis_key, error=str(e))
            return True
        return count <= self.limit

    async def close(self):
        await self.redis.aclose()


def build_rate_limiter(settings):
    """Create the limiter selected by RATE_LIMIT_BACKEND"""
    if settings.rate_limit_backend == "redis":
        import redis.asyncio as aioredis

        client = aioredis.from_url(settings.redis_url, decode_responses=True)
        logger.info("Using Redis rate limiter", limit=settings.rate_limit_requests,
                    window_seconds=settings.rate_limit_window_seconds)
        return RedisRateLimiter(client, settings.rate_limit_requests, settings.rate_limit_window_seconds)

    logger.info("Using in-memory rate limiter", limit=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds)
    return InMemoryRateLimiter(settings.rate_limit_requests, settings.rate_limit_window_seconds)
