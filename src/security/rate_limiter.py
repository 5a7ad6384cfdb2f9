"""Redis-backed fixed-window rate limiter.

Uses INCR + EXPIRE for simple, performant rate limiting.
Checks run as FastAPI dependencies, before any DB or storage work. The
public submission endpoint gets a much tighter budget than staff endpoints.

Usage:
    from src.security.rate_limiter import rate_limiter

    allowed, retry_after = await rate_limiter.check("rate:public:1.2.3.4", limit=5, window=60)
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from fastapi import HTTPException, Request, status

from src.config import settings
from src.db.engine import redis_client

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed-window rate limiter backed by Redis INCR + EXPIRE."""

    def __init__(self, redis: object) -> None:
        self._redis = redis

    async def check(self, key: str, limit: int, window: int) -> tuple[bool, int]:
        """Check if a request is within the rate limit.

        Args:
            key: Redis key (e.g. "rate:public:{client_ip}").
            limit: Max requests allowed in the window.
            window: Window size in seconds.

        Returns:
            (allowed, retry_after) — allowed is True if under limit,
            retry_after is seconds until window resets (0 if allowed).
        """
        try:
            count = await self._redis.incr(key)
            if count == 1:
                await self._redis.expire(key, window)

            if count > limit:
                ttl = await self._redis.ttl(key)
                retry_after = max(ttl, 1)
                return False, retry_after

            return True, 0
        except Exception:
            logger.exception("Rate limiter Redis error for key %s", key)
            # Fail open: callers are never blocked when Redis is down
            return True, 0


# Module-level singleton
rate_limiter = RateLimiter(redis_client)


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit(scope: str) -> Callable[[Request], Awaitable[None]]:
    """Build a FastAPI dependency enforcing the limit configured for ``scope``.

    Scopes: "public" (submissions) and "staff" (everything else).
    """

    async def dependency(request: Request) -> None:
        limit = (
            settings.rate_limit.public_submission_limit
            if scope == "public"
            else settings.rate_limit.staff_limit
        )
        allowed, retry_after = await rate_limiter.check(
            f"rate:{scope}:{_client_ip(request)}",
            limit=limit,
            window=settings.rate_limit.rate_limit_window,
        )
        if not allowed:
            logger.warning("Rate limit exceeded: scope=%s ip=%s", scope, _client_ip(request))
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests",
                headers={"Retry-After": str(retry_after)},
            )

    dependency.__name__ = f"rate_limit_{scope}"
    return dependency


public_rate_limit = rate_limit("public")
staff_rate_limit = rate_limit("staff")
