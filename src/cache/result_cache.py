"""Fixed-TTL memoization of read-query results.

Values are JSON strings (pydantic ``model_dump_json``) so both backends
behave the same way:

- MemoryResultCache — per-process dict with monotonic expiry. Entries are
  not shared between replicas.
- RedisResultCache — SETEX/GET/DELETE under a key prefix. Redis errors are
  logged and treated as a miss; a cache outage never fails a read.

Usage:
    cache = build_result_cache()
    cached = await cache.get("quotation_request_42")
    await cache.set("quotation_request_42", dto.model_dump_json(), ttl=300)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Protocol

import redis.asyncio as aioredis

from src.config import settings

logger = logging.getLogger(__name__)

_REDIS_KEY_PREFIX = "qrcache:"


class ResultCache(Protocol):
    """Key/value store with per-entry expiry."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl: int) -> None: ...

    async def remove(self, key: str) -> None: ...


class MemoryResultCache:
    """Process-local cache. No size bound; entries leave on expiry or removal."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[float, str]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._entries[key] = (self._clock() + ttl, value)

    async def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


class RedisResultCache:
    """Shared cache backed by Redis SETEX."""

    def __init__(self, redis: aioredis.Redis, prefix: str = _REDIS_KEY_PREFIX) -> None:
        self._redis = redis
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(self._key(key))
        except Exception:
            logger.warning("Result cache read failed for %s", key, exc_info=True)
            return None

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._redis.setex(self._key(key), ttl, value)
        except Exception:
            logger.warning("Result cache write failed for %s", key, exc_info=True)

    async def remove(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
        except Exception:
            logger.warning("Result cache invalidation failed for %s", key, exc_info=True)


def build_result_cache(backend: str | None = None) -> ResultCache:
    """Build the cache selected by CACHE_BACKEND (memory by default)."""
    backend = backend or settings.cache.cache_backend
    if backend == "redis":
        from src.db.engine import redis_client

        logger.info("Using Redis result cache")
        return RedisResultCache(redis_client)
    logger.info("Using in-process result cache")
    return MemoryResultCache()
