"""Tests for the read-result cache backends.

Covers:
- Memory backend: hit, miss, expiry against an injected clock, removal
- Redis backend: prefixed SETEX/GET/DELETE, Redis errors treated as a miss
- Backend selection
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from src.cache.result_cache import MemoryResultCache, RedisResultCache, build_result_cache


class _FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestMemoryResultCache:
    @pytest.mark.asyncio()
    async def test_hit_before_expiry(self):
        clock = _FakeClock()
        cache = MemoryResultCache(clock=clock)

        await cache.set("quotation_request_1", '{"id": 1}', ttl=300)
        clock.now += 299

        assert await cache.get("quotation_request_1") == '{"id": 1}'

    @pytest.mark.asyncio()
    async def test_expired_entry_is_dropped(self):
        clock = _FakeClock()
        cache = MemoryResultCache(clock=clock)

        await cache.set("quotation_request_1", "x", ttl=300)
        clock.now += 300

        assert await cache.get("quotation_request_1") is None
        assert len(cache) == 0

    @pytest.mark.asyncio()
    async def test_miss(self):
        assert await MemoryResultCache().get("nope") is None

    @pytest.mark.asyncio()
    async def test_remove(self):
        cache = MemoryResultCache()
        await cache.set("a", "1", ttl=60)
        await cache.set("b", "2", ttl=60)

        await cache.remove("a")
        await cache.remove("missing")

        assert await cache.get("a") is None
        assert await cache.get("b") == "2"

    @pytest.mark.asyncio()
    async def test_set_overwrites_and_resets_ttl(self):
        clock = _FakeClock()
        cache = MemoryResultCache(clock=clock)

        await cache.set("k", "old", ttl=10)
        clock.now += 8
        await cache.set("k", "new", ttl=10)
        clock.now += 8

        assert await cache.get("k") == "new"


def _make_redis() -> AsyncMock:
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.setex = AsyncMock()
    redis.delete = AsyncMock()
    return redis


class TestRedisResultCache:
    @pytest.mark.asyncio()
    async def test_set_uses_prefixed_setex(self):
        redis = _make_redis()
        cache = RedisResultCache(redis)

        await cache.set("quotation_request_3", "{}", ttl=300)

        redis.setex.assert_awaited_once_with("qrcache:quotation_request_3", 300, "{}")

    @pytest.mark.asyncio()
    async def test_get_returns_stored_value(self):
        redis = _make_redis()
        redis.get = AsyncMock(return_value='{"id": 3}')
        cache = RedisResultCache(redis, prefix="test:")

        assert await cache.get("quotation_request_3") == '{"id": 3}'
        redis.get.assert_awaited_once_with("test:quotation_request_3")

    @pytest.mark.asyncio()
    async def test_redis_error_is_a_miss(self):
        redis = _make_redis()
        redis.get = AsyncMock(side_effect=ConnectionError("redis down"))
        cache = RedisResultCache(redis)

        assert await cache.get("quotation_request_3") is None

    @pytest.mark.asyncio()
    async def test_write_errors_are_swallowed(self):
        redis = _make_redis()
        redis.setex = AsyncMock(side_effect=ConnectionError("redis down"))
        redis.delete = AsyncMock(side_effect=ConnectionError("redis down"))
        cache = RedisResultCache(redis)

        await cache.set("k", "v", ttl=5)
        await cache.remove("k")

        redis.delete.assert_awaited_once_with("qrcache:k")


class TestBuildResultCache:
    def test_memory_by_default(self):
        with patch("src.cache.result_cache.settings") as mock_settings:
            mock_settings.cache.cache_backend = "memory"
            cache = build_result_cache()

        assert isinstance(cache, MemoryResultCache)

    def test_redis_backend(self):
        assert isinstance(build_result_cache("redis"), RedisResultCache)
