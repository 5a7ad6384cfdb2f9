"""Tests for settings validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.config import CacheSettings, DatabaseSettings, Settings, StorageSettings


class TestSettings:
    def test_log_level_is_normalised(self):
        assert Settings(log_level="info").log_level == "INFO"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="chatty")

    def test_is_production(self):
        assert Settings(environment="production").is_production is True
        assert Settings(environment="development").is_production is False


class TestSubSettings:
    def test_cache_backend_is_validated(self):
        assert CacheSettings(cache_backend="Redis").cache_backend == "redis"
        with pytest.raises(ValidationError):
            CacheSettings(cache_backend="memcached")

    def test_storage_timeout_bounds(self):
        with pytest.raises(ValidationError):
            StorageSettings(upload_service_timeout=0)

    def test_sync_database_url(self):
        db = DatabaseSettings(database_url="postgresql+asyncpg://u:p@db:5432/q")
        assert db.database_url_sync == "postgresql://u:p@db:5432/q"
