# tests/unit/cache/test_cache_factory.py — v4
"""Tests for cache/cache_factory.py."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from querycache.cache.cache_factory import create_cache_store
from querycache.cache.memory_store import MemoryCacheStore
from querycache.cache.redis_store import RedisCacheStore
from querycache.cache.retrying_store import RetryingCacheStore
from querycache.config.settings import ConfigurationError, Settings


class TestCreateCacheStore:
    def test_default_memory(self):
        store = create_cache_store()
        assert isinstance(store, MemoryCacheStore)

    def test_memory_backend(self):
        s = Settings(_env_file=None, cache_backend="memory")
        assert isinstance(create_cache_store(s), MemoryCacheStore)

    def test_redis_backend(self):
        s = Settings(
            _env_file=None,
            cache_backend="redis",
            cache_redis_url="redis://cache:6379/0",
            cache_namespace="app:",
        )
        with patch("redis.asyncio.from_url") as from_url:
            store = create_cache_store(s)
        assert isinstance(store, RedisCacheStore)
        assert store.namespace == "app:"
        assert from_url.call_args.args[0] == "redis://cache:6379/0"

    def test_redis_missing_url(self):
        with pytest.raises(ConfigurationError, match="CACHE_REDIS_URL"):
            Settings(_env_file=None, cache_backend="redis", cache_redis_url="")

    def test_retry_wrapper(self):
        s = Settings(_env_file=None, store_retry_attempts=3, store_retry_base_delay_s=0.2)
        store = create_cache_store(s)
        assert isinstance(store, RetryingCacheStore)
        assert isinstance(store.inner, MemoryCacheStore)

    def test_unsupported_backend(self):
        """Settings validation rejects invalid backends before factory is reached."""
        with pytest.raises((ValueError, Exception)):
            s = Settings(_env_file=None, cache_backend="nonexistent")
            create_cache_store(s)
