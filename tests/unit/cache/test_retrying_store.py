# tests/unit/cache/test_retrying_store.py — v1
"""Tests for cache/retrying_store.py — retry wrapper."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from querycache.cache.errors import StoreUnavailable
from querycache.cache.memory_store import MemoryCacheStore
from querycache.cache.retrying_store import (
    RetryConfig,
    RetryingCacheStore,
    _compute_delay,
    with_retry,
)

_NO_DELAY = RetryConfig(max_retries=2, base_delay_s=0.0, jitter=False)


class TestComputeDelay:
    def test_exponential_without_jitter(self):
        config = RetryConfig(base_delay_s=0.1, backoff_factor=2.0, jitter=False)
        assert _compute_delay(config, 0) == pytest.approx(0.1)
        assert _compute_delay(config, 2) == pytest.approx(0.4)

    def test_jitter_bounds(self):
        config = RetryConfig(base_delay_s=1.0, jitter=True)
        for _ in range(20):
            assert 0.5 <= _compute_delay(config, 0) <= 1.5


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self):
        fn = AsyncMock(side_effect=[StoreUnavailable("get", "x"), StoreUnavailable("get", "y"), "ok"])
        assert await with_retry(fn, operation="get", config=_NO_DELAY) == "ok"
        assert fn.await_count == 3

    @pytest.mark.asyncio
    async def test_exhausted_raises_last_error(self):
        fn = AsyncMock(side_effect=StoreUnavailable("get", "down"))
        with pytest.raises(StoreUnavailable, match="down"):
            await with_retry(fn, operation="get", config=_NO_DELAY)
        assert fn.await_count == 3

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self):
        fn = AsyncMock(side_effect=ValueError("bad ttl"))
        with pytest.raises(ValueError):
            await with_retry(fn, operation="set", config=_NO_DELAY)
        assert fn.await_count == 1

    @pytest.mark.asyncio
    async def test_sleeps_between_attempts(self):
        fn = AsyncMock(side_effect=[StoreUnavailable("get", "x"), "ok"])
        config = RetryConfig(max_retries=1, base_delay_s=0.25, jitter=False)
        with patch("querycache.cache.retrying_store.asyncio.sleep", new=AsyncMock()) as sleep:
            await with_retry(fn, operation="get", config=config)
        sleep.assert_awaited_once_with(0.25)


class TestRetryingCacheStore:
    @pytest.mark.asyncio
    async def test_delegates(self):
        inner = MemoryCacheStore()
        store = RetryingCacheStore(inner, _NO_DELAY)
        await store.set("users:1", "v", ttl_seconds=5)
        assert await store.get("users:1") == "v"
        assert await store.delete_by_prefix("users:") == 1
        assert store.inner is inner

    @pytest.mark.asyncio
    async def test_retries_inner_failures(self, failing_store_cls):
        inner = failing_store_cls(fail_on={"get"})
        store = RetryingCacheStore(inner, _NO_DELAY)
        with pytest.raises(StoreUnavailable):
            await store.get("k")
        assert inner.calls == ["get", "get", "get"]

    @pytest.mark.asyncio
    async def test_recovers_after_one_failure(self):
        inner = MemoryCacheStore()
        inner.set = AsyncMock(side_effect=[StoreUnavailable("set", "blip"), None])  # type: ignore[method-assign]
        store = RetryingCacheStore(inner, _NO_DELAY)
        await store.set("k", "v", ttl_seconds=10)
        assert inner.set.await_count == 2
        inner.set.assert_awaited_with("k", "v", 10)
