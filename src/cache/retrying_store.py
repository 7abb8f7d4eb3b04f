# src/cache/retrying_store.py — v1
"""Retry policy wrapper for any cache store.

Retries StoreUnavailable with exponential backoff and jitter. Other errors
(bad TTL, programming errors) pass straight through.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from querycache.cache.base_cache_store import BaseCacheStore
from querycache.cache.errors import StoreUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for store operations."""

    max_retries: int = 2
    base_delay_s: float = 0.05
    backoff_factor: float = 2.0
    jitter: bool = True


def _compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay for a given attempt (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    operation: str = "unknown",
    config: RetryConfig | None = None,
    **kwargs: Any,
) -> Any:
    """Execute an async store call, retrying on StoreUnavailable.

    Raises:
        StoreUnavailable: The last failure once retries are exhausted.
    """
    config = config or RetryConfig()
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except StoreUnavailable:
            attempts += 1
            if attempts > config.max_retries:
                raise

            delay = _compute_delay(config, attempts - 1)
            logger.warning(
                "Cache store %s failed (attempt %d/%d), retrying in %.2fs",
                operation, attempts, config.max_retries, delay,
            )
            await asyncio.sleep(delay)


class RetryingCacheStore(BaseCacheStore):
    """Decorates another store with a retry policy."""

    def __init__(self, inner: BaseCacheStore, config: RetryConfig | None = None) -> None:
        self._inner = inner
        self._config = config or RetryConfig()

    @property
    def inner(self) -> BaseCacheStore:
        return self._inner

    async def connect(self) -> None:
        await with_retry(self._inner.connect, operation="connect", config=self._config)

    async def close(self) -> None:
        await self._inner.close()

    async def get(self, key: str) -> str | None:
        return await with_retry(self._inner.get, key, operation="get", config=self._config)

    async def set(self, key: str, value: str | bytes, ttl_seconds: int | None = None) -> None:
        await with_retry(
            self._inner.set, key, value, ttl_seconds,
            operation="set", config=self._config,
        )

    async def delete(self, key: str) -> int:
        return await with_retry(self._inner.delete, key, operation="delete", config=self._config)

    async def delete_by_prefix(self, prefix: str) -> int:
        return await with_retry(
            self._inner.delete_by_prefix, prefix,
            operation="delete_by_prefix", config=self._config,
        )

    async def flush_all(self) -> None:
        await with_retry(self._inner.flush_all, operation="flush_all", config=self._config)
