# src/cache/base_cache_store.py — v2
"""Abstract cache store interface.

Keys are strings, values are strings or bytes. Every operation may raise
StoreUnavailable; callers decide whether that is fatal.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    async def connect(self) -> None:
        """Open connections. Stores without a connection phase do nothing."""

    async def close(self) -> None:
        """Release connections. Stores without a connection phase do nothing."""

    async def __aenter__(self) -> BaseCacheStore:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the blob stored under key, or None when absent."""

    @abstractmethod
    async def set(self, key: str, value: str | bytes, ttl_seconds: int | None = None) -> None:
        """Store a blob, optionally expiring after ttl_seconds."""

    @abstractmethod
    async def delete(self, key: str) -> int:
        """Remove one key. Returns the number of keys removed (0 or 1)."""

    @abstractmethod
    async def delete_by_prefix(self, prefix: str) -> int:
        """Remove every key starting with prefix. Returns the count removed."""

    @abstractmethod
    async def flush_all(self) -> None:
        """Remove every key owned by this store."""


def validate_ttl(ttl_seconds: int | None) -> int | None:
    """Reject TTLs that are not positive whole seconds."""
    if ttl_seconds is None:
        return None
    if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int):
        raise ValueError(f"ttl_seconds must be an int, got {type(ttl_seconds).__name__}")
    if ttl_seconds <= 0:
        raise ValueError(f"ttl_seconds must be > 0, got {ttl_seconds}")
    return ttl_seconds
