# src/cache/memory_store.py — v1
"""In-process cache store (CACHE_BACKEND=memory).

Entries live in a dict guarded by an asyncio lock. Expired entries are
dropped lazily on access. Suitable for tests and single-process deployments.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable

from querycache.cache.base_cache_store import BaseCacheStore, validate_ttl

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: str
    expires_at: float | None = None

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class MemoryCacheStore(BaseCacheStore):
    """Dict-backed cache store with per-key TTL."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, _Entry] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def get(self, key: str) -> str | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(self._clock()):
                del self._entries[key]
                return None
            return entry.value

    async def set(self, key: str, value: str | bytes, ttl_seconds: int | None = None) -> None:
        ttl = validate_ttl(ttl_seconds)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        expires_at = None if ttl is None else self._clock() + ttl
        async with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=expires_at)

    async def delete(self, key: str) -> int:
        async with self._lock:
            return 1 if self._entries.pop(key, None) is not None else 0

    async def delete_by_prefix(self, prefix: str) -> int:
        async with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        logger.debug("Deleted %d keys with prefix %r", len(doomed), prefix)
        return len(doomed)

    async def flush_all(self) -> None:
        async with self._lock:
            self._entries.clear()

    def keys(self) -> list[str]:
        """Live keys, for inspection in tests and the CLI."""
        now = self._clock()
        return sorted(k for k, e in self._entries.items() if not e.expired(now))

    def __len__(self) -> int:
        return len(self.keys())
