# src/cache/redis_store.py — v2
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Uses the asyncio client, which multiplexes concurrent commands over a
connection pool, so a single store instance is shared by all in-flight reads
and writes. Every redis-py failure surfaces as StoreUnavailable.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from querycache.cache.base_cache_store import BaseCacheStore, validate_ttl
from querycache.cache.errors import StoreUnavailable

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "querycache:"
_SCAN_BATCH = 500
_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(text: str) -> str:
    """Escape Redis MATCH glob metacharacters so text matches literally."""
    return _GLOB_SPECIAL.sub(r"\\\1", text)


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store for shared, multi-process deployments.

    Args:
        redis_url: Connection URL, e.g. ``redis://localhost:6379/0``.
        namespace: Prefix prepended to every physical key. ``flush_all``
            clears only this namespace; with an empty namespace it runs
            FLUSHDB on the selected database.
        socket_timeout: Seconds before a command is abandoned.
    """

    def __init__(
        self,
        redis_url: str,
        namespace: str = DEFAULT_NAMESPACE,
        socket_timeout: float = 5.0,
    ) -> None:
        try:
            import redis.asyncio as aioredis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._redis_url = redis_url
        self._namespace = namespace
        self._client: Any = aioredis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
            health_check_interval=30,
        )

    @property
    def namespace(self) -> str:
        return self._namespace

    async def connect(self) -> None:
        """Verify the server is reachable."""
        await self._call("connect", self._client.ping())
        logger.info("Connected to Redis cache store (namespace=%r)", self._namespace)

    async def close(self) -> None:
        """Close the connection pool."""
        await self._client.aclose()
        logger.info("Redis cache store closed")

    async def get(self, key: str) -> str | None:
        return await self._call("get", self._client.get(self._key(key)))

    async def set(self, key: str, value: str | bytes, ttl_seconds: int | None = None) -> None:
        ttl = validate_ttl(ttl_seconds)
        await self._call("set", self._client.set(self._key(key), value, ex=ttl))

    async def delete(self, key: str) -> int:
        return int(await self._call("delete", self._client.delete(self._key(key))))

    async def delete_by_prefix(self, prefix: str) -> int:
        """SCAN for matching keys and UNLINK them in batches."""
        pattern = f"{escape_glob(self._key(prefix))}*"
        removed = 0
        batch: list[str] = []
        try:
            async for key in self._client.scan_iter(match=pattern, count=_SCAN_BATCH):
                batch.append(key)
                if len(batch) >= _SCAN_BATCH:
                    removed += await self._client.unlink(*batch)
                    batch = []
            if batch:
                removed += await self._client.unlink(*batch)
        except Exception as e:
            if not _is_store_error(e):
                raise
            raise StoreUnavailable("delete_by_prefix", str(e)) from e
        logger.debug("Unlinked %d keys matching %r", removed, pattern)
        return removed

    async def flush_all(self) -> None:
        if not self._namespace:
            await self._call("flush_all", self._client.flushdb())
            return
        await self.delete_by_prefix("")

    def _key(self, key: str) -> str:
        return f"{self._namespace}{key}"

    async def _call(self, operation: str, awaitable: Any) -> Any:
        try:
            return await awaitable
        except Exception as e:
            if not _is_store_error(e):
                raise
            raise StoreUnavailable(operation, str(e)) from e


def _is_store_error(error: Exception) -> bool:
    """True for failures that mean the store, not the caller, is at fault."""
    from redis.exceptions import RedisError

    return isinstance(error, (RedisError, OSError))
