# src/api/facade.py — v2
"""Public API facade — one object wiring store, interceptor and invalidator.

Usage:
    from querycache.api.facade import QueryCache

    async with QueryCache.from_settings(settings, registry) as cache:
        user = await cache.find_one("users", {"_id": "u1"}, db.execute)
        await cache.write(WriteDescriptor(...), db.execute_write)
"""

from __future__ import annotations

import logging
from typing import Any

from querycache.cache.base_cache_store import BaseCacheStore
from querycache.cache.cache_factory import create_cache_store
from querycache.cache.interceptor import QueryInterceptor, ReadExecutor
from querycache.cache.invalidator import Invalidator, WriteExecutor
from querycache.cache.models import (
    CacheStats,
    QueryDescriptor,
    Record,
    WriteDescriptor,
    as_result,
)
from querycache.cache.serialization import RecordShapeRegistry
from querycache.config.settings import Settings

logger = logging.getLogger(__name__)


class QueryCache:
    """Read-through cache for a document database.

    The store handle is created once and shared by reads and writes. Call
    ``connect()``/``close()`` or use the instance as an async context manager.
    """

    def __init__(
        self,
        store: BaseCacheStore,
        registry: RecordShapeRegistry | None = None,
        default_ttl_seconds: int | None = None,
        include_options: bool = True,
        hash_keys: bool = False,
        enabled: bool = True,
    ) -> None:
        self.store = store
        self.stats = CacheStats()
        self.enabled = enabled
        self.interceptor = QueryInterceptor(
            store,
            registry=registry,
            default_ttl_seconds=default_ttl_seconds,
            include_options=include_options,
            hash_keys=hash_keys,
            stats=self.stats,
        )
        self.invalidator = Invalidator(store, stats=self.stats)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        registry: RecordShapeRegistry | None = None,
    ) -> QueryCache:
        """Build a QueryCache from settings (loaded from .env if None)."""
        settings = settings or Settings()
        return cls(
            create_cache_store(settings),
            registry=registry,
            default_ttl_seconds=settings.cache_default_ttl_seconds,
            include_options=settings.fingerprint_include_options,
            hash_keys=settings.fingerprint_hash_keys,
            enabled=settings.cache_enabled,
        )

    async def connect(self) -> None:
        await self.store.connect()
        logger.info("Query cache ready (store=%s, enabled=%s)", type(self.store).__name__, self.enabled)

    async def close(self) -> None:
        await self.interceptor.drain()
        await self.store.close()

    async def __aenter__(self) -> QueryCache:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def read(
        self,
        query: QueryDescriptor,
        executor: ReadExecutor,
        ttl_seconds: int | None = None,
    ) -> Any:
        """Run a read through the cache and return the plain value.

        Returns a record (or None) for single-shape queries and a list of
        records for sequence-shape queries.
        """
        if not self.enabled:
            return as_result(await executor(query), query.shape).value
        result = await self.interceptor.run_read(query, executor, ttl_seconds=ttl_seconds)
        return result.value

    async def find_one(
        self,
        collection: str,
        filter: dict[str, Any],
        executor: ReadExecutor,
        ttl_seconds: int | None = None,
        **options: Any,
    ) -> Record | None:
        query = QueryDescriptor(collection=collection, filter=filter, shape="single", **options)
        return await self.read(query, executor, ttl_seconds=ttl_seconds)

    async def find(
        self,
        collection: str,
        filter: dict[str, Any],
        executor: ReadExecutor,
        ttl_seconds: int | None = None,
        **options: Any,
    ) -> list[Record]:
        query = QueryDescriptor(collection=collection, filter=filter, shape="sequence", **options)
        return await self.read(query, executor, ttl_seconds=ttl_seconds)

    async def write(self, write: WriteDescriptor, executor: WriteExecutor) -> Any:
        """Execute a write and purge its collection before returning.

        The purge runs even when caching is disabled, since the store is
        shared and may be re-enabled or read by other processes.
        """
        return await self.invalidator.run_write(write, executor)

    async def invalidate(self, collection: str) -> int:
        return await self.invalidator.on_write(collection)

    async def flush(self) -> None:
        await self.invalidator.flush_all()
