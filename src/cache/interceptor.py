# src/cache/interceptor.py — v1
"""Cache-aside query interceptor.

For every read: fingerprint the query, probe the store, hydrate on a hit,
otherwise run the real executor and populate the store. Store and hydration
problems degrade to a cache miss; only UnserializableQuery reaches the caller.

Usage:
    interceptor = QueryInterceptor(store, registry)
    result = await interceptor.run_read(query, executor.execute)

    find = interceptor.wrap(executor.execute)
    result = await find(query)
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable

from querycache.cache.base_cache_store import BaseCacheStore, validate_ttl
from querycache.cache.errors import HydrationFailure, StoreUnavailable, UnserializableResult
from querycache.cache.fingerprint import compute_fingerprint
from querycache.cache.models import CacheStats, QueryDescriptor, QueryResult, as_result
from querycache.cache.serialization import RecordShapeRegistry, hydrate, serialize
from querycache.logging.context import operation_context, set_fingerprint

logger = logging.getLogger(__name__)

ReadExecutor = Callable[[QueryDescriptor], Awaitable[Any]]


class QueryInterceptor:
    """Reads through a cache store in front of a real query executor.

    Holds no per-query state. Concurrent misses for the same fingerprint may
    each run the executor and store the same entry; that duplication is
    accepted.

    Args:
        store: Shared cache store handle.
        registry: Record shapes used to hydrate cached records.
        default_ttl_seconds: Expiration applied when run_read gets no TTL.
        include_options: Fold projection/sort/skip/limit into fingerprints.
        hash_keys: Hash fingerprint bodies (collection prefix kept).
        stats: Counters to update; a fresh CacheStats by default.
    """

    def __init__(
        self,
        store: BaseCacheStore,
        registry: RecordShapeRegistry | None = None,
        default_ttl_seconds: int | None = None,
        include_options: bool = True,
        hash_keys: bool = False,
        stats: CacheStats | None = None,
    ) -> None:
        self._store = store
        self._registry = registry or RecordShapeRegistry()
        self._default_ttl = validate_ttl(default_ttl_seconds)
        self._include_options = include_options
        self._hash_keys = hash_keys
        self.stats = stats or CacheStats()
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def registry(self) -> RecordShapeRegistry:
        return self._registry

    def fingerprint(self, query: QueryDescriptor) -> str:
        """Cache key this interceptor uses for query."""
        return compute_fingerprint(
            query,
            include_options=self._include_options,
            hash_keys=self._hash_keys,
        )

    async def run_read(
        self,
        query: QueryDescriptor,
        executor: ReadExecutor,
        ttl_seconds: int | None = None,
    ) -> QueryResult:
        """Serve query from cache, or run executor and cache its result.

        Returns:
            The hydrated cached result on a hit; the executor's own result
            (not a serialized round trip) on a miss.

        Raises:
            UnserializableQuery: If the query cannot be fingerprinted.
            ValueError: If ttl_seconds is not a positive int.
            Exception: Whatever the executor raises on a miss.
        """
        ttl = validate_ttl(ttl_seconds) if ttl_seconds is not None else self._default_ttl

        with operation_context("read", collection=query.collection):
            key = self.fingerprint(query)
            set_fingerprint(key)

            cached = await self._probe(key)
            if cached:
                try:
                    result = hydrate(cached, self._registry.resolve(query.collection))
                except HydrationFailure as e:
                    self.stats.hydration_failures += 1
                    logger.warning("Discarding unreadable cache entry %s: %s", key, e)
                else:
                    self.stats.hits += 1
                    logger.debug("Cache hit %s", key)
                    return result

            self.stats.misses += 1
            logger.debug("Cache miss %s", key)
            result = as_result(await executor(query), query.shape)
            await self._populate(key, result, ttl)
            return result

    def wrap(self, executor: ReadExecutor) -> Callable[..., Awaitable[QueryResult]]:
        """Return an async callable that reads through this cache."""

        @functools.wraps(executor)
        async def cached_executor(
            query: QueryDescriptor, ttl_seconds: int | None = None
        ) -> QueryResult:
            return await self.run_read(query, executor, ttl_seconds=ttl_seconds)

        return cached_executor

    async def drain(self) -> None:
        """Wait for cache writes still running in the background."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _probe(self, key: str) -> str | None:
        try:
            return await self._store.get(key)
        except StoreUnavailable as e:
            self.stats.store_errors += 1
            logger.warning("Cache probe failed for %s, reading from source: %s", key, e)
            return None

    async def _populate(self, key: str, result: QueryResult, ttl: int | None) -> None:
        try:
            blob = serialize(result)
        except UnserializableResult as e:
            self.stats.unserializable_results += 1
            logger.warning("Result for %s not cached: %s", key, e)
            return

        # Shielded so a caller cancelled mid-write does not abort the store write.
        task = asyncio.ensure_future(self._store_blob(key, blob, ttl))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        await asyncio.shield(task)

    async def _store_blob(self, key: str, blob: str, ttl: int | None) -> None:
        try:
            await self._store.set(key, blob, ttl_seconds=ttl)
        except StoreUnavailable as e:
            self.stats.store_errors += 1
            logger.warning("Cache write failed for %s: %s", key, e)
            return
        self.stats.populated += 1
