# src/cache/invalidator.py — v1
"""Invalidation on write.

Every fingerprint starts with ``<collection>:``, so purging a collection is a
single prefix delete. Unlike read-path errors, invalidation failures are
raised: a missed purge can serve stale data until the entry expires.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Awaitable, Callable

from querycache.cache.base_cache_store import BaseCacheStore
from querycache.cache.errors import InvalidationError, StoreUnavailable
from querycache.cache.fingerprint import collection_prefix
from querycache.cache.models import CacheStats, WriteDescriptor
from querycache.logging.context import operation_context

logger = logging.getLogger(__name__)

WriteExecutor = Callable[[WriteDescriptor], Awaitable[Any]]


class Invalidator:
    """Purges cache entries made stale by writes."""

    def __init__(self, store: BaseCacheStore, stats: CacheStats | None = None) -> None:
        self._store = store
        self.stats = stats or CacheStats()

    async def on_write(
        self,
        collection: str,
        affected_fingerprints: Iterable[str] | None = None,
    ) -> int:
        """Purge entries for collection.

        Args:
            collection: Collection that was written.
            affected_fingerprints: Exact keys to delete. When omitted, every
                key derived from the collection is deleted.

        Returns:
            Number of entries removed.

        Raises:
            InvalidationError: If the store could not complete the purge.
        """
        with operation_context("invalidate", collection=collection):
            try:
                if affected_fingerprints is None:
                    removed = await self._store.delete_by_prefix(collection_prefix(collection))
                else:
                    removed = 0
                    for key in affected_fingerprints:
                        removed += await self._store.delete(key)
            except StoreUnavailable as e:
                self.stats.store_errors += 1
                logger.error("Invalidation failed for collection %r: %s", collection, e)
                raise InvalidationError(collection, e.reason) from e

            self.stats.invalidations += 1
            logger.info("Invalidated %d cache entries for %r", removed, collection)
            return removed

    async def flush_all(self) -> None:
        """Remove every cache entry.

        Raises:
            InvalidationError: If the store could not be flushed.
        """
        with operation_context("flush"):
            try:
                await self._store.flush_all()
            except StoreUnavailable as e:
                self.stats.store_errors += 1
                logger.error("Cache flush failed: %s", e)
                raise InvalidationError("*", e.reason) from e
            self.stats.invalidations += 1
            logger.info("Flushed all cache entries")

    async def run_write(self, write: WriteDescriptor, executor: WriteExecutor) -> Any:
        """Execute a write, then purge the written collection before returning.

        Invalidation is attempted even when the write raises, since a failed
        write may have partially applied; the write's own error is re-raised.

        Raises:
            InvalidationError: If the write succeeded but the purge failed.
        """
        try:
            outcome = await executor(write)
        except Exception:
            try:
                await self.on_write(write.collection)
            except InvalidationError:
                logger.exception(
                    "Purge after failed %s on %r also failed",
                    write.operation, write.collection,
                )
            raise

        await self.on_write(write.collection)
        return outcome
