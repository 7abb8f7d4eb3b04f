# src/cache/errors.py — v1
"""Error taxonomy for the query cache.

Read-path errors (StoreUnavailable, HydrationFailure, UnserializableResult)
are caught by the interceptor and degrade to pass-through. UnserializableQuery
and InvalidationError reach the caller.
"""

from __future__ import annotations


class QueryCacheError(Exception):
    """Base class for all query cache errors."""


class UnserializableQuery(QueryCacheError):
    """Query descriptor contains values that cannot be fingerprinted."""

    def __init__(self, collection: str, reason: str):
        self.collection = collection
        self.reason = reason
        super().__init__(f"Cannot fingerprint query on '{collection}': {reason}")


class UnserializableResult(QueryCacheError):
    """Query result contains values the cache cannot represent."""


class StoreUnavailable(QueryCacheError):
    """Cache store could not be reached or rejected the operation."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Cache store unavailable during {operation}: {reason}")


class InvalidationError(StoreUnavailable):
    """Entries for a collection could not be purged after a write."""

    def __init__(self, collection: str, reason: str):
        self.collection = collection
        super().__init__(f"invalidate({collection!r})", reason)


class HydrationFailure(QueryCacheError):
    """Cached blob is corrupt or incompatible with the registered record shape."""
