# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides a sample record model, an in-memory document executor that counts
its calls, a failing store, and ready-made stores/interceptors.
No external dependencies — all I/O is in-process.
"""

from __future__ import annotations

import copy
from typing import Any

import pytest
from pydantic import BaseModel

from querycache.cache.base_cache_store import BaseCacheStore
from querycache.cache.errors import StoreUnavailable
from querycache.cache.interceptor import QueryInterceptor
from querycache.cache.invalidator import Invalidator
from querycache.cache.memory_store import MemoryCacheStore
from querycache.cache.models import CacheStats, QueryDescriptor, WriteDescriptor
from querycache.cache.serialization import RecordShapeRegistry


class User(BaseModel):
    """Sample record shape for the ``users`` collection."""

    id: str
    name: str
    age: int | None = None
    tags: list[str] = []


class FakeDocumentDB:
    """Minimal document database: exact-match filters, sort, skip, limit.

    Counts executor calls so tests can assert when the cache absorbed a read.
    """

    def __init__(self, collections: dict[str, list[dict[str, Any]]] | None = None):
        self.collections: dict[str, list[dict[str, Any]]] = copy.deepcopy(collections or {})
        self.read_calls: list[QueryDescriptor] = []
        self.write_calls: list[WriteDescriptor] = []
        self.model_for: dict[str, type[BaseModel]] = {}

    def _matches(self, doc: dict[str, Any], flt: dict[str, Any]) -> bool:
        return all(doc.get(k) == v for k, v in flt.items())

    async def execute(self, query: QueryDescriptor) -> Any:
        self.read_calls.append(query)
        docs = [d for d in self.collections.get(query.collection, []) if self._matches(d, query.filter)]
        for field, direction in reversed(query.sort):
            docs.sort(key=lambda d: d.get(field), reverse=direction < 0)
        docs = docs[query.skip:]
        if query.limit is not None:
            docs = docs[: query.limit]
        model = self.model_for.get(query.collection)
        records = [model.model_validate(d) if model else dict(d) for d in docs]
        if query.shape == "single":
            return records[0] if records else None
        return records

    async def execute_write(self, write: WriteDescriptor) -> dict[str, int]:
        self.write_calls.append(write)
        docs = self.collections.setdefault(write.collection, [])
        if write.operation == "insert":
            docs.append(dict(write.payload))
            return {"inserted": 1}
        matched = [d for d in docs if self._matches(d, write.filter)]
        if write.operation == "delete":
            self.collections[write.collection] = [d for d in docs if d not in matched]
            return {"deleted": len(matched)}
        for doc in matched:
            if write.operation == "replace":
                doc.clear()
            doc.update(write.payload)
        return {"modified": len(matched)}


class FailingStore(BaseCacheStore):
    """Store whose selected operations raise StoreUnavailable."""

    def __init__(self, fail_on: set[str] | None = None, inner: BaseCacheStore | None = None):
        self.fail_on = fail_on if fail_on is not None else {
            "get", "set", "delete", "delete_by_prefix", "flush_all",
        }
        self.inner = inner or MemoryCacheStore()
        self.calls: list[str] = []

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if op in self.fail_on:
            raise StoreUnavailable(op, "connection refused")

    async def get(self, key):
        self._check("get")
        return await self.inner.get(key)

    async def set(self, key, value, ttl_seconds=None):
        self._check("set")
        await self.inner.set(key, value, ttl_seconds)

    async def delete(self, key):
        self._check("delete")
        return await self.inner.delete(key)

    async def delete_by_prefix(self, prefix):
        self._check("delete_by_prefix")
        return await self.inner.delete_by_prefix(prefix)

    async def flush_all(self):
        self._check("flush_all")
        await self.inner.flush_all()


# === FIXTURES: Sample data ===


@pytest.fixture
def users_data() -> list[dict[str, Any]]:
    return [
        {"id": "u1", "name": "Sam", "age": 31, "tags": ["admin"]},
        {"id": "u2", "name": "Alex", "age": 25, "tags": []},
        {"id": "u3", "name": "Robin", "age": 40, "tags": ["ops", "admin"]},
    ]


@pytest.fixture
def db(users_data) -> FakeDocumentDB:
    database = FakeDocumentDB(
        {
            "users": users_data,
            "blogs": [{"id": "b1", "title": "Caching", "author": "u1"}],
        }
    )
    database.model_for["users"] = User
    return database


@pytest.fixture
def registry() -> RecordShapeRegistry:
    return RecordShapeRegistry({"users": User})


# === FIXTURES: Stores and components ===


@pytest.fixture
def memory_store() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def stats() -> CacheStats:
    return CacheStats()


@pytest.fixture
def interceptor(memory_store, registry, stats) -> QueryInterceptor:
    return QueryInterceptor(memory_store, registry=registry, stats=stats)


@pytest.fixture
def invalidator(memory_store, stats) -> Invalidator:
    return Invalidator(memory_store, stats=stats)


@pytest.fixture
def user_model() -> type[User]:
    return User


@pytest.fixture
def failing_store_cls() -> type[FailingStore]:
    return FailingStore
