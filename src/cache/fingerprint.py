# src/cache/fingerprint.py — v3
"""Canonical query fingerprinting.

A fingerprint is ``<collection>:<canonical filter JSON>``, followed by
``#<canonical options JSON>`` when the query carries non-default options.
Keys are sorted before serialization so condition insertion order never
changes the result, and the collection prefix lets the invalidator purge a
collection with a single prefix delete.
"""

from __future__ import annotations

import hashlib
import json
import re
import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any

from querycache.cache.errors import UnserializableQuery
from querycache.cache.models import QueryDescriptor

KEY_SEPARATOR = ":"
OPTIONS_SEPARATOR = "#"


def compute_fingerprint(
    query: QueryDescriptor,
    include_options: bool = True,
    hash_keys: bool = False,
) -> str:
    """Compute the cache key for a query.

    Args:
        query: Query to fingerprint. Never mutated.
        include_options: Fold projection/sort/skip/limit into the key.
            The result shape is part of the key either way.
        hash_keys: Replace everything after the collection prefix with its
            SHA-256 hex digest.

    Returns:
        Fingerprint string starting with ``collection_prefix(query.collection)``.

    Raises:
        UnserializableQuery: If a condition value has no canonical form.
    """
    body = canonical_json(query.filter, collection=query.collection)

    extras: dict[str, Any] | None = None
    if include_options:
        if not query.has_default_options():
            extras = query.options()
    elif query.shape != "sequence":
        extras = {"shape": query.shape}
    if extras is not None:
        # A canonical JSON object ends at its closing brace, so appending
        # options can never collide with a bare filter key.
        body += OPTIONS_SEPARATOR + canonical_json(extras, collection=query.collection)

    if hash_keys:
        body = hashlib.sha256(body.encode("utf-8")).hexdigest()
    return f"{collection_prefix(query.collection)}{body}"


def collection_prefix(collection: str) -> str:
    """Key prefix shared by every fingerprint derived from ``collection``."""
    return f"{collection}{KEY_SEPARATOR}"


def canonical_json(value: Any, collection: str = "") -> str:
    """Serialize ``value`` to compact JSON with sorted keys.

    Raises:
        UnserializableQuery: On cycles or values without a canonical form.
    """
    try:
        return _dumps(value)
    except (TypeError, ValueError, RecursionError) as e:
        raise UnserializableQuery(collection, str(e)) from e


def _dumps(value: Any) -> str:
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
        default=_canonical_default,
    )


def _canonical_default(value: Any) -> Any:
    """Canonical JSON form for condition values json cannot encode natively."""
    if isinstance(value, re.Pattern):
        return {"$regex": value.pattern, "$flags": int(value.flags)}
    if isinstance(value, datetime):
        return {"$date": value.isoformat()}
    if isinstance(value, date):
        return {"$date": value.isoformat()}
    if isinstance(value, uuid.UUID):
        return {"$uuid": str(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=_dumps)
    raise TypeError(f"Object of type {type(value).__name__} has no canonical form")
