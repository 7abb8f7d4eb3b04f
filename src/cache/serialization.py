# src/cache/serialization.py — v1
"""Serialization adapter between tagged query results and cache blobs.

Blob format (compact JSON):

    {"v": 1, "shape": "single" | "sequence", "data": <record | [records] | null>}

The shape tag travels with the blob, so hydration needs only the record shape
of the collection, never a hint about whether one record or many were stored.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import Any, Callable, Union

from pydantic import BaseModel

from querycache.cache.errors import HydrationFailure, UnserializableResult
from querycache.cache.models import QueryResult, Record, SequenceResult, SingleResult

BLOB_VERSION = 1

# A record shape rebuilds a Record from its plain field map: either a pydantic
# model class or any callable accepting the map.
RecordShape = Union[type[BaseModel], Callable[[dict[str, Any]], Record]]


class RecordShapeRegistry:
    """Collection identifier → record shape used during hydration.

    Collections without a registered shape hydrate to plain dicts.
    """

    def __init__(self, shapes: Mapping[str, RecordShape] | None = None) -> None:
        self._shapes: dict[str, RecordShape] = dict(shapes or {})

    def register(self, collection: str, shape: RecordShape) -> None:
        self._shapes[collection] = shape

    def resolve(self, collection: str) -> RecordShape:
        return self._shapes.get(collection, dict)

    def __contains__(self, collection: object) -> bool:
        return collection in self._shapes

    def collections(self) -> list[str]:
        return sorted(self._shapes)


def serialize(result: QueryResult) -> str:
    """Encode a tagged result as a self-describing JSON blob.

    Raises:
        UnserializableResult: If a record holds values outside JSON primitives,
            string-keyed maps and ordered sequences.
    """
    if isinstance(result, SingleResult):
        data: Any = None if result.record is None else _record_to_plain(result.record)
    elif isinstance(result, SequenceResult):
        data = [_record_to_plain(r) for r in result.records]
    else:
        raise UnserializableResult(
            f"Expected SingleResult or SequenceResult, got {type(result).__name__}"
        )

    envelope = {"v": BLOB_VERSION, "shape": result.shape, "data": data}
    try:
        return json.dumps(envelope, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as e:
        raise UnserializableResult(str(e)) from e


def hydrate(blob: str | bytes, shape: RecordShape = dict) -> QueryResult:
    """Rebuild a tagged result from a blob produced by ``serialize``.

    Raises:
        HydrationFailure: If the blob is corrupt, has an unknown version or
            shape tag, or a record is rejected by ``shape``.
    """
    try:
        envelope = json.loads(blob)
    except (TypeError, ValueError, UnicodeDecodeError) as e:
        raise HydrationFailure(f"Cached blob is not valid JSON: {e}") from e

    if not isinstance(envelope, dict) or envelope.get("v") != BLOB_VERSION:
        raise HydrationFailure("Cached blob has an unknown envelope version")

    tag = envelope.get("shape")
    data = envelope.get("data")

    if tag == "single":
        if data is None:
            return SingleResult(None)
        return SingleResult(_build_record(data, shape))
    if tag == "sequence":
        if not isinstance(data, list):
            raise HydrationFailure("Sequence blob does not hold a list")
        return SequenceResult(tuple(_build_record(item, shape) for item in data))

    raise HydrationFailure(f"Unknown result shape tag: {tag!r}")


def _record_to_plain(record: Any) -> dict[str, Any]:
    """Reduce one record to a plain field map of JSON primitives."""
    if isinstance(record, BaseModel):
        return record.model_dump(mode="json")
    if isinstance(record, Mapping):
        return {_check_key(k): _check_value(v) for k, v in record.items()}
    raise UnserializableResult(
        f"Record of type {type(record).__name__} is not a field map"
    )


def _check_key(key: Any) -> str:
    if not isinstance(key, str):
        raise UnserializableResult(f"Field name {key!r} is not a string")
    return key


def _check_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise UnserializableResult(f"Non-finite float {value!r}")
        return value
    if isinstance(value, Mapping):
        return {_check_key(k): _check_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_check_value(v) for v in value]
    raise UnserializableResult(
        f"Value of type {type(value).__name__} is not representable"
    )


def _build_record(data: Any, shape: RecordShape) -> Record:
    if not isinstance(data, dict):
        raise HydrationFailure(f"Cached record is a {type(data).__name__}, not a field map")
    try:
        if isinstance(shape, type) and issubclass(shape, BaseModel):
            return shape.model_validate(data)
        return shape(data)
    except Exception as e:
        # Any rejection by application shape code means the blob is incompatible.
        raise HydrationFailure(f"Cached record rejected by {_shape_name(shape)}: {e}") from e


def _shape_name(shape: RecordShape) -> str:
    return getattr(shape, "__name__", type(shape).__name__)
