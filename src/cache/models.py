# src/cache/models.py — v2
"""Cache domain models: QueryDescriptor, WriteDescriptor, tagged results, CacheStats.

Results are tagged explicitly (SingleResult / SequenceResult) by the query's
declared shape, never inferred from the value returned by the executor.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

ResultShape = Literal["single", "sequence"]
WriteOperation = Literal["insert", "update", "replace", "delete"]

# A record is either a pydantic model or a plain field map.
Record = Union[BaseModel, Mapping[str, Any]]


class QueryDescriptor(BaseModel):
    """Structured description of one read against a collection."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    collection: str
    filter: dict[str, Any] = Field(default_factory=dict)
    projection: dict[str, Any] | None = None
    sort: list[tuple[str, int]] = Field(default_factory=list)
    skip: int = 0
    limit: int | None = None
    shape: ResultShape = "sequence"

    @field_validator("collection")
    @classmethod
    def validate_collection(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("collection must be a non-empty string")
        return v

    @field_validator("skip")
    @classmethod
    def validate_skip(cls, v: int) -> int:
        if v < 0:
            raise ValueError("skip must be >= 0")
        return v

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, v: int | None) -> int | None:
        if v is not None and v < 0:
            raise ValueError("limit must be >= 0")
        return v

    def options(self) -> dict[str, Any]:
        """Return the non-filter conditions that shape the result."""
        return {
            "projection": self.projection,
            "sort": [list(pair) for pair in self.sort],
            "skip": self.skip,
            "limit": self.limit,
            "shape": self.shape,
        }

    def has_default_options(self) -> bool:
        """True when only the filter distinguishes this query."""
        return (
            self.projection is None
            and not self.sort
            and self.skip == 0
            and self.limit is None
            and self.shape == "sequence"
        )


class WriteDescriptor(BaseModel):
    """Structured description of one write against a collection."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    collection: str
    operation: WriteOperation
    filter: dict[str, Any] = Field(default_factory=dict)
    payload: Any = None

    @field_validator("collection")
    @classmethod
    def validate_collection(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("collection must be a non-empty string")
        return v


@dataclass(frozen=True)
class SingleResult:
    """Result of a find-one style query. ``record`` is None when nothing matched."""

    record: Record | None

    shape: ResultShape = field(default="single", init=False)

    @property
    def value(self) -> Record | None:
        return self.record


@dataclass(frozen=True)
class SequenceResult:
    """Ordered result of a find style query."""

    records: tuple[Record, ...] = ()

    shape: ResultShape = field(default="sequence", init=False)

    def __post_init__(self) -> None:
        # Accept any iterable while keeping the stored value immutable.
        object.__setattr__(self, "records", tuple(self.records))

    @property
    def value(self) -> list[Record]:
        return list(self.records)

    def __len__(self) -> int:
        return len(self.records)


QueryResult = Union[SingleResult, SequenceResult]


def as_result(raw: Any, shape: ResultShape) -> QueryResult:
    """Tag a raw executor return value according to the query's declared shape.

    Already-tagged results pass through unchanged.

    Raises:
        TypeError: If a tagged result disagrees with the declared shape, or a
            single record is returned for a sequence query.
    """
    if isinstance(raw, (SingleResult, SequenceResult)):
        if raw.shape != shape:
            raise TypeError(
                f"Executor returned a {raw.shape} result for a {shape} query"
            )
        return raw
    if shape == "single":
        return SingleResult(raw)
    if raw is None:
        return SequenceResult(())
    if isinstance(raw, (Mapping, BaseModel, str, bytes)):
        raise TypeError(
            f"Executor returned a single {type(raw).__name__} for a sequence query"
        )
    return SequenceResult(tuple(raw))


@dataclass
class CacheStats:
    """Running counters for one interceptor."""

    hits: int = 0
    misses: int = 0
    populated: int = 0
    store_errors: int = 0
    hydration_failures: int = 0
    unserializable_results: int = 0
    invalidations: int = 0

    @property
    def lookups(self) -> int:
        return self.hits + self.misses

    @property
    def hit_ratio(self) -> float:
        """Fraction of lookups served from cache (0.0 when nothing was looked up)."""
        if self.lookups == 0:
            return 0.0
        return self.hits / self.lookups

    def as_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "populated": self.populated,
            "store_errors": self.store_errors,
            "hydration_failures": self.hydration_failures,
            "unserializable_results": self.unserializable_results,
            "invalidations": self.invalidations,
            "hit_ratio": round(self.hit_ratio, 4),
        }
