# src/logging/context.py — v2
"""Contextual logging support — attach operation, collection, fingerprint to log records."""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per cache operation.
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)
_collection: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "collection", default=None
)
_fingerprint: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "fingerprint", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    operation: str | None = None
    collection: str | None = None
    fingerprint: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        operation=_operation.get(),
        collection=_collection.get(),
        fingerprint=_fingerprint.get(),
    )


@contextmanager
def operation_context(
    operation: str,
    collection: str | None = None,
    fingerprint: str | None = None,
) -> Iterator[None]:
    """Bind context for the duration of one cache operation, then restore it."""
    tokens = [
        _operation.set(operation),
        _collection.set(collection),
        _fingerprint.set(fingerprint),
    ]
    try:
        yield
    finally:
        for var, token in zip((_operation, _collection, _fingerprint), tokens):
            var.reset(token)


def set_fingerprint(fingerprint: str) -> None:
    """Attach the fingerprint once it is known inside an operation."""
    _fingerprint.set(fingerprint)


def clear_context() -> None:
    """Reset all context variables."""
    _operation.set(None)
    _collection.set(None)
    _fingerprint.set(None)
