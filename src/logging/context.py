# src/logging/context.py — v1
"""Per-call logging context: which collection, facade operation and modality.

The facade sets collection/operation once per call; modality_search scopes
the modality around each backend call. Concurrent modalities run in their
own tasks, each with a copy of the context, so they never see each other's
modality.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any, Iterator

_collection: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "ctxvector_collection", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "ctxvector_operation", default=None
)
_modality: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "ctxvector_modality", default=None
)


@dataclass(frozen=True)
class LogContext:
    """Snapshot of the context variables at format time."""

    collection: str | None = None
    operation: str | None = None
    modality: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Non-None fields, for the JSON "context" key."""
        return {k: v for k, v in asdict(self).items() if v is not None}


def get_context() -> LogContext:
    return LogContext(
        collection=_collection.get(),
        operation=_operation.get(),
        modality=_modality.get(),
    )


def set_operation_context(collection: str, operation: str) -> None:
    """Tag subsequent records with the facade call in progress."""
    _collection.set(collection)
    _operation.set(operation)


@contextmanager
def modality_scope(modality: str) -> Iterator[None]:
    """Tag records with modality inside the block; the previous value is restored after."""
    token = _modality.set(modality)
    try:
        yield
    finally:
        _modality.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    for var in (_collection, _operation, _modality):
        var.set(None)
