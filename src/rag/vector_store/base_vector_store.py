# src/rag/vector_store/base_vector_store.py — v1
"""Abstract Backend Store interface and backend error types.

Implementations return RawHit rows; score conversion and metadata
splitting happen in the retriever layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ctxvector.core.models import RawHit


class BackendError(Exception):
    """Base class for failures raised by a backend store."""


class BackendUnavailable(BackendError):
    """Transport or connection failure talking to the backend."""


class BackendRequestError(BackendError):
    """The backend rejected the request itself (bad argument, dimension mismatch)."""


class CollectionNotFoundError(BackendError):
    """The requested collection does not exist."""

    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(f"Collection '{collection}' does not exist")


_TRANSPORT_NAMES = ("connect", "timeout", "network", "protocol", "unavailable")
_TRANSPORT_MESSAGES = (
    "connection", "refused", "timed out", "timeout", "unreachable",
    "could not connect", "502", "503", "504", "unavailable",
)
_REQUEST_NAMES = ("invalid", "argument", "valueerror", "typeerror")


def classify_backend_error(error: Exception, collection: str | None = None) -> BackendError:
    """Map a raw client exception onto a BackendError subtype.

    Missing collection -> CollectionNotFoundError; connection and timeout
    failures -> BackendUnavailable; rejected requests -> BackendRequestError;
    anything else stays a plain BackendError.
    """
    if isinstance(error, BackendError):
        return error

    msg = str(error).lower()
    name = type(error).__name__.lower()
    detail = f"{type(error).__name__}: {error}"

    if collection is not None and (
        "notfound" in name or "does not exist" in msg or "not found" in msg
    ):
        return CollectionNotFoundError(collection)
    if isinstance(error, (ConnectionError, TimeoutError)) or any(
        n in name for n in _TRANSPORT_NAMES
    ) or any(m in msg for m in _TRANSPORT_MESSAGES):
        return BackendUnavailable(detail)
    if any(n in name for n in _REQUEST_NAMES):
        return BackendRequestError(detail)
    return BackendError(detail)


class BaseVectorStore(ABC):
    """Unified interface for vector store backends."""

    # --- Similarity search ---

    @abstractmethod
    async def search_dense(
        self,
        collection: str,
        vector: list[float],
        limit: int,
        predicate: dict | None = None,
        **extra: Any,
    ) -> list[RawHit]:
        """Nearest-neighbour query; hits in backend rank order."""

    @abstractmethod
    async def search_lexical(
        self,
        collection: str,
        text: str,
        limit: int,
        predicate: dict | None = None,
        **extra: Any,
    ) -> list[RawHit]:
        """Text similarity query using the backend's own text search."""

    # --- Collection lifecycle ---

    @abstractmethod
    async def create_collection(
        self, collection: str, metadata: dict[str, Any] | None = None
    ) -> None:
        """Create a named collection."""

    @abstractmethod
    async def drop_collection(self, collection: str) -> None:
        """Delete a collection and all its documents."""

    @abstractmethod
    async def collection_exists(self, collection: str) -> bool:
        """Check if a collection exists."""

    @abstractmethod
    async def list_collections(self) -> list[str]:
        """Return collection names."""

    # --- Documents ---

    @abstractmethod
    async def add(
        self,
        collection: str,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict] | None = None,
    ) -> None:
        """Insert vectors with associated documents and metadata."""

    @abstractmethod
    async def delete(self, collection: str, ids: list[str]) -> None:
        """Delete vectors by ID."""

    @abstractmethod
    async def get(
        self,
        collection: str,
        where: dict | None = None,
        limit: int | None = None,
        ids: list[str] | None = None,
    ) -> list[RawHit]:
        """Retrieve documents by metadata predicate and/or ids (no ranking)."""

    @abstractmethod
    async def count(self, collection: str) -> int:
        """Return number of vectors in a collection."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (chromadb)."""
