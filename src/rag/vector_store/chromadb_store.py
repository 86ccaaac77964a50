# src/rag/vector_store/chromadb_store.py — v1
"""ChromaDB vector store adapter.

Uses the chromadb SDK for remote, persistent or in-memory storage.
Requires: pip install chromadb.

The chromadb client is synchronous; every call runs in a worker thread so
the event loop stays free while a request is in flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable, TypeVar
from urllib.parse import urlparse

from ctxvector.core.models import RawHit
from ctxvector.rag.vector_store.base_vector_store import (
    BackendUnavailable,
    BaseVectorStore,
    classify_backend_error,
)
from ctxvector.rag.vector_store.vector_store_factory import describe_target

if TYPE_CHECKING:
    from ctxvector.config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_QUERY_INCLUDE = ["documents", "metadatas", "distances"]
_GET_INCLUDE = ["documents", "metadatas"]


class ChromaDBStore(BaseVectorStore):
    """Vector store backed by a ready ChromaDB client.

    Build instances with connect(); the constructor only wraps a client that
    is already usable.
    """

    def __init__(self, client: Any, embedding_function: Any | None = None) -> None:
        self._client = client
        self._embedding_function = embedding_function

    # --- Internals ---

    async def _call(self, fn: Callable[[], T], collection: str | None = None) -> T:
        try:
            return await asyncio.to_thread(fn)
        except Exception as e:
            raise classify_backend_error(e, collection) from e

    def _collection(self, collection: str) -> Any:
        if self._embedding_function is not None:
            return self._client.get_collection(
                name=collection, embedding_function=self._embedding_function
            )
        return self._client.get_collection(name=collection)

    def _query(self, collection: str, limit: int, predicate: dict | None, **kwargs: Any) -> list[RawHit]:
        col = self._collection(collection)
        params: dict[str, Any] = {
            "n_results": limit,
            "include": _QUERY_INCLUDE,
            **kwargs,
        }
        if predicate:
            params["where"] = predicate
        results = col.query(**params)
        return _hits_from_query(results)

    # --- Similarity search ---

    async def search_dense(
        self,
        collection: str,
        vector: list[float],
        limit: int,
        predicate: dict | None = None,
        **extra: Any,
    ) -> list[RawHit]:
        """Query by embedding similarity."""
        return await self._call(
            lambda: self._query(
                collection, limit, predicate, query_embeddings=[list(vector)], **extra
            ),
            collection,
        )

    async def search_lexical(
        self,
        collection: str,
        text: str,
        limit: int,
        predicate: dict | None = None,
        **extra: Any,
    ) -> list[RawHit]:
        """Query by text; the collection's embedding function encodes it."""
        return await self._call(
            lambda: self._query(collection, limit, predicate, query_texts=[text], **extra),
            collection,
        )

    # --- Collection lifecycle ---

    async def create_collection(
        self, collection: str, metadata: dict[str, Any] | None = None
    ) -> None:
        """Create a named collection (fails if it already exists)."""
        kwargs: dict[str, Any] = {"name": collection}
        if metadata:
            kwargs["metadata"] = metadata
        if self._embedding_function is not None:
            kwargs["embedding_function"] = self._embedding_function
        await self._call(lambda: self._client.create_collection(**kwargs))

    async def drop_collection(self, collection: str) -> None:
        """Delete a collection."""
        await self._call(lambda: self._client.delete_collection(name=collection), collection)

    async def collection_exists(self, collection: str) -> bool:
        """Check if a collection exists."""
        return collection in await self.list_collections()

    async def list_collections(self) -> list[str]:
        """Return collection names (chromadb returns names or Collection objects by version)."""
        collections = await self._call(self._client.list_collections)
        return [c if isinstance(c, str) else c.name for c in collections]

    # --- Documents ---

    async def add(
        self,
        collection: str,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict] | None = None,
    ) -> None:
        """Insert vectors."""
        def _add() -> None:
            self._collection(collection).add(
                ids=ids,
                embeddings=embeddings,
                documents=documents,
                metadatas=metadatas,
            )

        await self._call(_add, collection)

    async def delete(self, collection: str, ids: list[str]) -> None:
        """Delete vectors by ID."""
        await self._call(lambda: self._collection(collection).delete(ids=ids), collection)

    async def get(
        self,
        collection: str,
        where: dict | None = None,
        limit: int | None = None,
        ids: list[str] | None = None,
    ) -> list[RawHit]:
        """Retrieve documents matching a metadata predicate and/or ids."""
        def _get() -> list[RawHit]:
            params: dict[str, Any] = {"include": _GET_INCLUDE}
            if ids is not None:
                params["ids"] = ids
            if where:
                params["where"] = where
            if limit:
                params["limit"] = limit
            return _hits_from_get(self._collection(collection).get(**params))

        return await self._call(_get, collection)

    async def count(self, collection: str) -> int:
        """Return number of vectors in a collection."""
        return await self._call(lambda: self._collection(collection).count(), collection)

    @property
    def provider_name(self) -> str:
        return "chromadb"


def _hits_from_query(results: Any) -> list[RawHit]:
    """Flatten the first query batch of a chromadb QueryResult."""
    ids = results.get("ids") or []
    if not ids or not ids[0]:
        return []
    documents = (results.get("documents") or [[]])[0] or []
    metadatas = (results.get("metadatas") or [[]])[0] or []
    distances = (results.get("distances") or [[]])[0] or []

    hits: list[RawHit] = []
    for i, doc_id in enumerate(ids[0]):
        hits.append(
            RawHit(
                id=doc_id,
                raw_distance=distances[i] if i < len(distances) else None,
                content=(documents[i] if i < len(documents) else None) or "",
                metadata=dict((metadatas[i] if i < len(metadatas) else None) or {}),
            )
        )
    return hits


def _hits_from_get(results: Any) -> list[RawHit]:
    """Flatten a chromadb GetResult."""
    ids = results.get("ids") or []
    documents = results.get("documents") or []
    metadatas = results.get("metadatas") or []
    return [
        RawHit(
            id=doc_id,
            content=(documents[i] if i < len(documents) else None) or "",
            metadata=dict((metadatas[i] if i < len(metadatas) else None) or {}),
        )
        for i, doc_id in enumerate(ids)
    ]


def _parse_url(url: str) -> tuple[str, int, bool]:
    """Split a server URL into (host, port, ssl); default port 8000."""
    parsed = urlparse(url if "://" in url else f"http://{url}")
    ssl = parsed.scheme == "https"
    port = parsed.port or (443 if ssl else 8000)
    return parsed.hostname or "localhost", port, ssl


def _build_embedding_function(settings: Settings) -> Any | None:
    if not settings.openai_api_key:
        return None
    from chromadb.utils import embedding_functions

    return embedding_functions.OpenAIEmbeddingFunction(
        api_key=settings.openai_api_key,
        model_name=settings.openai_embedding_model,
    )


async def connect(
    settings: Settings,
    embedding_function: Any | None = None,
) -> ChromaDBStore:
    """Create the chromadb client described by settings and return a ready store.

    Args:
        settings: CHROMA_URL (remote), CHROMA_PATH (persistent) or neither
            (in-memory), plus the optional OpenAI embedding settings.
        embedding_function: Explicit collection embedding function; overrides
            the one derived from settings.

    Raises:
        ImportError: If chromadb is not installed.
        BackendUnavailable: If the server cannot be reached.
    """
    try:
        import chromadb
    except ImportError as e:
        raise ImportError(
            "chromadb package required: pip install chromadb"
        ) from e

    def _make_client() -> Any:
        if settings.chroma_url:
            host, port, ssl = _parse_url(settings.chroma_url)
            return chromadb.HttpClient(host=host, port=port, ssl=ssl)
        if settings.chroma_path is not None:
            return chromadb.PersistentClient(path=str(settings.chroma_path.expanduser()))
        return chromadb.EphemeralClient()

    target = describe_target(settings)
    try:
        client = await asyncio.to_thread(_make_client)
    except Exception as e:
        raise BackendUnavailable(f"Could not connect to Chroma at {target}: {e}") from e

    ef = embedding_function if embedding_function is not None else _build_embedding_function(settings)
    logger.info("Connected to Chroma at %s", target)
    return ChromaDBStore(client, embedding_function=ef)
