# src/api/facade.py — v1
"""Public API facade — vector collection operations over a ready store.

Usage:
    from ctxvector.api.facade import hybrid_search
    from ctxvector.rag.vector_store.vector_store_factory import create_vector_store

    store = await create_vector_store(settings)
    results = await hybrid_search(store, "code_chunks", requests, options)

Every function takes the connected store as its first argument; there is
no module-level client.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Sequence

from ctxvector.config.settings import Settings
from ctxvector.core.models import (
    Document,
    FilterFallbackPolicy,
    FusedResult,
    FusionOptions,
    ModalityFailurePolicy,
    ScoredResult,
    SearchOptions,
    SearchRequest,
)
from ctxvector.logging.context import set_operation_context
from ctxvector.rag.retriever.filter_translator import default_predicate, translate
from ctxvector.rag.retriever.fusion import fuse
from ctxvector.rag.retriever.modality_search import to_scored_results
from ctxvector.rag.vector_store.metadata_codec import to_backend_metadata

if TYPE_CHECKING:
    from ctxvector.rag.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


# === Collection lifecycle ===


async def create_collection(
    store: BaseVectorStore,
    name: str,
    dimension: int,
    description: str | None = None,
) -> None:
    """Create a collection; dimension and description are kept as collection metadata."""
    set_operation_context(name, "create_collection")
    metadata: dict[str, Any] = {"dimension": dimension}
    if description:
        metadata["description"] = description
    logger.info("Creating collection '%s' with dimension %d", name, dimension)
    await store.create_collection(name, metadata=metadata)


async def create_hybrid_collection(
    store: BaseVectorStore,
    name: str,
    dimension: int,
    description: str | None = None,
) -> None:
    """Same as create_collection: Chroma keeps no separate sparse index."""
    await create_collection(store, name, dimension, description)


async def drop_collection(store: BaseVectorStore, name: str) -> None:
    set_operation_context(name, "drop_collection")
    await store.drop_collection(name)
    logger.info("Dropped collection '%s'", name)


async def has_collection(store: BaseVectorStore, name: str) -> bool:
    """Check existence; backend errors read as 'absent'."""
    set_operation_context(name, "has_collection")
    try:
        return await store.collection_exists(name)
    except Exception as e:
        logger.warning("Could not check collection '%s': %s", name, e)
        return False


async def list_collections(store: BaseVectorStore) -> list[str]:
    return await store.list_collections()


# === Documents ===


async def insert(store: BaseVectorStore, name: str, documents: Sequence[Document]) -> None:
    """Insert documents, flattening location fields into metadata.

    Raises:
        ValueError: If a document's metadata uses a reserved key.
    """
    set_operation_context(name, "insert")
    if not documents:
        return
    await store.add(
        name,
        ids=[d.id for d in documents],
        embeddings=[list(d.vector) for d in documents],
        documents=[d.content for d in documents],
        metadatas=[to_backend_metadata(d) for d in documents],
    )
    logger.info("Inserted %d documents into '%s'", len(documents), name)


async def insert_hybrid(store: BaseVectorStore, name: str, documents: Sequence[Document]) -> None:
    """Same as insert: Chroma needs no sparse vectors."""
    await insert(store, name, documents)


async def delete(store: BaseVectorStore, name: str, ids: Sequence[str]) -> None:
    set_operation_context(name, "delete")
    await store.delete(name, list(ids))
    logger.info("Deleted %d documents from '%s'", len(ids), name)


# === Search ===


def _filter_args(settings: Settings) -> tuple[FilterFallbackPolicy, dict]:
    return (
        FilterFallbackPolicy(settings.filter_fallback_policy),
        default_predicate(settings.filter_default_extensions_list),
    )


async def search(
    store: BaseVectorStore,
    name: str,
    vector: list[float],
    options: SearchOptions | None = None,
    settings: Settings | None = None,
) -> list[ScoredResult]:
    """Plain dense search; scores are max(0, 1 - distance)."""
    set_operation_context(name, "search")
    settings = settings or Settings()
    options = options or SearchOptions(top_k=settings.search_default_top_k)

    predicate = options.filter
    if options.filter_expression:
        predicate = translate(options.filter_expression, *_filter_args(settings))

    hits = await store.search_dense(name, vector, options.top_k, predicate)
    return to_scored_results(hits)


async def hybrid_search(
    store: BaseVectorStore,
    name: str,
    requests: Sequence[SearchRequest],
    options: FusionOptions | None = None,
    settings: Settings | None = None,
) -> list[FusedResult]:
    """Fuse dense and lexical searches into one ranked list.

    Failure policy, concurrency, filter fallback and timeout come from
    settings; options.timeout_s overrides the configured timeout.

    Raises:
        ModalityFailure: A modality failed under the 'fail' policy.
        TimeoutError: The call exceeded its timeout; no partial result.
    """
    set_operation_context(name, "hybrid_search")
    settings = settings or Settings()
    options = options or FusionOptions(limit=settings.hybrid_default_limit)
    filter_policy, fallback = _filter_args(settings)

    call = fuse(
        store,
        name,
        requests,
        options,
        failure_policy=ModalityFailurePolicy(settings.modality_failure_policy),
        concurrent=settings.hybrid_concurrent,
        filter_policy=filter_policy,
        default_filter=fallback,
    )
    timeout = options.timeout_s or settings.hybrid_timeout_s
    if timeout is None:
        return await call
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error("Hybrid search on '%s' timed out after %.1fs", name, timeout)
        raise TimeoutError(f"Hybrid search on '{name}' timed out after {timeout}s") from e


def _split_id_filter(where: dict | None) -> tuple[list[str] | None, dict | None]:
    """Pull ``id in [...]`` clauses out of a predicate.

    Chroma's ``where`` only sees metadata, so ids go to get(ids=...). Several
    id clauses intersect, keeping the first clause's order.
    """
    if not where:
        return None, where
    clauses = where["$and"] if set(where) == {"$and"} else [where]
    ids: list[str] | None = None
    rest: list[dict] = []
    for clause in clauses:
        if set(clause) == {"id"}:
            wanted = [str(v) for v in clause["id"]["$in"]]
            ids = wanted if ids is None else [i for i in ids if i in wanted]
        else:
            rest.append(clause)
    if ids is None:
        return None, where
    if not rest:
        return ids, None
    return ids, rest[0] if len(rest) == 1 else {"$and": rest}


async def query(
    store: BaseVectorStore,
    name: str,
    filter_expression: str | None,
    output_fields: Sequence[str] = (),
    limit: int | None = None,
    settings: Settings | None = None,
    policy: FilterFallbackPolicy | str | None = None,
) -> list[dict[str, Any]]:
    """Metadata query: rows of {id, content, **metadata}.

    An unparseable filter follows the fallback policy like every other
    call; under the default use_default policy that means the extension
    allow-list, not "all rows". Pass policy="ignore_filter" to get every
    row instead. Clauses on ``id`` select by document id.

    Args:
        filter_expression: Filter expression (translated with the configured
            or given fallback policy).
        output_fields: Keep only these keys (all keys when empty).
        limit: Maximum rows.
        policy: Override of settings.filter_fallback_policy.
    """
    set_operation_context(name, "query")
    settings = settings or Settings()
    configured_policy, fallback = _filter_args(settings)
    where = translate(filter_expression, policy or configured_policy, fallback)
    ids, where = _split_id_filter(where)
    if ids == []:
        return []

    hits = await store.get(name, where=where, limit=limit, ids=ids)

    rows: list[dict[str, Any]] = []
    for hit in hits:
        row = {"id": hit.id, "content": hit.content, **hit.metadata}
        if output_fields:
            row = {f: row[f] for f in output_fields if f in row}
        rows.append(row)
    return rows
