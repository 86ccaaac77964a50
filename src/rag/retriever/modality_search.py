# src/rag/retriever/modality_search.py — v1
"""Single-modality search: one backend call, bounded scores, rebuilt documents."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ctxvector.core.models import (
    DenseSearchRequest,
    LexicalSearchRequest,
    RawHit,
    ScoredResult,
    SearchRequest,
)
from ctxvector.logging.context import modality_scope
from ctxvector.rag.vector_store.metadata_codec import document_from_backend

if TYPE_CHECKING:
    from ctxvector.rag.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


class ModalityFailure(Exception):
    """A single modality's backend call failed."""

    def __init__(self, modality: str, collection: str, cause: Exception):
        self.modality = modality
        self.collection = collection
        self.cause = cause
        super().__init__(
            f"{modality} search on collection '{collection}' failed: {cause}"
        )


def distance_to_score(raw_distance: float | None) -> float:
    """Convert a backend distance (lower = closer) into a score in [0, 1]."""
    if raw_distance is None:
        return 1.0
    return min(1.0, max(0.0, 1.0 - float(raw_distance)))


def to_scored_results(
    hits: list[RawHit], vector: list[float] | None = None
) -> list[ScoredResult]:
    """Wrap raw hits as ScoredResults, keeping backend order."""
    return [
        ScoredResult(
            document=document_from_backend(hit.id, hit.content, hit.metadata, vector),
            score=distance_to_score(hit.raw_distance),
        )
        for hit in hits
    ]


async def run_modality(
    store: BaseVectorStore,
    collection: str,
    request: SearchRequest,
    predicate: dict | None = None,
) -> list[ScoredResult]:
    """Run one search request against the backend.

    Returns:
        ScoredResults in backend rank order (not re-sorted).

    Raises:
        ModalityFailure: If the backend call raised.
        TypeError: If request is not a known SearchRequest variant.
    """
    if isinstance(request, DenseSearchRequest):
        search, query = store.search_dense, request.vector
    elif isinstance(request, LexicalSearchRequest):
        search, query = store.search_lexical, request.text
    else:
        raise TypeError(f"Unsupported search request: {type(request).__name__}")

    with modality_scope(request.modality):
        try:
            hits = await search(
                collection, query, request.limit, predicate, **request.extra_params
            )
        except Exception as e:
            raise ModalityFailure(request.modality, collection, e) from e
        logger.debug("%s search returned %d hits", request.modality, len(hits))

    return to_scored_results(hits)
