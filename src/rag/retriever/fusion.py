# src/rag/retriever/fusion.py — v1
"""Hybrid search fusion — merge dense and lexical result lists into one ranking.

Merge rule: the first time a document id is seen its score is stored as-is;
every later occurrence replaces the stored score with the mean of the
stored and the new score. This is a running pairwise average, kept for
compatibility with existing rankings; it is not reciprocal-rank fusion.

Ordering: descending score, ties in first-seen order across the requests
as given. Concurrent mode only overlaps the backend I/O; merging still
happens afterwards, in request order, on the calling task.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Sequence

from ctxvector.core.models import (
    FilterFallbackPolicy,
    FusedResult,
    FusionOptions,
    ModalityFailurePolicy,
    ScoredResult,
    SearchRequest,
)
from ctxvector.rag.retriever.filter_translator import translate
from ctxvector.rag.retriever.modality_search import ModalityFailure, run_modality

if TYPE_CHECKING:
    from ctxvector.rag.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)

_Outcome = list[ScoredResult] | ModalityFailure


def merge_results(
    accumulator: dict[str, FusedResult],
    results: Sequence[ScoredResult],
) -> None:
    """Fold one modality's results into the accumulator (in place)."""
    for result in results:
        doc_id = result.document.id
        existing = accumulator.get(doc_id)
        if existing is None:
            accumulator[doc_id] = FusedResult(document=result.document, score=result.score)
        else:
            existing.score = (existing.score + result.score) / 2


def rank_results(accumulator: dict[str, FusedResult], limit: int) -> list[FusedResult]:
    """Stable descending sort by score, truncated to limit."""
    ranked = sorted(accumulator.values(), key=lambda r: r.score, reverse=True)
    return ranked[:limit]


def _check_failure(
    failure: ModalityFailure, policy: ModalityFailurePolicy
) -> list[ScoredResult]:
    if policy is ModalityFailurePolicy.FAIL:
        raise failure
    logger.warning(
        "Degraded hybrid search: %s modality contributes no results (%s)",
        failure.modality, failure.cause,
    )
    return []


async def _run_sequential(
    store: BaseVectorStore,
    collection: str,
    requests: Sequence[SearchRequest],
    predicate: dict | None,
    policy: ModalityFailurePolicy,
) -> list[list[ScoredResult]]:
    outcomes: list[list[ScoredResult]] = []
    for request in requests:
        try:
            outcomes.append(await run_modality(store, collection, request, predicate))
        except ModalityFailure as failure:
            outcomes.append(_check_failure(failure, policy))
    return outcomes


async def _run_concurrent(
    store: BaseVectorStore,
    collection: str,
    requests: Sequence[SearchRequest],
    predicate: dict | None,
    policy: ModalityFailurePolicy,
) -> list[list[ScoredResult]]:
    async def _attempt(request: SearchRequest) -> _Outcome:
        try:
            return await run_modality(store, collection, request, predicate)
        except ModalityFailure as failure:
            return failure

    raw = await asyncio.gather(*(_attempt(r) for r in requests))
    # Failures are resolved in request order so FAIL always reports the first one.
    return [
        _check_failure(o, policy) if isinstance(o, ModalityFailure) else o
        for o in raw
    ]


async def fuse(
    store: BaseVectorStore,
    collection: str,
    requests: Sequence[SearchRequest],
    options: FusionOptions | None = None,
    failure_policy: ModalityFailurePolicy | str = ModalityFailurePolicy.FAIL,
    concurrent: bool = False,
    filter_policy: FilterFallbackPolicy | str = FilterFallbackPolicy.USE_DEFAULT,
    default_filter: dict | None = None,
) -> list[FusedResult]:
    """Run every request, merge by document id and return the ranked list.

    Args:
        store: Ready backend store handle.
        collection: Collection to search.
        requests: Dense and/or lexical requests, merged in this order.
        options: Result limit and filter expression shared by all requests.
        failure_policy: FAIL propagates the first ModalityFailure; DEGRADE
            treats a failed modality as returning nothing.
        concurrent: Overlap the backend calls.
        filter_policy: Fallback policy for an unparseable filter expression.
        default_filter: Predicate used by the USE_DEFAULT fallback.

    Returns:
        At most options.limit FusedResults, no duplicate ids.

    Raises:
        ModalityFailure: Under FAIL, when any modality's call failed.
        InvalidFilterExpression: Under the REJECT filter policy.
    """
    options = options or FusionOptions()
    policy = ModalityFailurePolicy(failure_policy)

    predicate = translate(options.filter_expression, filter_policy, default_filter)
    if not requests:
        return []

    runner = _run_concurrent if concurrent else _run_sequential
    outcomes = await runner(store, collection, requests, predicate, policy)

    accumulator: dict[str, FusedResult] = {}
    for results in outcomes:
        merge_results(accumulator, results)

    fused = rank_results(accumulator, options.limit)
    logger.info(
        "Hybrid search: %d results from %d requests (%d distinct ids, limit=%d)",
        len(fused), len(requests), len(accumulator), options.limit,
    )
    return fused
