# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types — all imports come from core.models.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator


# === POLICIES ===


class FilterFallbackPolicy(str, Enum):
    """What the filter translator does with an unparseable expression."""

    REJECT = "reject"
    IGNORE_FILTER = "ignore_filter"
    USE_DEFAULT = "use_default"


class ModalityFailurePolicy(str, Enum):
    """What the fusion engine does when one modality's backend call fails."""

    FAIL = "fail"
    DEGRADE = "degrade"


# === DOCUMENTS ===


class Document(BaseModel):
    """Indexed code chunk with its vector and location metadata."""

    id: str
    vector: list[float] = Field(default_factory=list)
    content: str = ""
    relative_path: str = ""
    start_line: int = 0
    end_line: int = 0
    file_extension: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class RawHit(BaseModel):
    """One row returned by the backend store, before score conversion.

    raw_distance is None for plain metadata retrieval (no similarity ranking).
    """

    id: str
    raw_distance: float | None = None
    content: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


# === SEARCH REQUESTS ===

# Keyword arguments the store sets itself on every backend query call.
RESERVED_QUERY_PARAMS: frozenset[str] = frozenset(
    {"where", "n_results", "include", "query_embeddings", "query_texts"}
)


class _ModalityRequest(BaseModel):
    """Fields shared by every search request variant."""

    limit: int = Field(default=10, gt=0)
    extra_params: dict[str, Any] = Field(default_factory=dict)

    @field_validator("extra_params")
    @classmethod
    def reject_reserved_params(cls, v: dict[str, Any]) -> dict[str, Any]:  # noqa: N805
        clash = sorted(RESERVED_QUERY_PARAMS & set(v))
        if clash:
            raise ValueError(
                f"extra_params may not set {', '.join(clash)}; "
                "use the request fields or the filter expression instead"
            )
        return v


class DenseSearchRequest(_ModalityRequest):
    """Nearest-neighbour query on the stored embeddings."""

    modality: Literal["dense"] = "dense"
    vector: list[float]


class LexicalSearchRequest(_ModalityRequest):
    """Text query embedded and matched by the backend itself."""

    modality: Literal["lexical"] = "lexical"
    text: str


SearchRequest = Annotated[
    Union[DenseSearchRequest, LexicalSearchRequest],
    Field(discriminator="modality"),
]


class SearchOptions(BaseModel):
    """Options for a plain dense search.

    filter is a backend-native predicate; filter_expression is translated first
    and wins when both are given.
    """

    top_k: int = Field(default=10, gt=0)
    filter: dict[str, Any] | None = None
    filter_expression: str | None = None


class FusionOptions(BaseModel):
    """Options applied uniformly to every modality request of one fusion call."""

    limit: int = Field(default=10, gt=0)
    filter_expression: str | None = None
    timeout_s: float | None = Field(default=None, gt=0)


# === RESULTS ===


class ScoredResult(BaseModel):
    """Per-modality result with a similarity score in [0, 1]."""

    document: Document
    score: float = Field(ge=0.0, le=1.0)


class FusedResult(BaseModel):
    """Final hybrid search entry, one per distinct document id."""

    document: Document
    score: float = Field(ge=0.0, le=1.0)
