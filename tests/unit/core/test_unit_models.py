# tests/unit/core/test_unit_models.py — v1
"""Tests for core/models.py — request union, options and result bounds."""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from ctxvector.core.models import (
    DenseSearchRequest,
    Document,
    FilterFallbackPolicy,
    FusedResult,
    FusionOptions,
    LexicalSearchRequest,
    ModalityFailurePolicy,
    RawHit,
    ScoredResult,
    SearchOptions,
    SearchRequest,
)

_request_adapter = TypeAdapter(SearchRequest)


class TestSearchRequest:
    def test_dense_from_dict(self):
        req = _request_adapter.validate_python({"modality": "dense", "vector": [0.1, 0.2]})
        assert isinstance(req, DenseSearchRequest)
        assert req.limit == 10
        assert req.extra_params == {}

    def test_lexical_from_dict(self):
        req = _request_adapter.validate_python(
            {"modality": "lexical", "text": "parse config", "limit": 3}
        )
        assert isinstance(req, LexicalSearchRequest)
        assert req.limit == 3

    def test_unknown_modality(self):
        with pytest.raises(ValidationError):
            _request_adapter.validate_python({"modality": "sparse", "text": "x"})

    def test_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            DenseSearchRequest(vector=[1.0], limit=0)

    def test_extra_params_kept(self):
        req = LexicalSearchRequest(text="x", extra_params={"where_document": {"$contains": "x"}})
        assert req.extra_params["where_document"] == {"$contains": "x"}

    @pytest.mark.parametrize("key", ["where", "n_results", "query_embeddings", "query_texts", "include"])
    def test_extra_params_cannot_override_query_args(self, key):
        with pytest.raises(ValidationError, match=key):
            DenseSearchRequest(vector=[1.0], extra_params={key: {}})

    def test_reserved_extra_params_rejected_from_dict(self):
        with pytest.raises(ValidationError, match="where"):
            _request_adapter.validate_python(
                {"modality": "lexical", "text": "x", "extra_params": {"where": {"a": 1}}}
            )


class TestOptions:
    def test_fusion_defaults(self):
        opts = FusionOptions()
        assert opts.limit == 10
        assert opts.filter_expression is None
        assert opts.timeout_s is None

    def test_fusion_timeout_positive(self):
        with pytest.raises(ValidationError):
            FusionOptions(timeout_s=0)

    def test_search_options_top_k(self):
        with pytest.raises(ValidationError):
            SearchOptions(top_k=-1)


class TestResults:
    def test_score_bounds(self):
        doc = Document(id="a")
        assert ScoredResult(document=doc, score=0.0).score == 0.0
        assert FusedResult(document=doc, score=1.0).score == 1.0
        with pytest.raises(ValidationError):
            ScoredResult(document=doc, score=1.5)
        with pytest.raises(ValidationError):
            FusedResult(document=doc, score=-0.1)

    def test_raw_hit_defaults(self):
        hit = RawHit(id="a")
        assert hit.raw_distance is None
        assert hit.metadata == {}


class TestPolicies:
    def test_from_string(self):
        assert FilterFallbackPolicy("use_default") is FilterFallbackPolicy.USE_DEFAULT
        assert ModalityFailurePolicy("degrade") is ModalityFailurePolicy.DEGRADE

    def test_invalid(self):
        with pytest.raises(ValueError):
            FilterFallbackPolicy("retry")
