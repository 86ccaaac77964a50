# tests/integration/conftest.py — v1
"""Shared fixtures for integration tests against an in-process Chroma.

Every test gets a fresh collection name; in-memory Chroma clients share
state within one process, so names must never be reused.
"""

from __future__ import annotations

import asyncio
import math
import re
import uuid

import pytest

VOCABULARY = ("parse", "config", "math", "render")


# ── Pytest markers ──────────────────────────────────────────────

def pytest_configure(config):
    config.addinivalue_line("markers", "chromadb: marks tests requiring the chromadb package")


def _keyword_vector(text: str) -> list[float]:
    """Bag-of-keywords vector over VOCABULARY plus a constant bias, unit length."""
    words = re.findall(r"[a-z]+", text.lower())
    raw = [float(sum(w.startswith(k) for w in words)) for k in VOCABULARY] + [0.1]
    norm = math.sqrt(sum(x * x for x in raw))
    return [x / norm for x in raw]


def _keyword_embedding_function():
    from chromadb import Documents, EmbeddingFunction, Embeddings

    class KeywordEmbeddingFunction(EmbeddingFunction):
        """Deterministic text embedding; no model download."""

        def __init__(self) -> None:
            self.call_count = 0

        def __call__(self, input: Documents) -> Embeddings:  # noqa: A002
            self.call_count += len(input)
            return [_keyword_vector(text) for text in input]

    return KeywordEmbeddingFunction()


@pytest.fixture
def vectorize():
    """Text -> the vector the test embedding function would produce."""
    return _keyword_vector


@pytest.fixture
def embedding_function():
    pytest.importorskip("chromadb")
    return _keyword_embedding_function()


@pytest.fixture
def chromadb_memory_store(embedding_function):
    from ctxvector.config.settings import Settings
    from ctxvector.rag.vector_store.base_vector_store import BackendUnavailable
    from ctxvector.rag.vector_store.chromadb_store import connect

    try:
        return asyncio.run(
            connect(Settings(_env_file=None), embedding_function=embedding_function)
        )
    except BackendUnavailable as e:
        if "http-only" in str(e).lower():
            pytest.skip("chromadb http-only client; install full: pip install chromadb")
        raise


@pytest.fixture
def chromadb_collection() -> str:
    return f"test_{uuid.uuid4().hex[:8]}"
