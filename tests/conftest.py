# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides sample documents, raw backend hits and a scripted in-memory
backend store. No external dependencies — all I/O is faked.
"""

from __future__ import annotations

from typing import Any

import pytest

from ctxvector.config.settings import Settings
from ctxvector.core.models import Document, RawHit
from ctxvector.logging.context import clear_context
from ctxvector.rag.vector_store.base_vector_store import BaseVectorStore


# === FAKE BACKEND ===


class FakeVectorStore(BaseVectorStore):
    """Scripted backend store.

    dense_hits / lexical_hits are returned (truncated to limit) by the search
    calls; dense_error / lexical_error are raised instead when set. Every
    call is recorded in self.calls.
    """

    def __init__(
        self,
        dense_hits: list[RawHit] | None = None,
        lexical_hits: list[RawHit] | None = None,
    ) -> None:
        self.dense_hits = dense_hits or []
        self.lexical_hits = lexical_hits or []
        self.dense_error: Exception | None = None
        self.lexical_error: Exception | None = None
        self.collections: dict[str, dict[str, Any]] = {}
        self.rows: dict[str, list[RawHit]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def search_dense(self, collection, vector, limit, predicate=None, **extra):
        self.calls.append(("dense", {
            "collection": collection, "vector": vector, "limit": limit,
            "predicate": predicate, **extra,
        }))
        if self.dense_error is not None:
            raise self.dense_error
        return self.dense_hits[:limit]

    async def search_lexical(self, collection, text, limit, predicate=None, **extra):
        self.calls.append(("lexical", {
            "collection": collection, "text": text, "limit": limit,
            "predicate": predicate, **extra,
        }))
        if self.lexical_error is not None:
            raise self.lexical_error
        return self.lexical_hits[:limit]

    async def create_collection(self, collection, metadata=None):
        self.calls.append(("create_collection", {"collection": collection, "metadata": metadata}))
        self.collections[collection] = metadata or {}
        self.rows.setdefault(collection, [])

    async def drop_collection(self, collection):
        self.calls.append(("drop_collection", {"collection": collection}))
        self.collections.pop(collection, None)
        self.rows.pop(collection, None)

    async def collection_exists(self, collection):
        return collection in self.collections

    async def list_collections(self):
        return list(self.collections)

    async def add(self, collection, ids, embeddings, documents, metadatas=None):
        self.calls.append(("add", {
            "collection": collection, "ids": ids, "embeddings": embeddings,
            "documents": documents, "metadatas": metadatas,
        }))
        metas = metadatas or [{} for _ in ids]
        self.rows.setdefault(collection, []).extend(
            RawHit(id=i, content=d, metadata=m) for i, d, m in zip(ids, documents, metas)
        )

    async def delete(self, collection, ids):
        self.calls.append(("delete", {"collection": collection, "ids": ids}))
        self.rows[collection] = [r for r in self.rows.get(collection, []) if r.id not in ids]

    async def get(self, collection, where=None, limit=None, ids=None):
        self.calls.append(("get", {
            "collection": collection, "where": where, "limit": limit, "ids": ids,
        }))
        rows = self.rows.get(collection, [])
        if ids is not None:
            rows = [r for r in rows if r.id in ids]
        return rows[:limit] if limit else list(rows)

    async def count(self, collection):
        return len(self.rows.get(collection, []))

    @property
    def provider_name(self) -> str:
        return "fake"


def _hit(doc_id: str, distance: float | None, **metadata: Any) -> RawHit:
    meta = {
        "relativePath": f"src/{doc_id}.py",
        "startLine": 1,
        "endLine": 10,
        "fileExtension": ".py",
        **metadata,
    }
    return RawHit(id=doc_id, raw_distance=distance, content=f"content of {doc_id}", metadata=meta)


# === FIXTURES ===


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def fake_store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture
def make_hit():
    """Factory: make_hit(id, distance, **metadata) -> RawHit with default location metadata."""
    return _hit


@pytest.fixture
def sample_document() -> Document:
    """Minimal valid Document."""
    return Document(
        id="chunk_001",
        vector=[0.1, 0.2, 0.3],
        content="def add(a, b):\n    return a + b\n",
        relative_path="src/math_utils.py",
        start_line=12,
        end_line=13,
        file_extension=".py",
        metadata={"language": "python", "codebasePath": "/repo"},
    )


@pytest.fixture
def sample_documents(sample_document: Document) -> list[Document]:
    """Three documents in different files."""
    d2 = sample_document.model_copy(
        update={
            "id": "chunk_002",
            "vector": [0.3, 0.2, 0.1],
            "content": "export function sub(a, b) { return a - b; }",
            "relative_path": "web/math.ts",
            "start_line": 1,
            "end_line": 1,
            "file_extension": ".ts",
            "metadata": {"language": "typescript"},
        }
    )
    d3 = sample_document.model_copy(
        update={
            "id": "chunk_003",
            "vector": [0.0, 1.0, 0.0],
            "content": "# Math helpers",
            "relative_path": "README.md",
            "start_line": 1,
            "end_line": 1,
            "file_extension": ".md",
            "metadata": {},
        }
    )
    return [sample_document, d2, d3]
