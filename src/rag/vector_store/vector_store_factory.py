# src/rag/vector_store/vector_store_factory.py — v1
"""Factory: connect the backend store named by VECTOR_DB_TYPE.

``create_vector_store`` is the second phase of the lifecycle: Settings has
already been validated, this call opens the client and hands back a ready
store for the facade functions.
"""

from __future__ import annotations

import logging
from typing import Any

from ctxvector.config.settings import Settings
from ctxvector.rag.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)

SUPPORTED_VECTOR_STORES: tuple[str, ...] = ("chromadb",)


class UnsupportedVectorStoreError(ValueError):
    """Raised when a vector store type is not supported."""


def describe_target(settings: Settings) -> str:
    """Human-readable location of the configured Chroma instance."""
    if settings.chroma_url:
        return settings.chroma_url
    if settings.chroma_path is not None:
        return str(settings.chroma_path)
    return "in-memory client"


async def create_vector_store(
    settings: Settings,
    embedding_function: Any | None = None,
) -> BaseVectorStore:
    """Connect the configured backend and return a ready store.

    Args:
        settings: Validated settings (VECTOR_DB_TYPE, CHROMA_*, OPENAI_*).
        embedding_function: Collection embedding function overriding the
            one derived from settings.

    Raises:
        ValueError: If VECTOR_DB_TYPE is 'none'.
        UnsupportedVectorStoreError: If the type has no connector.
        BackendUnavailable: If the backend cannot be reached.
    """
    db_type = settings.vector_db_type

    if db_type == "none":
        raise ValueError(
            "VECTOR_DB_TYPE is 'none'. Enable a vector DB to use this factory."
        )
    if db_type not in SUPPORTED_VECTOR_STORES:
        raise UnsupportedVectorStoreError(
            f"Unsupported vector store type: {db_type!r}. "
            f"Available: {', '.join(SUPPORTED_VECTOR_STORES)}"
        )

    logger.debug("Connecting %s vector store at %s", db_type, describe_target(settings))
    from ctxvector.rag.vector_store.chromadb_store import connect

    return await connect(settings, embedding_function=embedding_function)
