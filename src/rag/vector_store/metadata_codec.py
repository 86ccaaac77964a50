# src/rag/vector_store/metadata_codec.py — v1
"""Flatten Documents into the backend's flat metadata mapping and back.

The four location fields are stored next to caller metadata under
reserved camelCase keys, so the insert and read paths must agree on them.
"""

from __future__ import annotations

from typing import Any

from ctxvector.core.models import Document

RESERVED_FIELDS: tuple[str, ...] = ("relativePath", "startLine", "endLine", "fileExtension")


def to_backend_metadata(document: Document) -> dict[str, Any]:
    """Build the flat metadata mapping stored for a document.

    Raises:
        ValueError: If caller metadata uses a reserved key (it would be
            silently lost on read).
    """
    clash = sorted(set(document.metadata) & set(RESERVED_FIELDS))
    if clash:
        raise ValueError(
            f"Document {document.id!r} metadata uses reserved keys: {', '.join(clash)}"
        )
    return {
        "relativePath": document.relative_path,
        "startLine": document.start_line,
        "endLine": document.end_line,
        "fileExtension": document.file_extension,
        **document.metadata,
    }


def split_backend_metadata(metadata: dict[str, Any] | None) -> dict[str, Any]:
    """Separate reserved fields from the residual mapping.

    Returns keyword arguments for Document (minus id/content/vector).
    """
    meta = metadata or {}
    return {
        "relative_path": meta.get("relativePath") or "",
        "start_line": int(meta.get("startLine") or 0),
        "end_line": int(meta.get("endLine") or 0),
        "file_extension": meta.get("fileExtension") or "",
        "metadata": {k: v for k, v in meta.items() if k not in RESERVED_FIELDS},
    }


def document_from_backend(
    doc_id: str,
    content: str | None,
    metadata: dict[str, Any] | None,
    vector: list[float] | None = None,
) -> Document:
    """Rebuild a Document from one backend row."""
    return Document(
        id=doc_id,
        vector=list(vector) if vector is not None else [],
        content=content or "",
        **split_backend_metadata(metadata),
    )
