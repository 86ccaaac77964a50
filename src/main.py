# src/main.py — v1
"""CLI entry point — collections, drop, search, query commands.

Usage:
    ctxvector collections
    ctxvector drop <collection>
    ctxvector search <collection> --text "..." [--vector-file v.json] [options]
    ctxvector query <collection> [--filter EXPR] [--fields a,b] [--limit N]

Connection and policy settings come from .env / environment (see Settings).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from ctxvector.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from ctxvector.config.settings import Settings
    from ctxvector.logging.logger import setup_logging_from_settings

    try:
        settings = Settings()
    except Exception as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    setup_logging_from_settings(settings, verbose=args.verbose)

    try:
        return asyncio.run(_run(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


async def _run(args: argparse.Namespace, settings: object) -> int:
    from ctxvector.rag.vector_store.vector_store_factory import create_vector_store

    store = await create_vector_store(settings)  # type: ignore[arg-type]
    return await args.func(args, store, settings)


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ctxvector",
        description=f"ctxvector v{__version__} — hybrid search over Chroma collections",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- collections ---
    p_list = subparsers.add_parser("collections", help="List collections")
    p_list.set_defaults(func=_cmd_collections)

    # --- drop ---
    p_drop = subparsers.add_parser("drop", help="Drop a collection")
    p_drop.add_argument("collection")
    p_drop.set_defaults(func=_cmd_drop)

    # --- search ---
    p_search = subparsers.add_parser(
        "search", help="Hybrid search (lexical text and/or dense vector)",
    )
    p_search.add_argument("collection")
    p_search.add_argument("--text", default=None, help="Lexical query text")
    p_search.add_argument(
        "--vector-file", type=Path, default=None,
        help="JSON file holding the dense query vector (list of floats)",
    )
    p_search.add_argument(
        "-n", "--limit", type=int, default=None,
        help="Maximum results (default: HYBRID_DEFAULT_LIMIT)",
    )
    p_search.add_argument("--filter", default=None, help="Filter expression")
    p_search.set_defaults(func=_cmd_search)

    # --- query ---
    p_query = subparsers.add_parser("query", help="Metadata query")
    p_query.add_argument("collection")
    p_query.add_argument("--filter", default=None, help="Filter expression")
    p_query.add_argument(
        "--fields", default="",
        help="Comma-separated output fields (default: all)",
    )
    p_query.add_argument("-n", "--limit", type=int, default=None)
    p_query.set_defaults(func=_cmd_query)

    return parser


async def _cmd_collections(args: argparse.Namespace, store, settings) -> int:
    from ctxvector.api.facade import list_collections

    for name in await list_collections(store):
        print(name)
    return 0


async def _cmd_drop(args: argparse.Namespace, store, settings) -> int:
    from ctxvector.api.facade import drop_collection

    await drop_collection(store, args.collection)
    return 0


async def _cmd_search(args: argparse.Namespace, store, settings) -> int:
    """Build dense/lexical requests from the arguments and print fused results."""
    from ctxvector.api.facade import hybrid_search
    from ctxvector.core.models import (
        DenseSearchRequest,
        FusionOptions,
        LexicalSearchRequest,
    )

    limit = args.limit or settings.hybrid_default_limit
    requests: list = []
    if args.vector_file is not None:
        vector = _load_vector(args.vector_file)
        if vector is None:
            return 1
        requests.append(DenseSearchRequest(vector=vector, limit=limit))
    if args.text:
        requests.append(LexicalSearchRequest(text=args.text, limit=limit))
    if not requests:
        logger.error("Nothing to search: give --text and/or --vector-file")
        return 1

    results = await hybrid_search(
        store, args.collection, requests,
        FusionOptions(limit=limit, filter_expression=args.filter),
        settings=settings,
    )
    for r in results:
        doc = r.document
        print(json.dumps({
            "id": doc.id,
            "score": round(r.score, 4),
            "location": f"{doc.relative_path}:{doc.start_line}-{doc.end_line}",
        }))
    return 0


async def _cmd_query(args: argparse.Namespace, store, settings) -> int:
    from ctxvector.api.facade import query

    fields = [f.strip() for f in args.fields.split(",") if f.strip()]
    rows = await query(
        store, args.collection, args.filter, fields, args.limit, settings=settings,
    )
    for row in rows:
        print(json.dumps(row, default=str))
    return 0


def _load_vector(path: Path) -> list[float] | None:
    """Read a JSON list of numbers; None (logged) if missing or malformed."""
    if not path.exists():
        logger.error("File not found: %s", path)
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in %s: %s", path, e)
        return None
    if not isinstance(data, list) or not all(isinstance(x, (int, float)) for x in data):
        logger.error("Expected a JSON list of numbers in %s", path)
        return None
    return [float(x) for x in data]


if __name__ == "__main__":
    sys.exit(main())
