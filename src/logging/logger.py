# src/logging/logger.py — v1
"""Logger factory, JSON/text formatters and one-call setup for the ctxvector tree.

Every record carries the current LogContext (collection, operation,
modality) so a fused search can be traced across its modality calls.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import IO, Any

from ctxvector.logging.context import get_context
from ctxvector.logging.handlers import build_handlers

ROOT_LOGGER_NAME = "ctxvector"

# Client libraries that log every HTTP request or telemetry event at INFO.
NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "urllib3", "chromadb", "posthog")


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, context."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context

        data = getattr(record, "data", None)
        if data:
            entry["data"] = data

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Readable single-line format: ``time [LEVEL] logger [collection] (op/modality) — msg``."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        parts = [
            datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname:8s}]",
            record.name,
        ]
        if ctx.collection:
            parts.append(f"[{ctx.collection}]")
        if ctx.operation:
            op = f"{ctx.operation}/{ctx.modality}" if ctx.modality else ctx.operation
            parts.append(f"({op})")
        parts.append(f"— {record.getMessage()}")
        line = " ".join(parts)
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def quiet_libraries(level: int = logging.WARNING) -> None:
    """Raise the threshold of chatty client libraries."""
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
    stream: IO[str] | None = None,
) -> None:
    """(Re)configure the ctxvector logger; existing handlers are replaced.

    Args:
        level: DEBUG, INFO, WARNING or ERROR.
        log_format: "json" or "text".
        log_file: Optional rotating log file.
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
        stream: Console stream (default stderr).
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers.clear()

    formatter = JsonFormatter() if log_format == "json" else TextFormatter()
    for handler in build_handlers(formatter, log_file, rotation, retention, stream):
        root_logger.addHandler(handler)


def setup_logging_from_settings(settings: Any, verbose: bool = False) -> None:
    """Apply the LOG_* fields of a Settings instance; verbose forces DEBUG."""
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    quiet_libraries()
