# src/logging/handlers.py — v1
"""Console and rotating-file handlers for the ctxvector logger."""

from __future__ import annotations

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import IO

_SIZE_RE = re.compile(r"^(\d+)\s*(B|KB|MB|GB)$", re.IGNORECASE)
_MULTIPLIERS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size_str: str) -> int:
    """Parse a LOG_ROTATION value like '10MB' into bytes (B, KB, MB, GB)."""
    match = _SIZE_RE.match(size_str.strip())
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    return int(match.group(1)) * _MULTIPLIERS[match.group(2).upper()]


def create_console_handler(stream: IO[str] | None = None) -> logging.StreamHandler:
    """Console handler on stderr; stdout carries CLI results."""
    return logging.StreamHandler(stream or sys.stderr)


def create_rotating_handler(
    log_file: str,
    rotation: str = "10MB",
    retention: int = 30,
) -> RotatingFileHandler:
    """Size-based rotating file handler; parent directories are created."""
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    return RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )


def build_handlers(
    formatter: logging.Formatter,
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
    stream: IO[str] | None = None,
) -> list[logging.Handler]:
    """Console handler plus, when log_file is set, a rotating file handler."""
    handlers: list[logging.Handler] = [create_console_handler(stream)]
    if log_file:
        handlers.append(create_rotating_handler(log_file, rotation, retention))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers
