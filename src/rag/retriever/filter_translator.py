# src/rag/retriever/filter_translator.py — v1
"""Translate filter expressions into Chroma ``where`` predicates.

Supported grammar::

    expr   := clause ("and" clause)*
    clause := <field> in [<value>, ...]
    value  := "double quoted" | 'single quoted' | number

A single clause becomes ``{field: {"$in": [...]}}``; several clauses are
wrapped in ``{"$and": [...]}``. What happens to anything else is decided by
the caller's FilterFallbackPolicy.
"""

from __future__ import annotations

import copy
import logging
import re
from typing import Any

from ctxvector.core.models import FilterFallbackPolicy

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_EXTENSIONS: tuple[str, ...] = (".ts", ".js", ".py")

_CLAUSE_RE = re.compile(
    r"""\s*(?P<field>[A-Za-z_][\w.]*)\s+(?i:in)\s*\[(?P<values>(?:"[^"]*"|'[^']*'|[^\]"'])*)\]\s*"""
)
_AND_RE = re.compile(r"(?i:and)\b")
_VALUE_RE = re.compile(
    r"""\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<num>-?\d+(?:\.\d+)?))\s*(?:,|$)"""
)


class InvalidFilterExpression(ValueError):
    """The expression does not match the filter grammar."""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid filter expression {expression!r}: {reason}")


def default_predicate(extensions: list[str] | tuple[str, ...] = DEFAULT_FALLBACK_EXTENSIONS) -> dict:
    """Predicate used by USE_DEFAULT: restrict results to the given file extensions."""
    return {"fileExtension": {"$in": list(extensions)}}


def parse_filter(expression: str) -> dict:
    """Parse an expression strictly.

    Raises:
        InvalidFilterExpression: On any input outside the grammar.
    """
    clauses: list[dict[str, Any]] = []
    pos = 0
    end = len(expression)

    while True:
        m = _CLAUSE_RE.match(expression, pos)
        if not m:
            raise InvalidFilterExpression(
                expression, f"expected '<field> in [...]' at offset {pos}"
            )
        clauses.append({m.group("field"): {"$in": _parse_values(expression, m.group("values"))}})
        pos = m.end()
        if pos == end:
            break
        a = _AND_RE.match(expression, pos)
        if not a:
            raise InvalidFilterExpression(expression, f"expected 'and' at offset {pos}")
        pos = a.end()

    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _parse_values(expression: str, raw: str) -> list[Any]:
    values: list[Any] = []
    pos = 0
    while pos < len(raw):
        if not raw[pos:].strip():
            break
        m = _VALUE_RE.match(raw, pos)
        if not m:
            raise InvalidFilterExpression(expression, f"bad list value near {raw[pos:]!r}")
        if m.group("dq") is not None:
            values.append(m.group("dq"))
        elif m.group("sq") is not None:
            values.append(m.group("sq"))
        else:
            num = m.group("num")
            values.append(float(num) if "." in num else int(num))
        pos = m.end()
    if not values:
        raise InvalidFilterExpression(expression, "empty value list")
    return values


def translate(
    expression: str | None,
    policy: FilterFallbackPolicy | str = FilterFallbackPolicy.USE_DEFAULT,
    default: dict | None = None,
) -> dict | None:
    """Translate a filter expression into a backend predicate.

    Args:
        expression: Filter expression; None or blank means "no filter".
        policy: What to do with unparseable input.
        default: Predicate returned under USE_DEFAULT (defaults to the
            .ts/.js/.py extension allow-list).

    Returns:
        A Chroma ``where`` mapping, or None when no filter applies.

    Raises:
        InvalidFilterExpression: Only under the REJECT policy.
    """
    if expression is None or not expression.strip():
        return None

    try:
        return parse_filter(expression)
    except InvalidFilterExpression as e:
        policy = FilterFallbackPolicy(policy)
        if policy is FilterFallbackPolicy.REJECT:
            raise
        if policy is FilterFallbackPolicy.IGNORE_FILTER:
            logger.warning("Ignoring filter: %s", e.reason)
            return None
        predicate = copy.deepcopy(default) if default is not None else default_predicate()
        logger.warning("Using default filter %s: %s", predicate, e.reason)
        return predicate
