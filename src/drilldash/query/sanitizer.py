"""Identifier sanitization for generated query text.

Column names reaching the backend are user-influenced. Every field is
reduced to ``[A-Za-z0-9_]`` (optionally brackets) and callers drop the
field entirely when the reduced form differs from the input.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Any

from drilldash.exceptions import UnsafeQueryError
from drilldash.query.models import Filter, SanitizedFilter

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_]")
_UNSAFE_CHARS_BRACKETED = re.compile(r"[^A-Za-z0-9_\[\]]")

_QUERY_PREFIXES = ("SELECT", "WITH")


def sanitize_identifier(raw: Any, *, allow_brackets: bool = False) -> str:
    """Strip every character outside the identifier alphabet.

    Never raises. Non-string input yields an empty string, which callers
    treat as "drop this field".
    """
    if not isinstance(raw, str):
        return ""
    pattern = _UNSAFE_CHARS_BRACKETED if allow_brackets else _UNSAFE_CHARS
    return pattern.sub("", raw)


def is_safe_identifier(raw: Any, *, allow_brackets: bool = False) -> bool:
    """True when sanitization leaves a non-empty identifier unchanged."""
    if not isinstance(raw, str) or not raw:
        return False
    return sanitize_identifier(raw, allow_brackets=allow_brackets) == raw


def safe_identifiers(fields: Iterable[str]) -> list[str]:
    """Keep only the fields that survive sanitization unchanged."""
    kept = []
    for f in fields:
        if is_safe_identifier(f):
            kept.append(f)
        else:
            logger.debug("Dropping unsafe identifier %r", f)
    return kept


def sanitize_filters(filters: Iterable[Filter]) -> list[SanitizedFilter]:
    """Convert filters to their wire form, dropping any with an unsafe field."""
    result: list[SanitizedFilter] = []
    for f in filters:
        if not is_safe_identifier(f.field):
            logger.debug("Dropping filter on unsafe field %r", f.field)
            continue
        result.append(SanitizedFilter(field=f.field, operator=f.operator, value=f.value))
    return result


def ensure_select_only(query: str) -> str:
    """Reject custom queries that are not a single read-only statement.

    The query text is returned unchanged; it is never rewritten here.

    Raises:
        UnsafeQueryError: If the query is empty, does not begin with
            SELECT/WITH, or chains further statements after a ``;``.
    """
    stripped = query.strip() if isinstance(query, str) else ""
    if not stripped:
        raise UnsafeQueryError("query is empty")

    head = stripped.split(None, 1)[0].upper()
    if head not in _QUERY_PREFIXES:
        raise UnsafeQueryError("only SELECT queries are allowed")

    body = stripped.rstrip(";").rstrip()
    if ";" in body:
        raise UnsafeQueryError("multiple statements are not allowed")

    return query
