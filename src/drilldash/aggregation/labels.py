"""Composite labels and group keys for multi-field groupings."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import Any

LABEL_SEPARATOR = " - "
COMPOSITE_LABEL_KEY = "_compositeLabel"


def stringify(value: Any) -> str:
    """Coerce a cell to text the way the dashboard front-end does.

    ``None`` becomes ``""``, booleans are lower-case and integral floats
    lose their trailing ``.0`` so ``1`` and ``1.0`` label identically.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def group_key(row: dict[str, Any], fields: Sequence[str]) -> tuple[str, ...]:
    """Ordered tuple of the stringified grouping values of a row.

    Kept as a tuple so distinct field tuples can never collide.
    """
    return tuple(stringify(row.get(f)) for f in fields)


def build_label(row: dict[str, Any], fields: Sequence[str], separator: str = LABEL_SEPARATOR) -> str:
    """Join the stringified values of ``fields`` into one display label."""
    return separator.join(stringify(row.get(f)) for f in fields)


def unique_fields(fields: Iterable[str | None]) -> list[str]:
    """Drop empty entries and repeats, keeping first-seen order."""
    seen: list[str] = []
    for f in fields:
        if f and f not in seen:
            seen.append(f)
    return seen
