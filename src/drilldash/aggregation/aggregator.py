"""In-memory grouping and reduction of chart rows.

One pass over the rows builds an insertion-ordered map from group key
to accumulator; a second pass over the groups finalizes averages and
counts. Output order is the order in which each group key was first seen.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any

from drilldash.aggregation.labels import COMPOSITE_LABEL_KEY, build_label, group_key, stringify
from drilldash.query.models import Aggregation, Row

_COUNT_KEY = "_count"
_NUMERIC_TEXT = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_INTEGER_TEXT = re.compile(r"^[+-]?\d+$")


def to_number(value: Any) -> int | float:
    """Numeric value of a cell; anything non-numeric counts as zero."""
    if value is None or isinstance(value, bool):
        return int(bool(value))
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return 0 if math.isnan(value) else value
    if isinstance(value, str):
        text = value.strip()
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        if not _NUMERIC_TEXT.match(text):
            return 0
        if _INTEGER_TEXT.match(text):
            return int(text)
        return float(text)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return 0 if math.isnan(number) else number


def is_numeric(value: Any) -> bool:
    """True for real numbers and numeric text; booleans are not numbers."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    return isinstance(value, str) and bool(_NUMERIC_TEXT.match(value.strip()))


@dataclass(frozen=True)
class AggregateSpec:
    """What to group by and how to reduce.

    Attributes:
        group_key_fields: Ordered grouping columns; the first is the
            primary label field.
        value_fields: Columns reduced with ``fn``.
        fn: Aggregation function.
        composite_label_from: Fields joined into the composite label. With
            more than one field the label replaces the primary label field.
        carry_max_fields: Non-grouping columns carried through as the
            lexicographic maximum of their non-empty values.
    """

    group_key_fields: list[str]
    value_fields: list[str]
    fn: Aggregation = Aggregation.SUM
    composite_label_from: list[str] | None = None
    carry_max_fields: list[str] = field(default_factory=list)


def _seed(fn: Aggregation) -> int | float:
    if fn == Aggregation.MIN:
        return math.inf
    if fn == Aggregation.MAX:
        return -math.inf
    return 0


def aggregate(rows: list[Row], spec: AggregateSpec) -> list[Row]:
    """Group ``rows`` by ``spec.group_key_fields`` and reduce the value fields."""
    fn = Aggregation(spec.fn)
    value_fields = [v for v in spec.value_fields if v not in spec.group_key_fields]
    groups: dict[tuple[str, ...], Row] = {}

    for row in rows:
        key = group_key(row, spec.group_key_fields)
        acc = groups.get(key)
        if acc is None:
            acc = {_COUNT_KEY: 0}
            for f in spec.group_key_fields:
                acc[f] = row.get(f)
            for v in value_fields:
                acc[v] = _seed(fn)
            if spec.composite_label_from:
                acc[COMPOSITE_LABEL_KEY] = build_label(row, spec.composite_label_from)
            for f in spec.carry_max_fields:
                acc[f] = stringify(row[f]) if row.get(f) else None
            groups[key] = acc

        acc[_COUNT_KEY] += 1

        if fn != Aggregation.COUNT:
            for v in value_fields:
                n = to_number(row.get(v))
                if fn in (Aggregation.SUM, Aggregation.AVG):
                    acc[v] += n
                elif fn == Aggregation.MIN:
                    acc[v] = min(acc[v], n)
                else:
                    acc[v] = max(acc[v], n)

        for f in spec.carry_max_fields:
            if row.get(f):
                candidate = stringify(row[f])
                if acc[f] is None or candidate > acc[f]:
                    acc[f] = candidate

    primary = spec.group_key_fields[0] if spec.group_key_fields else None
    overwrite_label = bool(spec.composite_label_from and len(spec.composite_label_from) > 1)

    result: list[Row] = []
    for acc in groups.values():
        out = dict(acc)
        count = out.pop(_COUNT_KEY)
        if fn == Aggregation.AVG:
            for v in value_fields:
                out[v] = out[v] / count
        elif fn == Aggregation.COUNT:
            for v in value_fields:
                out[v] = count

        label = out.pop(COMPOSITE_LABEL_KEY, None)
        if overwrite_label and primary is not None:
            out[primary] = label
        result.append(out)

    return result
