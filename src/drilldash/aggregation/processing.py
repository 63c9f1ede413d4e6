"""Turn acquired rows into a chart-ready dataset: aggregate, sort, limit."""

from __future__ import annotations

from functools import cmp_to_key
from typing import Any

from drilldash.aggregation.aggregator import AggregateSpec, aggregate
from drilldash.aggregation.labels import stringify, unique_fields
from drilldash.query.models import DataSourceConfig, Row


def build_aggregate_spec(config: DataSourceConfig, group_field: str | None = None) -> AggregateSpec:
    """Derive the grouping for a data source.

    ``group_field`` overrides the x-axis as the primary grouping column,
    which is how drill-down levels regroup the same source.
    """
    primary = group_field or config.x_axis
    extra = [g for g in unique_fields(config.group_by) if g != primary]
    key_fields = unique_fields([primary, *extra])

    carry: list[str] = []
    label_field = config.drill_down_label_field
    if label_field and label_field not in key_fields:
        carry.append(label_field)

    return AggregateSpec(
        group_key_fields=key_fields,
        value_fields=list(config.y_axis),
        fn=config.aggregation,
        composite_label_from=key_fields if extra else None,
        carry_max_fields=carry,
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def sort_rows(rows: list[Row], order_by: str | None, direction: str = "asc") -> list[Row]:
    """Stable sort on one column.

    Numbers compare numerically when both sides are numbers; everything
    else compares as text.
    """
    if not order_by:
        return rows

    sign = -1 if direction == "desc" else 1

    def compare(a: Row, b: Row) -> int:
        av, bv = a.get(order_by), b.get(order_by)
        if _is_number(av) and _is_number(bv):
            left, right = av, bv
        else:
            left, right = stringify(av), stringify(bv)
        return sign * ((left > right) - (left < right))

    return sorted(rows, key=cmp_to_key(compare))


def limit_rows(rows: list[Row], limit: int | None) -> list[Row]:
    if not limit or limit <= 0:
        return rows
    return rows[:limit]


def process_chart_data(
    rows: list[Row],
    config: DataSourceConfig,
    *,
    group_field: str | None = None,
) -> list[Row]:
    """Aggregate ``rows`` per ``config``, then apply its order and limit.

    A config without both an x-axis and a y-axis yields no data.
    """
    if not config.is_aggregatable or not rows:
        return []

    spec = build_aggregate_spec(config, group_field)
    result = aggregate(rows, spec)
    result = sort_rows(result, config.order_by, config.order_direction)
    return limit_rows(result, config.limit)
