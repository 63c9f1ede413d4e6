"""Cross-filter coordination between the charts of one dashboard.

A registry instance belongs to a single dashboard-viewing session. Each
chart can hold at most one filter per field. Link groups isolate charts:
a grouped chart only reacts to filters set within its group, while an
ungrouped chart reacts to every active filter.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel

from drilldash.query.models import Filter

logger = logging.getLogger(__name__)


class RangeBounds(BaseModel):
    min: float
    max: float


class CrossFilter(BaseModel):
    """A filter set by clicking or brushing a chart."""

    chart_id: str
    field: str
    value: Any = None
    operator: Literal["=", "in", "range"] = "="
    values: list[Any] | None = None
    range: RangeBounds | None = None

    @property
    def is_empty(self) -> bool:
        """True when the filter carries nothing to constrain on."""
        if self.operator == "in":
            return not self.values
        if self.operator == "range":
            return self.range is None
        return self.value is None or self.value == ""


class CrossFilterRegistry:
    """Active cross-filters and chart link groups for one dashboard."""

    def __init__(self) -> None:
        self._filters: list[CrossFilter] = []
        self._groups: dict[str, list[str]] = {}

    @property
    def active_filters(self) -> list[CrossFilter]:
        return list(self._filters)

    @property
    def link_groups(self) -> dict[str, list[str]]:
        return {gid: list(ids) for gid, ids in self._groups.items()}

    def set_filter(self, cross_filter: CrossFilter) -> None:
        """Replace the filter for ``(chart_id, field)``; an empty filter just removes it."""
        self._filters = [
            f
            for f in self._filters
            if not (f.chart_id == cross_filter.chart_id and f.field == cross_filter.field)
        ]
        if not cross_filter.is_empty:
            self._filters.append(cross_filter)
        logger.debug(
            "Cross-filter %s.%s -> %d active",
            cross_filter.chart_id,
            cross_filter.field,
            len(self._filters),
        )

    def clear_filter(self, chart_id: str, field: str | None = None) -> None:
        """Remove one field's filter from a chart, or all of the chart's filters."""
        if field:
            self._filters = [
                f for f in self._filters if not (f.chart_id == chart_id and f.field == field)
            ]
        else:
            self._filters = [f for f in self._filters if f.chart_id != chart_id]

    def clear_all_filters(self) -> None:
        self._filters = []

    def link_charts(self, group_id: str, chart_ids: list[str]) -> None:
        """Define (or redefine) a link group.

        A chart should belong to at most one group; this is not enforced.
        """
        self._groups[group_id] = list(chart_ids)

    def unlink_chart(self, group_id: str, chart_id: str) -> None:
        """Remove a chart from a group; an emptied group is deleted."""
        group = self._groups.get(group_id)
        if group is None:
            return
        remaining = [c for c in group if c != chart_id]
        if remaining:
            self._groups[group_id] = remaining
        else:
            del self._groups[group_id]

    def group_of(self, chart_id: str) -> list[str] | None:
        """Members of the first group containing ``chart_id``."""
        for members in self._groups.values():
            if chart_id in members:
                return members
        return None

    def get_linked_charts(self, chart_id: str) -> list[str]:
        """Other members of the chart's group."""
        members = self.group_of(chart_id)
        if members is None:
            return []
        return [c for c in members if c != chart_id]

    def get_filters_for_chart(self, chart_id: str, exclude_self: bool = True) -> list[CrossFilter]:
        """Filters that constrain ``chart_id``."""
        members = self.group_of(chart_id)
        result = []
        for f in self._filters:
            if exclude_self and f.chart_id == chart_id:
                continue
            if members is not None and f.chart_id not in members:
                continue
            result.append(f)
        return result

    def build_filter_query(self, chart_id: str) -> list[Filter]:
        """Expand the filters constraining ``chart_id`` into query filters.

        ``range`` becomes a ``>=``/``<=`` pair, ``in`` keeps its list value
        and everything else is a single ``=``.
        """
        query: list[Filter] = []
        for f in self.get_filters_for_chart(chart_id, exclude_self=True):
            if f.operator == "range":
                if f.range is None:
                    continue
                query.append(Filter(field=f.field, operator=">=", value=f.range.min))
                query.append(Filter(field=f.field, operator="<=", value=f.range.max))
            elif f.operator == "in":
                query.append(Filter(field=f.field, operator="in", value=list(f.values or [])))
            else:
                query.append(Filter(field=f.field, operator="=", value=f.value))
        return query

    def has_active_filter(self, chart_id: str) -> bool:
        return any(f.chart_id == chart_id for f in self._filters)

    def affected_charts(self, source_chart_id: str, chart_ids: list[str]) -> list[str]:
        """Which of ``chart_ids`` see filters set by ``source_chart_id``."""
        affected = []
        for cid in chart_ids:
            if cid == source_chart_id:
                continue
            members = self.group_of(cid)
            if members is None or source_chart_id in members:
                affected.append(cid)
        return affected

    def for_chart(self, chart_id: str) -> ChartFilterHandle:
        return ChartFilterHandle(self, chart_id)

    def close(self) -> None:
        """Dispose of all state when the dashboard is closed."""
        self._filters = []
        self._groups = {}


class ChartFilterHandle:
    """Registry view bound to one chart, for use by a chart component."""

    def __init__(self, registry: CrossFilterRegistry, chart_id: str):
        self._registry = registry
        self.chart_id = chart_id

    def set_filter(self, field: str, value: Any) -> None:
        self._registry.set_filter(CrossFilter(chart_id=self.chart_id, field=field, value=value))

    def set_multi_filter(self, field: str, values: list[Any]) -> None:
        self._registry.set_filter(
            CrossFilter(chart_id=self.chart_id, field=field, operator="in", values=values)
        )

    def set_range_filter(self, field: str, min_value: float, max_value: float) -> None:
        self._registry.set_filter(
            CrossFilter(
                chart_id=self.chart_id,
                field=field,
                operator="range",
                range=RangeBounds(min=min_value, max=max_value),
            )
        )

    def clear(self) -> None:
        self._registry.clear_filter(self.chart_id)

    @property
    def applied_filters(self) -> list[CrossFilter]:
        return self._registry.get_filters_for_chart(self.chart_id, exclude_self=True)

    @property
    def filter_query(self) -> list[Filter]:
        return self._registry.build_filter_query(self.chart_id)

    @property
    def has_active_filter(self) -> bool:
        return self._registry.has_active_filter(self.chart_id)
