"""Progressive drill-down into a chart's data points.

The controller keeps no drill stack. Each call receives the full list of
ancestor filters collected by the UI, so navigating up just means calling
again with a shorter list.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from drilldash.aggregation.processing import process_chart_data
from drilldash.exceptions import DrillDashError
from drilldash.query.models import DataSourceConfig, DateRange, Filter, Row
from drilldash.query.strategies import QueryStrategyResolver

logger = logging.getLogger(__name__)


class DrillDownController:
    """Re-aggregates a data source under a stack of ancestor filters."""

    def __init__(self, resolver: QueryStrategyResolver):
        self._resolver = resolver

    @staticmethod
    def effective_group_field(
        config: DataSourceConfig,
        ancestor_filters: Sequence[Filter],
    ) -> str | None:
        """Column the current drill level groups by.

        The label field takes over once the user has drilled on something
        other than it; at the root, or when the last filter is already on
        the label field, the x-axis is used.
        """
        label_field = config.drill_down_label_field
        if not ancestor_filters or not label_field:
            return config.x_axis
        if ancestor_filters[-1].field == label_field:
            return config.x_axis
        return label_field

    async def drill_down(
        self,
        config: DataSourceConfig,
        ancestor_filters: Sequence[Filter],
        *,
        date_range: DateRange | None = None,
        extra_filters: Sequence[Filter] = (),
    ) -> list[Row]:
        """Aggregated rows for the drill level described by ``ancestor_filters``.

        ``extra_filters`` (e.g. cross-filters) constrain the rows without
        taking part in the choice of grouping column. Acquisition failures
        are logged and yield an empty list.
        """
        group_field = self.effective_group_field(config, ancestor_filters)
        level_config = config
        if group_field and group_field != config.x_axis:
            level_config = config.model_copy(update={"x_axis": group_field})

        try:
            rows = await self._resolver.resolve(
                level_config, [*extra_filters, *ancestor_filters], date_range=date_range
            )
        except DrillDashError as e:
            logger.warning("Drill-down fetch failed at depth %d: %s", len(ancestor_filters), e)
            return []

        return process_chart_data(rows, level_config, group_field=group_field)
