"""Row acquisition strategies, one per ``QueryMode``.

Every strategy returns flat rows; aggregation always happens afterwards
on the client so composite labels are built the same way in all modes.

- ``ImportStrategy`` filters rows held in the config itself. No I/O.
- ``SimpleStrategy`` sends a structured request; the backend compiles it.
- ``CustomStrategy`` sends the user's query text untouched, with filters
  in a separate sanitized list the backend applies as parameters.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, ClassVar

from drilldash.aggregation.aggregator import is_numeric, to_number
from drilldash.aggregation.labels import stringify
from drilldash.api.client import BackendClient
from drilldash.config import DrillDashSettings, get_settings
from drilldash.exceptions import ConfigurationError
from drilldash.query.models import (
    ChartDataRequest,
    CustomQueryRequest,
    DataSourceConfig,
    DateRange,
    Filter,
    QueryMode,
    Row,
)
from drilldash.query.sanitizer import (
    ensure_select_only,
    is_safe_identifier,
    safe_identifiers,
    sanitize_filters,
)

logger = logging.getLogger(__name__)


def date_range_filters(config: DataSourceConfig, date_range: DateRange | None) -> list[Filter]:
    """Filters scoping a data source to the dashboard date range."""
    if date_range is None:
        return []
    filters: list[Filter] = []
    if config.start_column and date_range.start:
        filters.append(Filter(field=config.start_column, operator=">=", value=date_range.start_iso))
    if config.end_column and date_range.end:
        filters.append(Filter(field=config.end_column, operator="<=", value=date_range.end_iso))
    return filters


def _like_pattern(pattern: str) -> re.Pattern[str]:
    parts = []
    for ch in pattern:
        if ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def row_matches(row: Row, f: Filter) -> bool:
    """Evaluate one filter against an in-memory row."""
    cell = row.get(f.field)

    if f.operator == "=":
        return stringify(cell) == stringify(f.value)
    if f.operator == "!=":
        return stringify(cell) != stringify(f.value)
    if f.operator == "in":
        values = f.value if isinstance(f.value, (list, tuple, set)) else [f.value]
        return stringify(cell) in {stringify(v) for v in values}
    if f.operator == "like":
        return cell is not None and bool(_like_pattern(stringify(f.value)).fullmatch(stringify(cell)))

    if cell is None:
        return False
    if is_numeric(cell) and is_numeric(f.value):
        left, right = to_number(cell), to_number(f.value)
    else:
        left, right = stringify(cell), stringify(f.value)
    if f.operator == ">":
        return left > right
    if f.operator == "<":
        return left < right
    if f.operator == ">=":
        return left >= right
    return left <= right


class QueryStrategy(ABC):
    """Acquires the raw rows for one data source."""

    mode: ClassVar[QueryMode]

    @abstractmethod
    async def fetch(
        self,
        config: DataSourceConfig,
        ancestor_filters: Sequence[Filter],
        date_range: DateRange | None = None,
    ) -> list[Row]:
        """Return flat rows ready for aggregation."""

    def build_request(
        self,
        config: DataSourceConfig,
        ancestor_filters: Sequence[Filter],
        date_range: DateRange | None = None,
    ) -> dict[str, Any] | None:
        """Backend payload this strategy would send, or None if it sends nothing."""
        return None


class ImportStrategy(QueryStrategy):
    """Rows live in ``config.imported_data``; filtering is in-memory."""

    mode = QueryMode.IMPORT

    async def fetch(
        self,
        config: DataSourceConfig,
        ancestor_filters: Sequence[Filter],
        date_range: DateRange | None = None,
    ) -> list[Row]:
        rows = list(config.imported_data or [])
        for f in ancestor_filters:
            rows = [r for r in rows if row_matches(r, f)]
        return rows


class _BackendStrategy(QueryStrategy):
    def __init__(self, client: BackendClient | None):
        self._client = client

    async def fetch(
        self,
        config: DataSourceConfig,
        ancestor_filters: Sequence[Filter],
        date_range: DateRange | None = None,
    ) -> list[Row]:
        payload = self.build_request(config, ancestor_filters, date_range)
        if payload is None:
            return []
        if self._client is None:
            raise ConfigurationError(
                f"{self.mode.value} mode needs a backend; set DRILLDASH_BACKEND_URL"
            )
        return await self._client.run_chart_query(payload)


class SimpleStrategy(_BackendStrategy):
    """Structured request: table, axes, aggregation and sanitized filters."""

    mode = QueryMode.SIMPLE

    def __init__(self, client: BackendClient | None, default_limit: int = 50):
        super().__init__(client)
        self._default_limit = default_limit

    def build_request(
        self,
        config: DataSourceConfig,
        ancestor_filters: Sequence[Filter],
        date_range: DateRange | None = None,
    ) -> dict[str, Any] | None:
        if not config.table or not config.is_aggregatable:
            return None
        if not is_safe_identifier(config.x_axis):
            logger.debug("Simple query skipped: unsafe x-axis %r", config.x_axis)
            return None

        y_axis = safe_identifiers(config.y_axis)
        if not y_axis:
            logger.debug("Simple query skipped: no safe y-axis fields")
            return None

        order_by = config.order_by if is_safe_identifier(config.order_by) else None
        label_field = (
            config.drill_down_label_field
            if is_safe_identifier(config.drill_down_label_field)
            else None
        )

        request = ChartDataRequest(
            table=config.table,
            x_axis=config.x_axis,
            y_axis=y_axis,
            aggregation=config.aggregation,
            group_by=safe_identifiers(config.group_by),
            filters=sanitize_filters(
                [*config.filters, *date_range_filters(config, date_range), *ancestor_filters]
            ),
            order_by=order_by,
            order_direction=config.order_direction,
            limit=config.limit or self._default_limit,
            resolution=config.resolution,
            drill_down_label_field=label_field,
            connection_id=config.connection_id,
        )
        return request.to_payload()


class CustomStrategy(_BackendStrategy):
    """User-authored query text plus a sanitized filter sidecar.

    Filter values are never spliced into the query text; the backend
    wraps the query and binds the sidecar filters as parameters.
    """

    mode = QueryMode.CUSTOM

    def build_request(
        self,
        config: DataSourceConfig,
        ancestor_filters: Sequence[Filter],
        date_range: DateRange | None = None,
    ) -> dict[str, Any] | None:
        if not config.custom_query or not config.custom_query.strip():
            return None
        if not config.is_aggregatable:
            return None

        request = CustomQueryRequest(
            custom_query=ensure_select_only(config.custom_query),
            connection_id=config.connection_id,
            filters=sanitize_filters([*date_range_filters(config, date_range), *ancestor_filters]),
        )
        return request.to_payload()


class QueryStrategyResolver:
    """Selects the strategy for a data source and returns its rows."""

    def __init__(
        self,
        client: BackendClient | None = None,
        *,
        default_limit: int | None = None,
        settings: DrillDashSettings | None = None,
    ):
        if default_limit is None:
            default_limit = (settings or get_settings()).drilldash_default_limit
        self._client = client
        self._strategies: dict[QueryMode, QueryStrategy] = {
            QueryMode.IMPORT: ImportStrategy(),
            QueryMode.SIMPLE: SimpleStrategy(client, default_limit=default_limit),
            QueryMode.CUSTOM: CustomStrategy(client),
        }

    @property
    def client(self) -> BackendClient | None:
        return self._client

    def strategy_for(self, config: DataSourceConfig) -> QueryStrategy:
        return self._strategies[QueryMode(config.query_mode)]

    def build_request(
        self,
        config: DataSourceConfig,
        ancestor_filters: Sequence[Filter] = (),
        *,
        date_range: DateRange | None = None,
    ) -> dict[str, Any] | None:
        """Payload the data source would send to the backend, without sending it."""
        return self.strategy_for(config).build_request(config, ancestor_filters, date_range)

    async def resolve(
        self,
        config: DataSourceConfig,
        ancestor_filters: Sequence[Filter] = (),
        *,
        date_range: DateRange | None = None,
    ) -> list[Row]:
        """Acquire the rows for ``config`` constrained by ``ancestor_filters``.

        A config without an x-axis and y-axis is a no-op returning no rows.

        Raises:
            DrillDashError: On acquisition failures; callers owning a widget
                turn these into an empty dataset.
        """
        if not config.is_aggregatable:
            return []
        strategy = self.strategy_for(config)
        rows = await strategy.fetch(config, list(ancestor_filters), date_range)
        logger.debug("%s strategy returned %d rows", strategy.mode.value, len(rows))
        return rows
