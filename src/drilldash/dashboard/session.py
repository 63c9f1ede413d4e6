"""One dashboard-viewing session.

The session owns the cross-filter registry and the data cache for a
single open dashboard. Opening builds both, ``close()`` disposes them.
Every widget fetch resolves to a dataset: acquisition failures become an
empty dataset carrying the error message and leave the cache untouched,
so the next refresh retries naturally.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from drilldash.aggregation.processing import process_chart_data
from drilldash.config import DrillDashSettings, get_settings
from drilldash.dashboard.cache import DataCache
from drilldash.dashboard.cross_filter import CrossFilter, CrossFilterRegistry
from drilldash.dashboard.definition import ChartDataset, ChartWidget, DashboardDefinition
from drilldash.dashboard.drilldown import DrillDownController
from drilldash.exceptions import DrillDashError
from drilldash.query.models import DateRange, Filter, Row
from drilldash.query.strategies import QueryStrategyResolver

logger = logging.getLogger(__name__)


class DashboardSession:
    """Fetches, caches and cross-filters the widgets of one dashboard.

    Usage::

        async with DashboardSession(definition, resolver) as session:
            datasets = await session.fetch_all()
            session.set_cross_filter(CrossFilter(chart_id="a", field="region", value="N"))
            datasets = await session.fetch_all()
    """

    def __init__(
        self,
        definition: DashboardDefinition,
        resolver: QueryStrategyResolver,
        *,
        cross_filters: CrossFilterRegistry | None = None,
        cache: DataCache | None = None,
        date_range: DateRange | None = None,
        auto_refresh_interval: float | None = None,
        settings: DrillDashSettings | None = None,
    ):
        self.definition = definition
        self.resolver = resolver
        self.cross_filters = cross_filters or CrossFilterRegistry()
        self.cache = cache or DataCache()
        self.drill = DrillDownController(resolver)
        self._date_range = date_range
        if auto_refresh_interval is None:
            auto_refresh_interval = (
                definition.auto_refresh_interval
                or (settings or get_settings()).drilldash_auto_refresh_interval
            )
        self._auto_refresh_interval = auto_refresh_interval
        self._refresh_task: asyncio.Task[None] | None = None
        self._closed = False

        for group_id, chart_ids in definition.link_groups.items():
            self.cross_filters.link_charts(group_id, chart_ids)

    # -- State --

    @property
    def date_range(self) -> DateRange | None:
        return self._date_range

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def auto_refresh_interval(self) -> float:
        return self._auto_refresh_interval

    @property
    def auto_refresh_running(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def _widget(self, widget: ChartWidget | str) -> ChartWidget:
        if isinstance(widget, ChartWidget):
            return widget
        found = self.definition.get_widget(widget)
        if found is None:
            raise KeyError(f"Unknown widget '{widget}'")
        return found

    @staticmethod
    def _dataset(widget: ChartWidget, rows: list[Row], **kwargs: Any) -> ChartDataset:
        ds = widget.data_source
        return ChartDataset(
            widget_id=widget.id,
            rows=rows,
            x_axis=ds.x_axis,
            y_axis=list(ds.y_axis),
            label_field=ds.drill_down_label_field,
            **kwargs,
        )

    # -- Fetching --

    async def fetch_widget(self, widget: ChartWidget | str, force: bool = False) -> ChartDataset:
        """Aggregated dataset for one widget, from cache unless ``force``."""
        widget = self._widget(widget)

        if not force:
            cached = self.cache.get(widget.id)
            if cached is not None:
                return self._dataset(widget, cached, from_cache=True)

        epoch = self.cache.epoch
        generation = self.cache.generation(widget.id)
        filters = self.cross_filters.build_filter_query(widget.id)
        try:
            raw = await self.resolver.resolve(
                widget.data_source, filters, date_range=self._date_range
            )
            rows = process_chart_data(raw, widget.data_source)
        except DrillDashError as e:
            logger.warning("Fetch failed for widget %s: %s", widget.id, e)
            return self._dataset(widget, [], error=str(e))

        self.cache.store(widget.id, rows, epoch, generation)
        return self._dataset(widget, rows)

    async def fetch_all(self, force: bool = False) -> dict[str, ChartDataset]:
        """Fetch every widget concurrently; one failure never affects another."""
        widgets = list(self.definition.widgets)
        results = await asyncio.gather(
            *(self.fetch_widget(w, force=force) for w in widgets),
            return_exceptions=True,
        )

        datasets: dict[str, ChartDataset] = {}
        for widget, result in zip(widgets, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning("Unexpected failure for widget %s: %s", widget.id, result)
                datasets[widget.id] = self._dataset(widget, [], error=str(result))
            else:
                datasets[widget.id] = result

        loaded = sum(1 for d in datasets.values() if not d.failed)
        logger.info("Fetched %d/%d widgets", loaded, len(widgets))
        return datasets

    async def refresh(self) -> dict[str, ChartDataset]:
        """Invalidate the whole cache, then refetch every widget."""
        self.cache.invalidate_all()
        return await self.fetch_all(force=True)

    # -- Interactions --

    def set_date_range(self, date_range: DateRange | None) -> None:
        """Change the dashboard date range; every cached dataset becomes stale."""
        self._date_range = date_range
        self.cache.invalidate_all()

    def set_cross_filter(self, cross_filter: CrossFilter) -> list[str]:
        """Apply a cross-filter and drop the cache of every widget it reaches.

        Returns the ids of the invalidated widgets.
        """
        self.cross_filters.set_filter(cross_filter)
        affected = self.cross_filters.affected_charts(
            cross_filter.chart_id, self.definition.widget_ids
        )
        for widget_id in affected:
            self.cache.invalidate(widget_id)
        return affected

    def clear_cross_filters(self, chart_id: str | None = None) -> None:
        """Clear one chart's filters, or all of them."""
        if chart_id is None:
            self.cross_filters.clear_all_filters()
            self.cache.invalidate_all()
            return
        self.cross_filters.clear_filter(chart_id)
        for widget_id in self.cross_filters.affected_charts(chart_id, self.definition.widget_ids):
            self.cache.invalidate(widget_id)

    async def drill_down(
        self,
        widget: ChartWidget | str,
        ancestor_filters: Sequence[Filter],
    ) -> ChartDataset:
        """Next drill level for a widget, constrained by its cross-filters too.

        Drill results are not cached; the caller owns the drill stack.
        """
        widget = self._widget(widget)
        rows = await self.drill.drill_down(
            widget.data_source,
            ancestor_filters,
            date_range=self._date_range,
            extra_filters=self.cross_filters.build_filter_query(widget.id),
        )
        dataset = self._dataset(widget, rows)
        dataset.x_axis = DrillDownController.effective_group_field(
            widget.data_source, ancestor_filters
        )
        return dataset

    # -- Auto-refresh --

    def start_auto_refresh(self, interval: float | None = None) -> bool:
        """Start periodic refreshes on the running loop. Returns False if disabled."""
        if interval is not None:
            self._auto_refresh_interval = interval
        if self._auto_refresh_interval <= 0 or self._closed:
            return False
        if self.auto_refresh_running:
            return True
        self._refresh_task = asyncio.get_running_loop().create_task(self._auto_refresh_loop())
        logger.info("Auto-refresh every %ss", self._auto_refresh_interval)
        return True

    async def stop_auto_refresh(self) -> None:
        task, self._refresh_task = self._refresh_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _auto_refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self._auto_refresh_interval)
            await self.refresh()

    # -- Lifecycle --

    async def close(self) -> None:
        """Stop auto-refresh and dispose of the session's registries."""
        if self._closed:
            return
        self._closed = True
        await self.stop_auto_refresh()
        self.cross_filters.close()
        self.cache.invalidate_all()

    async def __aenter__(self) -> DashboardSession:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
