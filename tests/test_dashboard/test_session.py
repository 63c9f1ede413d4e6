"""Tests for drilldash.dashboard.session: fan-out fetch and lifecycle."""

from __future__ import annotations

import asyncio
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from drilldash.dashboard.cross_filter import CrossFilter
from drilldash.dashboard.definition import ChartWidget, DashboardDefinition
from drilldash.dashboard.session import DashboardSession
from drilldash.exceptions import BackendAPIError
from drilldash.query.models import DataSourceConfig, DateRange, DrillFilter, QueryMode
from drilldash.query.strategies import QueryStrategyResolver


@pytest.fixture
def definition(order_rows) -> DashboardDefinition:
    def widget(wid: str, x_axis: str) -> ChartWidget:
        return ChartWidget(
            id=wid,
            name=wid.upper(),
            data_source=DataSourceConfig(
                query_mode=QueryMode.IMPORT,
                x_axis=x_axis,
                y_axis=["revenue"],
                drill_down_label_field="city" if x_axis == "region" else None,
                imported_data=order_rows,
            ),
        )

    return DashboardDefinition(
        name="Sales",
        widgets=[widget("a", "region"), widget("b", "product"), widget("c", "city")],
        link_groups={"g1": ["a", "b"]},
    )


@pytest.fixture
def resolver() -> QueryStrategyResolver:
    return QueryStrategyResolver(default_limit=50)


class TestFetch:
    def test_fetch_all(self, definition, resolver):
        session = DashboardSession(definition, resolver)
        datasets = asyncio.run(session.fetch_all())
        assert set(datasets) == {"a", "b", "c"}
        assert datasets["a"].rows[0]["region"] == "N"
        assert datasets["a"].x_axis == "region"
        assert datasets["a"].label_field == "city"
        assert not datasets["a"].failed

    def test_second_fetch_served_from_cache(self, definition, resolver):
        session = DashboardSession(definition, resolver)

        async def main():
            await session.fetch_widget("a")
            return await session.fetch_widget("a")

        assert asyncio.run(main()).from_cache

    def test_force_bypasses_cache(self, definition, resolver):
        session = DashboardSession(definition, resolver)

        async def main():
            await session.fetch_widget("a")
            return await session.fetch_widget("a", force=True)

        assert not asyncio.run(main()).from_cache

    def test_unknown_widget(self, definition, resolver):
        session = DashboardSession(definition, resolver)
        with pytest.raises(KeyError):
            asyncio.run(session.fetch_widget("zzz"))

    def test_failure_isolated_and_not_cached(self, definition):
        async def resolve(config, filters, date_range=None):
            if config.x_axis == "product":
                raise BackendAPIError(500, "down")
            return [{config.x_axis: "k", "revenue": 1}]

        resolver = MagicMock()
        resolver.resolve = AsyncMock(side_effect=resolve)
        session = DashboardSession(definition, resolver)

        datasets = asyncio.run(session.fetch_all())
        assert datasets["b"].rows == []
        assert "down" in datasets["b"].error
        assert datasets["a"].rows[0]["revenue"] == 1
        assert datasets["c"].rows == [{"city": "k", "revenue": 1}]
        assert session.cache.get("b") is None
        assert session.cache.get("a") is not None

    def test_unexpected_exception_becomes_empty_dataset(self, definition):
        resolver = MagicMock()
        resolver.resolve = AsyncMock(side_effect=RuntimeError("bug"))
        session = DashboardSession(definition, resolver)
        datasets = asyncio.run(session.fetch_all())
        assert all(d.rows == [] and d.failed for d in datasets.values())

    def test_stale_result_discarded_after_refresh(self, definition):
        async def main():
            gate = asyncio.Event()

            async def resolve(config, filters, date_range=None):
                await gate.wait()
                return [{config.x_axis: "old", "revenue": 1}]

            resolver = MagicMock()
            resolver.resolve = AsyncMock(side_effect=resolve)
            session = DashboardSession(definition, resolver)

            in_flight = asyncio.ensure_future(session.fetch_widget("a"))
            await asyncio.sleep(0)
            session.cache.invalidate_all()
            gate.set()
            dataset = await in_flight
            return session, dataset

        session, dataset = asyncio.run(main())
        assert dataset.rows[0]["region"] == "old"
        assert session.cache.get("a") is None

    def test_fetch_issued_before_cross_filter_not_cached(self, definition):
        async def main():
            gate = asyncio.Event()

            async def resolve(config, filters, date_range=None):
                if not filters:
                    await gate.wait()
                    return [{config.x_axis: "unfiltered", "revenue": 1}]
                return [{config.x_axis: "filtered", "revenue": 1}]

            resolver = MagicMock()
            resolver.resolve = AsyncMock(side_effect=resolve)
            session = DashboardSession(definition, resolver)

            in_flight = asyncio.ensure_future(session.fetch_widget("b"))
            await asyncio.sleep(0)
            session.set_cross_filter(CrossFilter(chart_id="a", field="region", value="N"))
            fresh = await session.fetch_widget("b")
            gate.set()
            stale = await in_flight
            return fresh, stale, await session.fetch_widget("b")

        fresh, stale, cached = asyncio.run(main())
        assert fresh.rows[0]["product"] == "filtered"
        assert stale.rows[0]["product"] == "unfiltered"
        assert cached.from_cache
        assert cached.rows[0]["product"] == "filtered"


class TestInteractions:
    def test_cross_filter_applies_within_group(self, definition, resolver):
        session = DashboardSession(definition, resolver)

        async def main():
            await session.fetch_all()
            affected = session.set_cross_filter(CrossFilter(chart_id="a", field="region", value="S"))
            return affected, await session.fetch_all()

        affected, datasets = asyncio.run(main())
        assert affected == ["b", "c"]
        assert [r["product"] for r in datasets["b"].rows] == ["Widget", "Gizmo"]
        assert [r["city"] for r in datasets["c"].rows] == ["Rome", "Milan"]
        assert datasets["a"].from_cache

    def test_grouped_widgets_ignore_outside_filters(self, definition, resolver):
        session = DashboardSession(definition, resolver)

        async def main():
            await session.fetch_all()
            session.set_cross_filter(CrossFilter(chart_id="c", field="city", value="Oslo"))
            return await session.fetch_all()

        datasets = asyncio.run(main())
        assert datasets["a"].from_cache
        assert len(datasets["a"].rows) == 2

    def test_clear_cross_filters(self, definition, resolver):
        session = DashboardSession(definition, resolver)

        async def main():
            session.set_cross_filter(CrossFilter(chart_id="a", field="region", value="S"))
            await session.fetch_all()
            session.clear_cross_filters()
            return await session.fetch_all()

        datasets = asyncio.run(main())
        assert len(datasets["b"].rows) == 3
        assert not datasets["b"].from_cache

    def test_date_range_invalidates_and_is_passed(self, definition):
        resolver = MagicMock()
        resolver.resolve = AsyncMock(return_value=[])
        session = DashboardSession(definition, resolver)
        dr = DateRange(start=date(2024, 1, 1))

        async def main():
            await session.fetch_all()
            session.set_date_range(dr)
            assert len(session.cache) == 0
            await session.fetch_widget("a")

        asyncio.run(main())
        assert resolver.resolve.call_args.kwargs["date_range"] == dr

    def test_refresh_refetches_everything(self, definition):
        resolver = MagicMock()
        resolver.resolve = AsyncMock(return_value=[])
        session = DashboardSession(definition, resolver)

        async def main():
            await session.fetch_all()
            await session.refresh()

        asyncio.run(main())
        assert resolver.resolve.await_count == 6
        assert session.cache.epoch == 1

    def test_drill_down(self, definition, resolver):
        session = DashboardSession(definition, resolver)
        dataset = asyncio.run(session.drill_down("a", [DrillFilter(field="region", value="N")]))
        assert dataset.x_axis == "city"
        assert [r["city"] for r in dataset.rows] == ["Oslo", "Bergen"]

    def test_drill_down_respects_cross_filters(self, definition, resolver):
        session = DashboardSession(definition, resolver)
        session.set_cross_filter(CrossFilter(chart_id="b", field="product", value="Widget"))
        dataset = asyncio.run(session.drill_down("a", [DrillFilter(field="region", value="N")]))
        assert dataset.rows == [{"city": "Oslo", "revenue": 100}, {"city": "Bergen", "revenue": 30}]


class TestAutoRefresh:
    def test_disabled_by_default(self, definition, resolver):
        async def main():
            session = DashboardSession(definition, resolver)
            return session.start_auto_refresh()

        assert asyncio.run(main()) is False

    def test_ticks_refresh(self, definition):
        resolver = MagicMock()
        resolver.resolve = AsyncMock(return_value=[])

        async def main():
            async with DashboardSession(definition, resolver, auto_refresh_interval=0.01) as session:
                assert session.start_auto_refresh()
                assert session.auto_refresh_running
                await asyncio.sleep(0.05)
                await session.stop_auto_refresh()
                assert not session.auto_refresh_running
                return session

        session = asyncio.run(main())
        assert session.cache.epoch >= 1
        assert resolver.resolve.await_count >= 3

    def test_interval_from_settings(self, definition, resolver, monkeypatch):
        monkeypatch.setenv("DRILLDASH_AUTO_REFRESH_INTERVAL", "30")

        async def main():
            session = DashboardSession(definition, resolver)
            started = session.start_auto_refresh()
            running = session.auto_refresh_running
            await session.close()
            return session, started, running

        session, started, running = asyncio.run(main())
        assert session.auto_refresh_interval == 30
        assert started and running
        assert not session.auto_refresh_running

    def test_definition_interval_wins_over_settings(self, definition, resolver, monkeypatch):
        monkeypatch.setenv("DRILLDASH_AUTO_REFRESH_INTERVAL", "30")
        definition = definition.model_copy(update={"auto_refresh_interval": 5})
        assert DashboardSession(definition, resolver).auto_refresh_interval == 5
        assert DashboardSession(definition, resolver, auto_refresh_interval=0).auto_refresh_interval == 0


class TestLifecycle:
    def test_link_groups_registered(self, definition, resolver):
        session = DashboardSession(definition, resolver)
        assert session.cross_filters.get_linked_charts("a") == ["b"]

    def test_close_disposes_registries(self, definition, resolver):
        async def main():
            async with DashboardSession(definition, resolver) as session:
                session.set_cross_filter(CrossFilter(chart_id="a", field="region", value="N"))
                await session.fetch_all()
            return session

        session = asyncio.run(main())
        assert session.closed
        assert session.cross_filters.active_filters == []
        assert session.cross_filters.link_groups == {}
        assert len(session.cache) == 0
