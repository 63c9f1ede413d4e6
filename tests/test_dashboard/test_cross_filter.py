"""Tests for drilldash.dashboard.cross_filter: registry and link groups."""

from __future__ import annotations

import pytest

from drilldash.dashboard.cross_filter import CrossFilter, CrossFilterRegistry, RangeBounds


@pytest.fixture
def registry() -> CrossFilterRegistry:
    return CrossFilterRegistry()


class TestSetFilter:
    def test_replaces_same_chart_and_field(self, registry):
        registry.set_filter(CrossFilter(chart_id="A", field="region", value="N"))
        registry.set_filter(CrossFilter(chart_id="A", field="region", value="S"))
        assert [f.value for f in registry.active_filters] == ["S"]

    def test_different_fields_coexist(self, registry):
        registry.set_filter(CrossFilter(chart_id="A", field="region", value="N"))
        registry.set_filter(CrossFilter(chart_id="A", field="year", value=2024))
        assert len(registry.active_filters) == 2

    @pytest.mark.parametrize(
        "empty",
        [
            CrossFilter(chart_id="A", field="region", value=None),
            CrossFilter(chart_id="A", field="region", value=""),
            CrossFilter(chart_id="A", field="region", operator="in", values=[]),
            CrossFilter(chart_id="A", field="region", operator="range"),
        ],
    )
    def test_empty_filter_removes(self, registry, empty):
        registry.set_filter(CrossFilter(chart_id="A", field="region", value="N"))
        registry.set_filter(empty)
        assert registry.active_filters == []

    def test_zero_is_a_value(self, registry):
        registry.set_filter(CrossFilter(chart_id="A", field="bucket", value=0))
        assert registry.has_active_filter("A")


class TestClear:
    def test_clear_one_field(self, registry):
        registry.set_filter(CrossFilter(chart_id="A", field="region", value="N"))
        registry.set_filter(CrossFilter(chart_id="A", field="year", value=2024))
        registry.clear_filter("A", "region")
        assert [f.field for f in registry.active_filters] == ["year"]

    def test_clear_chart(self, registry):
        registry.set_filter(CrossFilter(chart_id="A", field="region", value="N"))
        registry.set_filter(CrossFilter(chart_id="B", field="year", value=2024))
        registry.clear_filter("A")
        assert [f.chart_id for f in registry.active_filters] == ["B"]

    def test_clear_all(self, registry):
        registry.set_filter(CrossFilter(chart_id="A", field="region", value="N"))
        registry.clear_all_filters()
        assert registry.active_filters == []


class TestLinkGroups:
    def test_linked_charts_exclude_self(self, registry):
        registry.link_charts("g1", ["A", "B", "C"])
        assert registry.get_linked_charts("A") == ["B", "C"]
        assert registry.get_linked_charts("Z") == []

    def test_unlink_removes_empty_group(self, registry):
        registry.link_charts("g1", ["A"])
        registry.unlink_chart("g1", "A")
        assert registry.link_groups == {}

    def test_unlink_keeps_rest(self, registry):
        registry.link_charts("g1", ["A", "B"])
        registry.unlink_chart("g1", "A")
        assert registry.link_groups == {"g1": ["B"]}

    def test_unlink_unknown_group_is_noop(self, registry):
        registry.unlink_chart("nope", "A")
        assert registry.link_groups == {}


class TestFiltersForChart:
    def test_group_isolation(self, registry):
        registry.link_charts("g1", ["A", "B"])
        registry.link_charts("g2", ["C", "D"])
        registry.set_filter(CrossFilter(chart_id="A", field="region", value="N"))

        assert [f.chart_id for f in registry.get_filters_for_chart("B")] == ["A"]
        assert registry.get_filters_for_chart("C") == []
        assert registry.get_filters_for_chart("D") == []

    def test_ungrouped_chart_sees_everything(self, registry):
        registry.link_charts("g1", ["A", "B"])
        registry.set_filter(CrossFilter(chart_id="A", field="region", value="N"))
        assert len(registry.get_filters_for_chart("E")) == 1

    def test_grouped_chart_ignores_ungrouped_source(self, registry):
        registry.link_charts("g1", ["A", "B"])
        registry.set_filter(CrossFilter(chart_id="E", field="region", value="N"))
        assert registry.get_filters_for_chart("A") == []

    def test_exclude_self(self, registry):
        registry.set_filter(CrossFilter(chart_id="A", field="region", value="N"))
        assert registry.get_filters_for_chart("A") == []
        assert len(registry.get_filters_for_chart("A", exclude_self=False)) == 1


class TestBuildFilterQuery:
    def test_equality(self, registry):
        registry.set_filter(CrossFilter(chart_id="X", field="region", value="N"))
        query = registry.build_filter_query("Y")
        assert [f.model_dump() for f in query] == [
            {"field": "region", "operator": "=", "value": "N"}
        ]

    def test_range_expands_to_bounds(self, registry):
        registry.set_filter(
            CrossFilter(chart_id="X", field="price", operator="range", range=RangeBounds(min=10, max=20))
        )
        query = registry.build_filter_query("Y")
        assert [(f.operator, f.value) for f in query] == [(">=", 10), ("<=", 20)]

    def test_in_keeps_list(self, registry):
        registry.set_filter(CrossFilter(chart_id="X", field="region", operator="in", values=["N", "S"]))
        query = registry.build_filter_query("Y")
        assert query[0].operator == "in"
        assert query[0].value == ["N", "S"]

    def test_own_filters_excluded(self, registry):
        registry.set_filter(CrossFilter(chart_id="X", field="region", value="N"))
        assert registry.build_filter_query("X") == []


class TestAffectedCharts:
    def test_group_scoped(self, registry):
        registry.link_charts("g1", ["A", "B"])
        registry.link_charts("g2", ["C"])
        assert registry.affected_charts("A", ["A", "B", "C", "E"]) == ["B", "E"]

    def test_ungrouped_source(self, registry):
        registry.link_charts("g1", ["A", "B"])
        assert registry.affected_charts("E", ["A", "B", "E", "F"]) == ["F"]


class TestHandle:
    def test_handle_round_trip(self, registry):
        a = registry.for_chart("A")
        b = registry.for_chart("B")
        a.set_filter("region", "N")
        assert a.has_active_filter
        assert [f.field for f in b.applied_filters] == ["region"]
        assert b.filter_query[0].value == "N"
        a.clear()
        assert b.applied_filters == []

    def test_handle_multi_and_range(self, registry):
        a = registry.for_chart("A")
        a.set_multi_filter("region", ["N", "S"])
        a.set_range_filter("price", 1, 5)
        ops = [(f.field, f.operator) for f in registry.for_chart("B").filter_query]
        assert ops == [("region", "in"), ("price", ">="), ("price", "<=")]


def test_close_disposes_state(registry):
    registry.link_charts("g1", ["A"])
    registry.set_filter(CrossFilter(chart_id="A", field="region", value="N"))
    registry.close()
    assert registry.active_filters == []
    assert registry.link_groups == {}
