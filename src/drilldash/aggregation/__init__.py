"""Client-side aggregation shared by every acquisition strategy."""

from drilldash.aggregation.aggregator import AggregateSpec, aggregate, to_number
from drilldash.aggregation.labels import build_label, group_key
from drilldash.aggregation.processing import process_chart_data, sort_rows

__all__ = [
    "AggregateSpec",
    "aggregate",
    "build_label",
    "group_key",
    "process_chart_data",
    "sort_rows",
    "to_number",
]
