"""Dashboard definitions, cross-filtering, caching, and viewing sessions."""

from drilldash.dashboard.cache import DataCache
from drilldash.dashboard.cross_filter import ChartFilterHandle, CrossFilter, CrossFilterRegistry
from drilldash.dashboard.definition import ChartDataset, ChartWidget, DashboardDefinition
from drilldash.dashboard.drilldown import DrillDownController
from drilldash.dashboard.session import DashboardSession

__all__ = [
    "ChartDataset",
    "ChartFilterHandle",
    "ChartWidget",
    "CrossFilter",
    "CrossFilterRegistry",
    "DashboardDefinition",
    "DashboardSession",
    "DataCache",
    "DrillDownController",
]
