"""drilldash: chart data aggregation, drill-down and cross-filtering for dashboards."""

__version__ = "0.1.0"
