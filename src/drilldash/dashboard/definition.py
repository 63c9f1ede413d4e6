"""Core data models for dashboard definitions.

A dashboard is a set of chart widgets, each backed by one data source,
plus the link groups that scope cross-filtering between them.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from drilldash.query.models import DataSourceConfig, Row


class ChartType(str, Enum):
    """Chart kinds a widget may declare. Rendering is done elsewhere."""

    LINE = "line"
    BAR = "bar"
    AREA = "area"
    SCATTER = "scatter"
    PIE = "pie"
    DONUT = "donut"
    TABLE = "table"
    NUMBER = "number"
    FUNNEL = "funnel"
    HEATMAP = "heatmap"
    STACKED_BAR = "stacked_bar"
    STACKED_AREA = "stacked_area"
    GROUPED_BAR = "grouped_bar"
    COMBO = "combo"


class ChartWidget(BaseModel):
    """A single chart on a dashboard."""

    id: str
    name: str = ""
    chart_type: str = "bar"
    data_source: DataSourceConfig = Field(default_factory=DataSourceConfig)
    cross_filter_field: str | None = None

    @field_validator("chart_type")
    @classmethod
    def validate_chart_type(cls, v: str) -> str:
        valid = {ct.value for ct in ChartType}
        if v not in valid:
            raise ValueError(f"Invalid chart_type '{v}'. Must be one of: {sorted(valid)}")
        return v

    @property
    def filter_field(self) -> str | None:
        """Column a click on this chart filters by (defaults to its x-axis)."""
        return self.cross_filter_field or self.data_source.x_axis


class DashboardDefinition(BaseModel):
    """Complete definition of one viewable dashboard."""

    name: str
    widgets: list[ChartWidget] = Field(default_factory=list)
    link_groups: dict[str, list[str]] = Field(default_factory=dict)
    auto_refresh_interval: int = 0  # seconds, 0 disables

    @field_validator("auto_refresh_interval")
    @classmethod
    def validate_refresh(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"auto_refresh_interval must be >= 0, got {v}")
        return v

    @property
    def widget_count(self) -> int:
        return len(self.widgets)

    @property
    def widget_ids(self) -> list[str]:
        return [w.id for w in self.widgets]

    def get_widget(self, widget_id: str) -> ChartWidget | None:
        """Find a widget by id."""
        for widget in self.widgets:
            if widget.id == widget_id:
                return widget
        return None

    def all_tables(self) -> set[str]:
        """Tables referenced by simple-mode widgets."""
        return {w.data_source.table for w in self.widgets if w.data_source.table}


class ChartDataset(BaseModel):
    """Aggregated rows for one widget, ready for a renderer."""

    widget_id: str
    rows: list[Row] = Field(default_factory=list)
    x_axis: str | None = None
    y_axis: list[str] = Field(default_factory=list)
    label_field: str | None = None
    error: str | None = None
    from_cache: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.rows

    @property
    def failed(self) -> bool:
        return self.error is not None
