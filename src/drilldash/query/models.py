"""Data models for chart data sources, filters, and backend payloads.

Field names are snake_case in Python and camelCase on the wire, matching
the JSON the dashboard front-end stores and the backend endpoint accepts.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Row = dict[str, Any]

FilterOperator = Literal["=", "!=", ">", "<", ">=", "<=", "like", "in"]


class QueryMode(str, Enum):
    """How rows are acquired for a chart."""

    IMPORT = "import"
    SIMPLE = "simple"
    CUSTOM = "custom"


class Aggregation(str, Enum):
    """Aggregation function applied to value fields."""

    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"
    COUNT = "count"


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Filter(_WireModel):
    """A single predicate on one column."""

    field: str
    operator: FilterOperator = "="
    value: Any = None

    @field_validator("operator", mode="before")
    @classmethod
    def normalize_operator(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v


class DrillFilter(Filter):
    """Equality filter produced by clicking a rendered data point."""

    operator: Literal["="] = "="


class DateRange(BaseModel):
    """Dashboard-wide date range; either bound may be open."""

    start: datetime | date | None = None
    end: datetime | date | None = None

    @staticmethod
    def _iso_day(value: date) -> str:
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(timezone.utc)
            return value.date().isoformat()
        return value.isoformat()

    @property
    def start_iso(self) -> str | None:
        return self._iso_day(self.start) if self.start else None

    @property
    def end_iso(self) -> str | None:
        return self._iso_day(self.end) if self.end else None


class DataSourceConfig(_WireModel):
    """Describes how to obtain and shape the rows for one chart."""

    query_mode: QueryMode = QueryMode.SIMPLE
    table: str | None = None
    x_axis: str | None = None
    y_axis: list[str] = Field(default_factory=list)
    aggregation: Aggregation = Aggregation.SUM
    group_by: list[str] = Field(default_factory=list)
    filters: list[Filter] = Field(default_factory=list)
    order_by: str | None = None
    order_direction: Literal["asc", "desc"] = "asc"
    limit: int | None = None
    resolution: Literal["year", "month", "day"] | None = None

    custom_query: str | None = None
    connection_id: str | None = None

    date_column: str | None = None
    start_date_column: str | None = None
    end_date_column: str | None = None

    drill_down_label_field: str | None = None
    imported_data: list[Row] | None = None

    @field_validator("group_by", mode="before")
    @classmethod
    def normalize_group_by(cls, v: Any) -> Any:
        if v is None or v == "":
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("order_direction", mode="before")
    @classmethod
    def normalize_direction(cls, v: Any) -> Any:
        if v is None:
            return "asc"
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("aggregation", mode="before")
    @classmethod
    def default_aggregation(cls, v: Any) -> Any:
        if v is None or v == "":
            return Aggregation.SUM
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def is_aggregatable(self) -> bool:
        """Both an x-axis and at least one y-axis field are configured."""
        return bool(self.x_axis and self.y_axis)

    @property
    def start_column(self) -> str | None:
        return self.start_date_column or self.date_column

    @property
    def end_column(self) -> str | None:
        return self.end_date_column or self.date_column


class SanitizedFilter(BaseModel):
    """Filter whose field passed identifier sanitization unchanged."""

    field: str
    operator: FilterOperator
    value: Any = None


class ChartDataRequest(_WireModel):
    """Simple-mode request body for the backend endpoint."""

    table: str
    x_axis: str
    y_axis: list[str]
    aggregation: Aggregation
    group_by: list[str] = Field(default_factory=list)
    filters: list[SanitizedFilter] = Field(default_factory=list)
    order_by: str | None = None
    order_direction: Literal["asc", "desc"] = "asc"
    limit: int
    resolution: str | None = None
    drill_down_label_field: str | None = None
    connection_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class CustomQueryRequest(_WireModel):
    """Custom-mode request body: raw query text plus a safe filter sidecar."""

    custom_query: str
    connection_id: str | None = None
    filters: list[SanitizedFilter] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class BackendResponse(BaseModel):
    """Envelope returned by the backend endpoint."""

    success: bool
    data: list[Row] | None = None
    error: str | None = None
