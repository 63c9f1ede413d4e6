"""Data-source models, identifier sanitization, and acquisition strategies."""

from drilldash.query.models import (
    Aggregation,
    DataSourceConfig,
    DateRange,
    DrillFilter,
    Filter,
    QueryMode,
    Row,
)
from drilldash.query.sanitizer import is_safe_identifier, sanitize_identifier

__all__ = [
    "Aggregation",
    "DataSourceConfig",
    "DateRange",
    "DrillFilter",
    "Filter",
    "QueryMode",
    "Row",
    "is_safe_identifier",
    "sanitize_identifier",
]
