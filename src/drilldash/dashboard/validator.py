"""Pre-flight validation for dashboard definitions.

Checks that widget ids are unique, link groups reference real widgets,
and each data source has what its query mode needs to produce data.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from drilldash.dashboard.definition import ChartWidget, DashboardDefinition
from drilldash.exceptions import UnsafeQueryError
from drilldash.query.models import QueryMode
from drilldash.query.sanitizer import ensure_select_only, is_safe_identifier


@dataclass
class ValidationResult:
    """Result of dashboard validation."""

    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)
        self.valid = False

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_definition(definition: DashboardDefinition) -> ValidationResult:
    """Validate a DashboardDefinition before opening a session on it.

    Errors make a dashboard unusable; warnings flag widgets that will
    silently render no data.
    """
    result = ValidationResult()

    if not definition.name:
        result.add_error("Dashboard name is required.")

    if not definition.widgets:
        result.add_error("Dashboard must have at least one widget.")

    seen: set[str] = set()
    for widget in definition.widgets:
        if widget.id in seen:
            result.add_error(f"Duplicate widget id '{widget.id}'.")
        seen.add(widget.id)
        _validate_widget(widget, result)

    membership: dict[str, str] = {}
    for group_id, chart_ids in definition.link_groups.items():
        if not chart_ids:
            result.add_warning(f"Link group '{group_id}' is empty.")
        for chart_id in chart_ids:
            if chart_id not in seen:
                result.add_error(f"Link group '{group_id}' references unknown widget '{chart_id}'.")
            elif chart_id in membership and membership[chart_id] != group_id:
                # Only the first group a chart appears in is consulted.
                result.add_warning(
                    f"Widget '{chart_id}' is in link groups '{membership[chart_id]}' "
                    f"and '{group_id}'; only '{membership[chart_id]}' applies."
                )
            else:
                membership.setdefault(chart_id, group_id)

    return result


def _validate_widget(widget: ChartWidget, result: ValidationResult) -> None:
    """Validate a single widget."""
    prefix = f"Widget '{widget.id}'"
    ds = widget.data_source

    if not ds.x_axis:
        result.add_warning(f"{prefix}: no x_axis; it will render no data.")
    if not ds.y_axis:
        result.add_warning(f"{prefix}: no y_axis; it will render no data.")

    if ds.query_mode == QueryMode.SIMPLE:
        if not ds.table:
            result.add_warning(f"{prefix}: simple mode without a table; it will render no data.")
        for name in [ds.x_axis, *ds.y_axis, *ds.group_by]:
            if name and not is_safe_identifier(name):
                result.add_warning(f"{prefix}: field '{name}' is not a safe identifier and is dropped.")
    elif ds.query_mode == QueryMode.CUSTOM:
        if not ds.custom_query:
            result.add_warning(f"{prefix}: custom mode without a query; it will render no data.")
        else:
            try:
                ensure_select_only(ds.custom_query)
            except UnsafeQueryError as e:
                result.add_error(f"{prefix}: {e}")
    elif ds.query_mode == QueryMode.IMPORT and not ds.imported_data:
        result.add_warning(f"{prefix}: import mode without imported data.")

    for f in ds.filters:
        if not is_safe_identifier(f.field):
            result.add_warning(f"{prefix}: filter on '{f.field}' is not a safe identifier and is dropped.")
