"""Convert dashboard definitions to and from YAML.

Data sources are written with the same camelCase keys the dashboard
front-end stores, so a widget's ``data_source`` block can be pasted
between the two without translation.
"""

from __future__ import annotations

import logging
from typing import Any

import yaml
from pydantic import ValidationError

from drilldash.dashboard.definition import ChartWidget, DashboardDefinition
from drilldash.exceptions import DashboardDefinitionError, DataSourceConfigError
from drilldash.query.models import DataSourceConfig

logger = logging.getLogger(__name__)


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err.get('msg', 'invalid value')}" if loc else err.get("msg", "invalid value")


def parse_data_source(data: Any, *, widget_id: str = "") -> DataSourceConfig:
    """Validate one ``data_source`` mapping.

    Raises:
        DataSourceConfigError: If the mapping does not describe a data source.
    """
    if data is None:
        return DataSourceConfig()
    if not isinstance(data, dict):
        raise DataSourceConfigError(f"Widget '{widget_id}': data_source must be a mapping")
    try:
        return DataSourceConfig.model_validate(data)
    except ValidationError as e:
        raise DataSourceConfigError(f"Widget '{widget_id}': {_first_error(e)}") from e


class DashboardSerializer:
    """Serialize dashboard definitions for version control."""

    @staticmethod
    def to_yaml(definition: DashboardDefinition) -> str:
        """Serialize a DashboardDefinition to YAML."""
        data: dict[str, Any] = {
            "name": definition.name,
            "auto_refresh_interval": definition.auto_refresh_interval,
        }
        if definition.link_groups:
            data["link_groups"] = {gid: list(ids) for gid, ids in definition.link_groups.items()}

        data["widgets"] = []
        for widget in definition.widgets:
            widget_data: dict[str, Any] = {
                "id": widget.id,
                "name": widget.name,
                "chart_type": widget.chart_type,
            }
            if widget.cross_filter_field:
                widget_data["cross_filter_field"] = widget.cross_filter_field
            widget_data["data_source"] = widget.data_source.model_dump(
                by_alias=True,
                exclude_none=True,
                exclude_defaults=True,
                mode="json",
            )
            data["widgets"].append(widget_data)

        return yaml.dump(data, default_flow_style=False, sort_keys=False, width=120)

    @staticmethod
    def from_yaml(yaml_str: str) -> DashboardDefinition:
        """Deserialize a DashboardDefinition from YAML.

        Raises:
            DashboardDefinitionError: Unparseable YAML or bad dashboard structure.
            DataSourceConfigError: A widget's data source is invalid.
        """
        try:
            data = yaml.safe_load(yaml_str)
        except yaml.YAMLError as e:
            raise DashboardDefinitionError(f"Invalid YAML: {e}") from e
        if not data or not isinstance(data, dict):
            raise DashboardDefinitionError("Invalid YAML: empty or not a mapping")

        dash = data.get("dashboard", data)

        widgets = []
        for index, widget_data in enumerate(dash.get("widgets") or []):
            if not isinstance(widget_data, dict):
                raise DashboardDefinitionError(f"Widget #{index} is not a mapping")
            widget_id = str(widget_data.get("id") or f"widget-{index + 1}")
            data_source = parse_data_source(widget_data.get("data_source"), widget_id=widget_id)
            try:
                widgets.append(
                    ChartWidget(
                        id=widget_id,
                        name=widget_data.get("name", ""),
                        chart_type=widget_data.get("chart_type", "bar"),
                        cross_filter_field=widget_data.get("cross_filter_field"),
                        data_source=data_source,
                    )
                )
            except ValidationError as e:
                raise DashboardDefinitionError(
                    f"Widget '{widget_id}': {_first_error(e)}"
                ) from e

        link_groups = dash.get("link_groups") or {}
        if not isinstance(link_groups, dict):
            raise DashboardDefinitionError("link_groups must map group ids to widget id lists")

        try:
            definition = DashboardDefinition(
                name=dash.get("name", ""),
                widgets=widgets,
                link_groups={str(k): [str(c) for c in (v or [])] for k, v in link_groups.items()},
                auto_refresh_interval=dash.get("auto_refresh_interval", 0) or 0,
            )
        except ValidationError as e:
            raise DashboardDefinitionError(_first_error(e)) from e

        logger.debug("Loaded dashboard %r with %d widgets", definition.name, definition.widget_count)
        return definition

    @staticmethod
    def from_file(path: str) -> DashboardDefinition:
        """Read and deserialize a YAML dashboard file."""
        try:
            with open(path, encoding="utf-8") as fh:
                text = fh.read()
        except OSError as e:
            raise DashboardDefinitionError(f"Cannot read {path}: {e.strerror or e}") from e
        return DashboardSerializer.from_yaml(text)
