"""drilldash render: Fetch every widget of a dashboard and print the data."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from drilldash.api.client import BackendClient
from drilldash.cli.output import print_rows
from drilldash.config import get_settings
from drilldash.dashboard.cross_filter import CrossFilter
from drilldash.dashboard.definition import ChartDataset, DashboardDefinition
from drilldash.dashboard.serializer import DashboardSerializer
from drilldash.dashboard.session import DashboardSession
from drilldash.exceptions import DrillDashError
from drilldash.importer import load_rows
from drilldash.query.models import DateRange, QueryMode
from drilldash.query.strategies import QueryStrategyResolver

console = Console()


def _parse_cross_filter(raw: str, definition: DashboardDefinition) -> CrossFilter:
    """Parse CHART:FIELD=VALUE, or CHART=VALUE to filter by the chart's own filter field."""
    target, eq, value = raw.partition("=")
    chart_id, sep, field = target.partition(":")
    chart_id = chart_id.strip()
    if not eq or not chart_id or (sep and not field.strip()):
        raise typer.BadParameter(f"Cross-filter must be CHART:FIELD=VALUE or CHART=VALUE, got: {raw}")
    if not sep:
        widget = definition.get_widget(chart_id)
        if widget is None or not widget.filter_field:
            raise typer.BadParameter(f"No filter field known for chart '{chart_id}', use CHART:FIELD=VALUE")
        field = widget.filter_field
    return CrossFilter(chart_id=chart_id, field=field.strip(), value=value.strip())


async def _render(
    definition: DashboardDefinition,
    date_range: DateRange | None,
    cross_filters: list[CrossFilter],
) -> dict[str, ChartDataset]:
    settings = get_settings()
    client = BackendClient(settings=settings) if settings.backend_configured else None
    try:
        resolver = QueryStrategyResolver(client, settings=settings)
        async with DashboardSession(definition, resolver, date_range=date_range) as session:
            for cf in cross_filters:
                session.set_cross_filter(cf)
            return await session.fetch_all()
    finally:
        if client is not None:
            await client.aclose()


def render(
    dashboard: Annotated[Path, typer.Argument(help="Dashboard YAML file")],
    data: Annotated[
        Path | None, typer.Option("--data", "-d", help="Rows for import-mode widgets without data")
    ] = None,
    start: Annotated[str | None, typer.Option("--start", help="Date range start (YYYY-MM-DD)")] = None,
    end: Annotated[str | None, typer.Option("--end", help="Date range end (YYYY-MM-DD)")] = None,
    cross: Annotated[
        list[str] | None,
        typer.Option("--cross-filter", "-c", help="CHART:FIELD=VALUE or CHART=VALUE (repeatable)"),
    ] = None,
    show_rows: Annotated[bool, typer.Option("--rows", help="Print every widget's rows")] = False,
) -> None:
    """Fetch and aggregate every widget, then print a summary.

    Simple and custom widgets need DRILLDASH_BACKEND_URL; without it they
    come back empty with an error.
    """
    try:
        if not dashboard.exists():
            console.print(f"[red]File not found:[/red] {dashboard}")
            raise typer.Exit(1)

        definition = DashboardSerializer.from_yaml(dashboard.read_text())

        if data is not None:
            rows = load_rows(data)
            for w in definition.widgets:
                ds = w.data_source
                if ds.query_mode == QueryMode.IMPORT and not ds.imported_data:
                    w.data_source = ds.model_copy(update={"imported_data": rows})

        date_range = DateRange(start=start, end=end) if (start or end) else None
        cross_filters = [_parse_cross_filter(c, definition) for c in cross or []]

        datasets = asyncio.run(_render(definition, date_range, cross_filters))

        table = Table(title=definition.name or "Dashboard")
        table.add_column("Widget", style="cyan")
        table.add_column("X axis", style="green")
        table.add_column("Rows", justify="right")
        table.add_column("Status")
        for widget_id, ds in datasets.items():
            status = f"[red]{ds.error}[/red]" if ds.failed else "[green]ok[/green]"
            table.add_row(widget_id, ds.x_axis or "-", str(len(ds.rows)), status)
        console.print(table)

        if show_rows:
            for widget_id, ds in datasets.items():
                print_rows(console, ds.rows, title=widget_id)

    except DrillDashError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ValueError as e:
        console.print(f"[red]Invalid options:[/red] {e}")
        raise typer.Exit(1) from e
