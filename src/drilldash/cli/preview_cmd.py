"""drilldash preview: Dry-run a dashboard showing the backend payloads."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from drilldash.cli.output import parse_filter_args
from drilldash.dashboard.serializer import DashboardSerializer
from drilldash.dashboard.validator import validate_definition
from drilldash.exceptions import DrillDashError, UnsafeQueryError
from drilldash.query.strategies import QueryStrategyResolver

console = Console()


def preview(
    dashboard: Annotated[Path, typer.Argument(help="Dashboard YAML file")],
    widget_id: Annotated[str | None, typer.Option("--widget", "-w", help="Only this widget")] = None,
    filters: Annotated[
        list[str] | None, typer.Option("--filter", help="Drill filter FIELD=VALUE (repeatable)")
    ] = None,
    output_format: Annotated[str, typer.Option("--format", help="Output: json, yaml, or summary")] = "summary",
) -> None:
    """Preview what each widget would send to the backend.

    Nothing is sent. Import-mode widgets have no payload.
    """
    try:
        if not dashboard.exists():
            console.print(f"[red]File not found:[/red] {dashboard}")
            raise typer.Exit(1)

        definition = DashboardSerializer.from_yaml(dashboard.read_text())
        widgets = definition.widgets
        if widget_id:
            widget = definition.get_widget(widget_id)
            if widget is None:
                console.print(f"[red]Unknown widget:[/red] {widget_id}")
                raise typer.Exit(1)
            widgets = [widget]

        if output_format == "yaml":
            console.print(Syntax(DashboardSerializer.to_yaml(definition), "yaml", theme="monokai"))
            return

        resolver = QueryStrategyResolver()
        ancestors = parse_filter_args(filters)
        payloads: dict[str, dict | None] = {}
        rejected: dict[str, str] = {}
        for w in widgets:
            try:
                payloads[w.id] = resolver.build_request(w.data_source, ancestors)
            except UnsafeQueryError as e:
                payloads[w.id] = None
                rejected[w.id] = e.reason

        if output_format == "json":
            for wid, reason in rejected.items():
                payloads[wid] = {"rejected": reason}
            console.print_json(json.dumps(payloads, indent=2, default=str))
            return

        # Summary view
        console.print(f"\n[bold]{definition.name}[/bold]")
        console.print(f"  Widgets: {definition.widget_count}")
        console.print(f"  Auto-refresh: {definition.auto_refresh_interval or 'off'}")
        console.print()

        table = Table(title="Widgets", show_lines=True)
        table.add_column("ID", style="cyan")
        table.add_column("Type", style="green")
        table.add_column("Mode")
        table.add_column("X axis")
        table.add_column("Y axis")
        table.add_column("Payload", style="dim")

        for w in widgets:
            ds = w.data_source
            payload = payloads[w.id]
            if w.id in rejected:
                shown = f"[red]rejected:[/red] {rejected[w.id]}"
            else:
                shown = json.dumps(payload, default=str) if payload else "none"
            table.add_row(
                w.id,
                w.chart_type,
                ds.query_mode.value,
                ds.x_axis or "-",
                ", ".join(ds.y_axis) or "-",
                shown,
            )
        console.print(table)

        result = validate_definition(definition)
        for msg in result.errors:
            console.print(f"[red]error:[/red] {msg}")
        for msg in result.warnings:
            console.print(f"[yellow]warning:[/yellow] {msg}")

    except DrillDashError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
