"""drilldash drill: Show one drill-down level of a local file."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from drilldash.cli.output import parse_filter_args, print_rows
from drilldash.dashboard.drilldown import DrillDownController
from drilldash.exceptions import DrillDashError
from drilldash.importer import load_rows
from drilldash.query.models import DataSourceConfig, QueryMode
from drilldash.query.strategies import QueryStrategyResolver

console = Console()


def drill(
    file: Annotated[Path, typer.Argument(help="JSON, CSV or YAML file with rows")],
    x_axis: Annotated[str, typer.Option("--x-axis", "-x", help="Top-level grouping column")],
    y_axis: Annotated[list[str], typer.Option("--y-axis", "-y", help="Value column (repeatable)")],
    label_field: Annotated[
        str | None, typer.Option("--label-field", "-l", help="Column to group by once drilled")
    ] = None,
    aggregation: Annotated[str, typer.Option("--agg", "-a", help="sum, avg, min, max or count")] = "sum",
    path: Annotated[
        list[str] | None,
        typer.Option("--filter", help="Ancestor FIELD=VALUE, outermost first (repeatable)"),
    ] = None,
    fmt: Annotated[str, typer.Option("--format", "-f", help="Output: table or json")] = "table",
) -> None:
    """Aggregate the drill level reached by clicking through ``--filter`` values."""
    try:
        config = DataSourceConfig(
            query_mode=QueryMode.IMPORT,
            x_axis=x_axis,
            y_axis=y_axis,
            aggregation=aggregation,
            drill_down_label_field=label_field,
            imported_data=load_rows(file),
        )
        ancestors = parse_filter_args(path)
        controller = DrillDownController(QueryStrategyResolver())
        rows = asyncio.run(controller.drill_down(config, ancestors))

        group_field = DrillDownController.effective_group_field(config, ancestors)
        crumbs = " > ".join(f"{f.field}={f.value}" for f in ancestors) or "(root)"
        if fmt != "json":
            console.print(f"[bold]{crumbs}[/bold]  grouped by [green]{group_field}[/green]")
        print_rows(console, rows, fmt)

    except DrillDashError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ValueError as e:
        console.print(f"[red]Invalid options:[/red] {e}")
        raise typer.Exit(1) from e
