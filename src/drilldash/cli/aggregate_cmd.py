"""drilldash aggregate: Group and aggregate rows from a local file."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from drilldash.aggregation.processing import process_chart_data
from drilldash.cli.output import parse_filter_args, print_rows
from drilldash.exceptions import DrillDashError
from drilldash.importer import load_rows
from drilldash.query.models import DataSourceConfig, QueryMode
from drilldash.query.strategies import QueryStrategyResolver

console = Console()

VALID_FORMATS = ("table", "json")


def aggregate(
    file: Annotated[Path, typer.Argument(help="JSON, CSV or YAML file with rows")],
    x_axis: Annotated[str, typer.Option("--x-axis", "-x", help="Primary grouping column")],
    y_axis: Annotated[list[str], typer.Option("--y-axis", "-y", help="Value column (repeatable)")],
    aggregation: Annotated[str, typer.Option("--agg", "-a", help="sum, avg, min, max or count")] = "sum",
    group_by: Annotated[list[str] | None, typer.Option("--group-by", "-g", help="Extra grouping column")] = None,
    filters: Annotated[list[str] | None, typer.Option("--filter", help="FIELD=VALUE (repeatable)")] = None,
    order_by: Annotated[str | None, typer.Option("--order-by", help="Sort column")] = None,
    desc: Annotated[bool, typer.Option("--desc", help="Sort descending")] = False,
    limit: Annotated[int | None, typer.Option("--limit", help="Keep the first N rows")] = None,
    fmt: Annotated[str, typer.Option("--format", "-f", help="Output: table or json")] = "table",
) -> None:
    """Aggregate a local file the way an import-mode chart would."""
    try:
        if fmt not in VALID_FORMATS:
            console.print(f"[red]Invalid format '{fmt}'. Choose from: {', '.join(VALID_FORMATS)}[/red]")
            raise typer.Exit(1)

        config = DataSourceConfig(
            query_mode=QueryMode.IMPORT,
            x_axis=x_axis,
            y_axis=y_axis,
            aggregation=aggregation,
            group_by=group_by or [],
            order_by=order_by,
            order_direction="desc" if desc else "asc",
            limit=limit,
            imported_data=load_rows(file),
        )
        resolver = QueryStrategyResolver()
        raw = asyncio.run(resolver.resolve(config, parse_filter_args(filters)))
        rows = process_chart_data(raw, config)

        print_rows(console, rows, fmt, title=f"{config.aggregation.value}({', '.join(y_axis)}) by {x_axis}")

    except DrillDashError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    except ValueError as e:
        console.print(f"[red]Invalid options:[/red] {e}")
        raise typer.Exit(1) from e
