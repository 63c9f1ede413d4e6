"""Argument parsing and rendering helpers shared by the CLI commands."""

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.table import Table

from drilldash.aggregation.labels import stringify
from drilldash.query.models import Filter, Row


def parse_filter_args(values: list[str] | None) -> list[Filter]:
    """Turn ``field=value`` arguments into equality filters, in order."""
    filters = []
    for raw in values or []:
        if "=" not in raw:
            raise typer.BadParameter(f"Filter must be FIELD=VALUE, got: {raw}")
        field, _, value = raw.partition("=")
        filters.append(Filter(field=field.strip(), operator="=", value=value.strip()))
    return filters


def print_rows(console: Console, rows: list[Row], fmt: str = "table", title: str | None = None) -> None:
    """Print aggregated rows as a rich table or JSON."""
    if fmt == "json":
        console.print_json(json.dumps(rows, default=str))
        return

    if not rows:
        console.print("[dim]No data.[/dim]")
        return

    columns: list[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)

    table = Table(title=title)
    for col in columns:
        table.add_column(col, style="cyan" if col == columns[0] else None)
    for row in rows:
        table.add_row(*(stringify(row.get(col)) for col in columns))
    console.print(table)
