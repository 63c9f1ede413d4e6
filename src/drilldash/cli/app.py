"""Main CLI application for drilldash."""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from drilldash import __version__

app = typer.Typer(
    name="drilldash",
    help="Aggregate, drill into, and cross-filter chart data.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"drilldash {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version.", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log debug output to stderr."),
) -> None:
    """drilldash: chart data aggregation, drill-down and cross-filtering."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(show_path=False)],
            force=True,
        )


# Import and register commands
from drilldash.cli.aggregate_cmd import aggregate  # noqa: E402
from drilldash.cli.drill_cmd import drill  # noqa: E402
from drilldash.cli.preview_cmd import preview  # noqa: E402
from drilldash.cli.render_cmd import render  # noqa: E402

app.command("aggregate")(aggregate)
app.command("drill")(drill)
app.command("preview")(preview)
app.command("render")(render)


def main() -> None:
    """Entry point for the CLI."""
    app()
