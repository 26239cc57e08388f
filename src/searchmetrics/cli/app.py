"""
Root Typer application for the searchmetrics CLI.
"""

from __future__ import annotations

import sys

import typer
from typer import Typer

from searchmetrics import __version__
from searchmetrics.core.logging import configure_logging

app = Typer(
    name="searchmetrics",
    help="searchmetrics -- retention for search-analytics stores.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"searchmetrics {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for stderr output"),
) -> None:
    """searchmetrics CLI -- create the metrics tables and purge old data."""
    configure_logging(level=log_level, json_format=False, stream=sys.stderr)


# ── Sub-command registration ─────────────────────────────────────────────

from searchmetrics.cli.db import app as db_app  # noqa: E402
from searchmetrics.cli.serve import app as serve_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database and retention operations.")
app.add_typer(serve_app, name="serve", help="Start the API server.")
