"""
CLI utility helpers -- output formatting and connection management.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from searchmetrics.core.connection import create_connection
from searchmetrics.core.errors import SearchMetricsError
from searchmetrics.core.settings import SearchMetricsSettings
from searchmetrics.ops.context import OperationContext
from searchmetrics.ops.result import OperationResult

console = Console()
err_console = Console(stderr=True)


# ── Connection helper ────────────────────────────────────────────────────


def load_settings(database: str | None = None, **overrides: Any) -> SearchMetricsSettings:
    """Settings from the environment, with command-line overrides applied."""
    settings = SearchMetricsSettings()
    update = {key: value for key, value in overrides.items() if value is not None}
    if database:
        update["database_url"] = database
    return settings.model_copy(update=update) if update else settings


def make_context(
    database: str | None = None,
    *,
    dry_run: bool = False,
    **overrides: Any,
) -> tuple[OperationContext, Any]:
    """Create an ``OperationContext`` + connection pair for CLI commands.

    Exits with status 1 when the database cannot be opened.
    """
    settings = load_settings(database, **overrides)
    try:
        conn, _info = create_connection(settings.database_url)
    except SearchMetricsError as exc:
        err_console.print(f"[bold red]Error[/bold red] (UNAVAILABLE): {exc.message}")
        raise typer.Exit(code=1) from exc
    ctx = OperationContext(conn=conn, settings=settings, caller="cli", dry_run=dry_run)
    return ctx, conn


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output_result(
    result: OperationResult,
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render an ``OperationResult`` to the terminal; exit 1 on failure."""
    if not result.success:
        err = result.error
        msg = err.message if err else "Unknown error"
        code = err.code if err else "ERROR"
        err_console.print(f"[bold red]Error[/bold red] ({code}): {msg}")
        raise typer.Exit(code=1)

    data = result.data

    if as_json:
        payload = _to_dict(data) if not isinstance(data, list | tuple) else [_to_dict(d) for d in data]
        console.print_json(json.dumps(payload, default=str))
        return

    for warning in result.warnings:
        err_console.print(f"[yellow]Warning:[/yellow] {warning}")

    if isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        print_table(data, title=title)
    else:
        _print_dict(_to_dict(data), title=title)


def print_table(items: list, *, title: str = "") -> None:
    """Render a list of dataclasses/dicts as a Rich table."""
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*(str(v) for v in d.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
