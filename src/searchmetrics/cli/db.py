"""
CLI: ``searchmetrics db`` -- schema and retention commands.
"""

from __future__ import annotations

import typer

from searchmetrics.cli.utils import console, make_context, output_result, print_table

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL or path"),
    no_kv_table: bool = typer.Option(False, "--no-kv-table", help="Skip the key-value table"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview without changes"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Create the metrics tables (idempotent)."""
    from searchmetrics.ops.database import initialize_database
    from searchmetrics.ops.requests import DatabaseInitRequest

    ctx, conn = make_context(database, dry_run=dry_run)
    try:
        result = initialize_database(ctx, DatabaseInitRequest(create_kv_table=not no_kv_table))
    finally:
        conn.close()
    output_result(result, as_json=json_out, title="Database Init")


@app.command()
def tables(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show row counts for the metrics tables."""
    from searchmetrics.ops.database import get_table_counts

    ctx, conn = make_context(database)
    try:
        result = get_table_counts(ctx)
    finally:
        conn.close()
    output_result(result, as_json=json_out, title="Table Counts")


@app.command()
def purge(
    before: str | None = typer.Option(None, "--before", "-b", help="Delete data recorded before this date"),
    older_than_days: int | None = typer.Option(None, "--days", min=0, help="Delete data older than N days"),
    database: str | None = typer.Option(None, "--database", "-d"),
    kv_backend: str | None = typer.Option(None, "--kv-backend", help="table | redis | memory"),
    strict: bool = typer.Option(False, "--strict", help="Fail on an unparseable date"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the plan without deleting"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Delete search metrics older than a cutoff, across every store."""
    from searchmetrics.ops.requests import ClearMetricsRequest
    from searchmetrics.ops.retention import clear_metrics_data_before

    if (before is None) == (older_than_days is None):
        raise typer.BadParameter("Pass exactly one of --before or --days")

    ctx, conn = make_context(database, dry_run=dry_run, kv_backend=kv_backend)
    try:
        result = clear_metrics_data_before(
            ctx,
            ClearMetricsRequest(before=before, older_than_days=older_than_days, strict=strict or None),
        )
    finally:
        conn.close()

    if json_out or not result.success or result.data is None:
        output_result(result, as_json=json_out, title="Purge Result")
        return

    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    data = result.data
    if data.skipped:
        console.print("[dim]Nothing deleted.[/dim]")
        return
    if data.steps:
        print_table(data.steps, title=f"Purge before {data.cutoff}" + (" (dry run)" if data.dry_run else ""))
    if data.dry_run:
        console.print("[dim]Dry run, nothing deleted.[/dim]")
        return
    console.print(f"[bold]Total deleted:[/bold] {data.total_deleted}")
