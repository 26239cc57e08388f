"""
CLI: ``searchmetrics serve`` -- start the API server.
"""

from __future__ import annotations

import typer
import uvicorn

from searchmetrics.api.settings import SearchMetricsAPISettings
from searchmetrics.cli.utils import console

app = typer.Typer(no_args_is_help=True)


@app.command("start")
def start(
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address (default: SEARCHMETRICS_HOST)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port (default: SEARCHMETRICS_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on changes"),
    workers: int = typer.Option(1, "--workers", "-w", help="Number of workers"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Start the purge trigger API."""
    settings = SearchMetricsAPISettings()
    host = host if host is not None else settings.host
    port = port if port is not None else settings.port
    console.print(f"[bold green]Starting searchmetrics API[/bold green] on {host}:{port}")
    uvicorn.run(
        "searchmetrics.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level,
    )
