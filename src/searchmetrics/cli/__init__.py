"""searchmetrics command-line interface (Typer)."""
