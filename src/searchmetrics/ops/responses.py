"""Typed response payloads for operation functions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class DatabaseInitResult:
    """Result payload for :func:`searchmetrics.ops.database.initialize_database`."""

    tables_created: list[str]
    kv_table: str | None = None
    dry_run: bool = False


@dataclass(frozen=True, slots=True)
class TableCount:
    """Row count for a single metrics table (``-1`` when missing)."""

    store: str
    table: str
    count: int


@dataclass(frozen=True, slots=True)
class ClearMetricsResult:
    """Result payload for :func:`searchmetrics.ops.retention.clear_metrics_data_before`.

    ``skipped`` is set when the date could not be parsed and the request was
    acknowledged without deleting anything.
    """

    cutoff: str | None
    total_deleted: int = 0
    steps: list[dict[str, Any]] = field(default_factory=list)
    skipped: bool = False
    dry_run: bool = False
