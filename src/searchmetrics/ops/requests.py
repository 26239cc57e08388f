"""Typed request objects for operation functions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class DatabaseInitRequest:
    """Request for :func:`searchmetrics.ops.database.initialize_database`."""

    create_kv_table: bool = True


@dataclass(frozen=True, slots=True)
class ClearMetricsRequest:
    """Request for :func:`searchmetrics.ops.retention.clear_metrics_data_before`.

    Exactly one of ``before`` (a date) or ``older_than_days`` is expected;
    ``before`` wins when both are given.

    ``strict=None`` defers to ``settings.strict_cutoff``.
    """

    before: Any = None
    older_than_days: int | None = None
    strict: bool | None = None
