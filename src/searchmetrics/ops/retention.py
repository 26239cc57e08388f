"""
Retention operations -- the purge entry point shared by the API and the CLI.

:func:`clear_metrics_data_before` builds the orchestrator from the context,
runs one sweep and converts its outcome into an :class:`OperationResult`.
An unparseable date is acknowledged as success with ``skipped=True``
unless strict mode is requested.
"""

from __future__ import annotations

import time

from searchmetrics.core.errors import InvalidCutoffError, SearchMetricsError
from searchmetrics.core.logging import get_logger
from searchmetrics.ops.context import OperationContext
from searchmetrics.ops.requests import ClearMetricsRequest
from searchmetrics.ops.responses import ClearMetricsResult
from searchmetrics.ops.result import OperationResult, start_timer
from searchmetrics.retention.deleter import StoreDeleter
from searchmetrics.retention.orchestrator import (
    RetentionOrchestrator,
    cutoff_for_days,
    format_cutoff,
    parse_cutoff,
)
from searchmetrics.retention.planner import CascadePlanner

logger = get_logger(__name__)


def build_orchestrator(ctx: OperationContext) -> RetentionOrchestrator:
    """Wire a :class:`RetentionOrchestrator` from the context's settings."""
    deleter = StoreDeleter(
        ctx.conn,
        ctx.schema,
        ctx.get_kv_store(),
        counter_prefix=ctx.settings.resolved_counter_prefix,
    )
    return RetentionOrchestrator(deleter)


def clear_metrics_data_before(
    ctx: OperationContext,
    request: ClearMetricsRequest,
) -> OperationResult[ClearMetricsResult]:
    """Delete all search metrics older than the requested cutoff."""
    timer = start_timer()
    strict = ctx.settings.strict_cutoff if request.strict is None else request.strict

    try:
        value = request.before
        if value is None and request.older_than_days is not None:
            value = cutoff_for_days(request.older_than_days)

        if ctx.dry_run:
            return _preview(value, strict, timer.elapsed_ms)

        deadline = None
        if ctx.settings.sweep_timeout_seconds is not None:
            deadline = time.monotonic() + ctx.settings.sweep_timeout_seconds

        report = build_orchestrator(ctx).sweep(
            value,
            strict=strict,
            deadline=deadline,
            cancel_event=ctx.cancel_event,
        )
    except SearchMetricsError as exc:
        logger.error("op_failed", op="clear_metrics_data_before", request_id=ctx.request_id, **exc.to_dict())
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

    if report is None:
        return OperationResult.ok(
            ClearMetricsResult(cutoff=None, skipped=True),
            warnings=[f"Ignored unparseable date: {request.before!r}"],
            elapsed_ms=timer.elapsed_ms,
        )

    return OperationResult.ok(
        ClearMetricsResult(
            cutoff=report.cutoff,
            total_deleted=report.total_deleted,
            steps=[step.to_dict() for step in report.steps],
        ),
        elapsed_ms=timer.elapsed_ms,
    )


def _preview(value: object, strict: bool, elapsed_ms: float) -> OperationResult[ClearMetricsResult]:
    """Dry run: resolve the cutoff and list the planned steps without deleting."""
    try:
        cutoff = format_cutoff(parse_cutoff(value))
    except InvalidCutoffError:
        if strict:
            raise
        return OperationResult.ok(ClearMetricsResult(cutoff=None, skipped=True, dry_run=True), elapsed_ms=elapsed_ms)

    steps = [{"step": step.name, "store": step.store, "deleted": 0} for step in CascadePlanner().plan()]
    return OperationResult.ok(
        ClearMetricsResult(cutoff=cutoff, steps=steps, dry_run=True),
        elapsed_ms=elapsed_ms,
    )
