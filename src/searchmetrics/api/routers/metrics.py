"""
Metrics router -- the purge trigger and table counts.

POST /metrics/clear-before
GET  /metrics/tables

``clear-before`` reads ``date`` from a form or JSON body and runs one
retention sweep. An unparseable or missing date is acknowledged with
``{"success": true}`` and deletes nothing, unless strict cutoff handling is
configured. Per-step counts are only returned with ``?diagnostics=true``.
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Query, Request

from searchmetrics.api.deps import CutoffDate, OpContext
from searchmetrics.api.middleware.errors import handle_error
from searchmetrics.api.schemas.common import (
    ClearBeforeResponse,
    SweepDiagnosticsSchema,
    TableCountSchema,
    TableCountsResponse,
)
from searchmetrics.ops.database import get_table_counts
from searchmetrics.ops.requests import ClearMetricsRequest
from searchmetrics.ops.retention import clear_metrics_data_before

router = APIRouter(prefix="/metrics")

CLEAR_BEFORE_PATH = "/metrics/clear-before"


@router.post("/clear-before", response_model=ClearBeforeResponse)
def clear_before(
    request: Request,
    ctx: OpContext,
    date: CutoffDate,
    diagnostics: bool = Query(False, description="Include per-step deletion counts"),
):
    """Delete all search metrics recorded before ``date``."""
    result = clear_metrics_data_before(ctx, ClearMetricsRequest(before=date))
    if not result.success:
        return handle_error(result, instance=str(request.url))

    if not diagnostics:
        return ClearBeforeResponse()
    return ClearBeforeResponse(data=SweepDiagnosticsSchema(**asdict(result.data)))


@router.get("/tables", response_model=TableCountsResponse)
def table_counts(ctx: OpContext):
    """Row counts of the metrics tables."""
    result = get_table_counts(ctx)
    return TableCountsResponse(
        data=[TableCountSchema(**asdict(count)) for count in result.data],
        elapsed_ms=result.elapsed_ms,
    )

