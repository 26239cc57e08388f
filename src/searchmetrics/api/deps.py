"""
FastAPI dependency injection -- shared singletons and per-request factories.

Usage in routers::

    from searchmetrics.api.deps import OpContext, Settings

    @router.post("/metrics/clear-before")
    def clear_before(ctx: OpContext, settings: Settings):
        ...
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Generator
from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends, Request

from searchmetrics.api.settings import SearchMetricsAPISettings
from searchmetrics.core.connection import create_connection
from searchmetrics.ops.context import OperationContext

# ── Settings (singleton) ─────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_settings() -> SearchMetricsAPISettings:
    """Cached settings -- loaded once per process."""
    return SearchMetricsAPISettings()


# ── Database connection (per-request) ────────────────────────────────────


def get_connection(
    settings: Annotated[SearchMetricsAPISettings, Depends(get_settings)],
) -> Generator[Any, None, None]:
    """Yield a database connection for the request lifespan."""
    conn, _info = create_connection(settings.database_url)
    try:
        yield conn
    finally:
        conn.close()


# ── Operation context (per-request) ──────────────────────────────────────


def get_operation_context(
    request: Request,
    conn: Annotated[Any, Depends(get_connection)],
    settings: Annotated[SearchMetricsAPISettings, Depends(get_settings)],
) -> OperationContext:
    """Build an :class:`OperationContext` from the current request."""
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    return OperationContext(
        conn=conn,
        settings=settings,
        kv_store=getattr(request.app.state, "kv_store", None),
        request_id=request_id,
        caller="api",
        cancel_event=getattr(request.app.state, "shutdown_event", None),
    )


# ── Request body ─────────────────────────────────────────────────────────


async def get_cutoff_date(request: Request) -> Any:
    """Read ``date`` from a form-encoded or JSON body (``None`` when absent)."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        return body.get("date") if isinstance(body, dict) else None

    form = await request.form()
    value = form.get("date")
    return value if isinstance(value, str) else None


# ── Convenience type aliases ─────────────────────────────────────────────

Settings = Annotated[SearchMetricsAPISettings, Depends(get_settings)]
Conn = Annotated[Any, Depends(get_connection)]
OpContext = Annotated[OperationContext, Depends(get_operation_context)]
CutoffDate = Annotated[Any, Depends(get_cutoff_date)]
