"""
FastAPI application factory.

``create_app()`` wires middleware, routers, error handlers and lifespan
events into a single ``FastAPI`` instance.

The lifespan owns a shutdown ``threading.Event``: a sweep that is still
running when the server stops finishes its current step and then stops
with ``SweepCancelledError``.
"""

from __future__ import annotations

import threading
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from searchmetrics import __version__
from searchmetrics.api.deps import get_settings
from searchmetrics.api.middleware.auth import AuthMiddleware
from searchmetrics.api.middleware.errors import (
    searchmetrics_exception_handler,
    unhandled_exception_handler,
)
from searchmetrics.api.middleware.request_id import RequestIDMiddleware
from searchmetrics.api.settings import SearchMetricsAPISettings
from searchmetrics.core.errors import SearchMetricsError
from searchmetrics.core.kvstore import KeyValueStore
from searchmetrics.core.logging import configure_logging, get_logger


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan -- startup / shutdown hooks."""
    settings: SearchMetricsAPISettings = app.state.settings
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    log = get_logger("searchmetrics.api")
    log.info("api.starting", version=app.version, kv_backend=settings.kv_backend)

    app.state.shutdown_event.clear()
    yield
    app.state.shutdown_event.set()
    log.info("api.stopping")


def create_app(
    *,
    settings: SearchMetricsAPISettings | None = None,
    kv_store: KeyValueStore | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : SearchMetricsAPISettings | None
        Override settings (useful for testing). When ``None`` the cached
        singleton from :func:`get_settings` is used.
    kv_store : KeyValueStore | None
        Click-buoy store shared by all requests. When ``None`` each request
        builds one from ``settings.kv_backend``.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version or __version__,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    app.state.settings = settings
    app.state.kv_store = kv_store
    app.state.shutdown_event = threading.Event()

    # Override DI so endpoints use the provided settings
    app.dependency_overrides[get_settings] = lambda: settings

    from searchmetrics.api.routers import metrics

    prefix = settings.api_prefix

    # ── Middleware (added innermost first) ────────────────────────────
    app.add_middleware(
        AuthMiddleware,
        api_key=settings.api_key,
        silent_paths=frozenset({f"{prefix}{metrics.CLEAR_BEFORE_PATH}"}),
        legacy_silent_success=settings.legacy_silent_success,
    )
    app.add_middleware(RequestIDMiddleware)

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(SearchMetricsError, searchmetrics_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        """Liveness probe (no auth, no database access)."""
        return {"status": "ok", "version": __version__}

    app.include_router(metrics.router, prefix=prefix, tags=["metrics"])

    return app
