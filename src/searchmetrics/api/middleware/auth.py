"""
API-key authorization middleware.

When ``SEARCHMETRICS_API_KEY`` is set, every request must include a matching
``X-API-Key`` header (or ``?api_key=`` query param).

The purge trigger keeps the contract its existing callers rely on: an
unauthorized purge request is acknowledged with ``{"success": true}`` and
nothing is deleted. That behaviour is limited to ``silent_paths`` and only
active while ``legacy_silent_success`` is on; every other unauthorized
request is rejected with :class:`AuthorizationError`, rendered as a 401
ProblemDetail through the ``UNAUTHORIZED`` error code.

Bypass paths (no auth required):
  - ``/health``
  - ``/docs``, ``/redoc``, ``/openapi.json``
"""

from __future__ import annotations

import re
import secrets

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from searchmetrics.api.middleware.errors import error_response
from searchmetrics.core.errors import AuthorizationError
from searchmetrics.core.logging import get_logger

logger = get_logger(__name__)

# Paths that never require authorization
_BYPASS_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^/health"),
    re.compile(r"/docs$"),
    re.compile(r"/redoc$"),
    re.compile(r"/openapi\.json$"),
]


def _is_bypass(path: str) -> bool:
    """Return True if *path* should skip authorization."""
    return any(p.search(path) for p in _BYPASS_PATTERNS)


class AuthMiddleware(BaseHTTPMiddleware):
    """Reject (or silently acknowledge) requests that lack a valid API key.

    Parameters
    ----------
    app:
        The ASGI application to wrap.
    api_key:
        The expected API key value. ``None`` disables enforcement.
    silent_paths:
        Paths answered with ``{"success": true}`` instead of 401.
    legacy_silent_success:
        Enables the ``silent_paths`` behaviour.
    """

    def __init__(
        self,
        app: object,
        api_key: str | None = None,
        *,
        silent_paths: frozenset[str] = frozenset(),
        legacy_silent_success: bool = True,
    ) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._api_key = api_key
        self._silent_paths = silent_paths
        self._legacy_silent_success = legacy_silent_success

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # No key configured -> auth disabled
        if self._api_key is None:
            return await call_next(request)

        path = request.url.path
        if _is_bypass(path):
            return await call_next(request)

        provided = request.headers.get("X-API-Key") or request.query_params.get("api_key") or ""
        if secrets.compare_digest(provided.encode("utf-8"), self._api_key.encode("utf-8")):
            return await call_next(request)

        logger.warning("auth.rejected", path=path, silent=path in self._silent_paths)
        if self._legacy_silent_success and path in self._silent_paths:
            return JSONResponse(status_code=200, content={"success": True})

        error = AuthorizationError("Missing or invalid API key. Provide X-API-Key header.")
        return error_response(error, str(request.url))
