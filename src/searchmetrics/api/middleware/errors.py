"""
Error handling -- maps ops error codes and exceptions to RFC 7807 responses.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from searchmetrics.api.schemas.common import ProblemDetail
from searchmetrics.core.errors import SearchMetricsError
from searchmetrics.core.logging import get_logger
from searchmetrics.ops.result import OperationResult, error_code_for

logger = get_logger(__name__)

# ── Error code → HTTP status mapping ─────────────────────────────────────

ERROR_CODE_TO_STATUS: dict[str, int] = {
    "INVALID_INPUT": 400,
    "UNAUTHORIZED": 401,
    "INTERNAL": 500,
    "UNAVAILABLE": 503,
    "CANCELLED": 504,
}

_TITLES: dict[int, str] = {
    400: "Bad Request",
    401: "Unauthorized",
    500: "Internal Server Error",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


def status_for_error_code(code: str) -> int:
    """Resolve an ops error code to HTTP status, defaulting to 500."""
    return ERROR_CODE_TO_STATUS.get(code, 500)


def problem_response(
    *,
    status: int,
    title: str,
    detail: str = "",
    instance: str = "",
) -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(title=title, status=status, detail=detail, instance=instance)
    return JSONResponse(status_code=status, content=body.model_dump())


def handle_error(result: OperationResult, instance: str = "") -> JSONResponse:
    """Convert a failed ``OperationResult`` into a Problem Details response."""
    code = result.error.code if result.error else "INTERNAL"
    status = status_for_error_code(code)
    return problem_response(
        status=status,
        title=_TITLES.get(status, "Operation failed"),
        detail=result.error.message if result.error else "",
        instance=instance,
    )


def error_response(exc: SearchMetricsError, instance: str = "") -> JSONResponse:
    """Problem Details response for a domain exception, by its error code."""
    status = status_for_error_code(error_code_for(exc))
    return problem_response(
        status=status,
        title=_TITLES.get(status, "Operation failed"),
        detail=exc.message,
        instance=instance,
    )


async def searchmetrics_exception_handler(request: Request, exc: SearchMetricsError) -> JSONResponse:
    """Errors raised outside the ops layer (e.g. while connecting)."""
    response = error_response(exc, str(request.url))
    logger.error("api.error", path=request.url.path, status=response.status_code, **exc.to_dict())
    return response


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions -- returns 500 with ProblemDetail."""
    logger.exception("api.unhandled_exception", path=request.url.path)
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if request.app.state.settings.debug else "An unexpected error occurred.",
        instance=str(request.url),
    )
