"""
Operation result envelope.

Provides :class:`OperationResult` -- a typed success/failure envelope that
every operation function returns, so the API and the CLI render outcomes
the same way. Failures carry a machine-readable code:

    INVALID_INPUT   unparseable cutoff (strict mode)
    UNAUTHORIZED    missing or invalid API key
    UNAVAILABLE     a store could not be reached
    INTERNAL        a store rejected a statement, or bad configuration
    CANCELLED       a sweep was cancelled or ran past its deadline
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from searchmetrics.core.errors import (
    AuthError,
    ConfigError,
    ErrorCategory,
    InvalidCutoffError,
    QueryExecutionError,
    SearchMetricsError,
    StoreUnavailableError,
    SweepCancelledError,
)

# Exception type -> error code; first match wins.
_ERROR_CODES: list[tuple[type[SearchMetricsError], str]] = [
    (InvalidCutoffError, "INVALID_INPUT"),
    (AuthError, "UNAUTHORIZED"),
    (StoreUnavailableError, "UNAVAILABLE"),
    (QueryExecutionError, "INTERNAL"),
    (SweepCancelledError, "CANCELLED"),
    (ConfigError, "INTERNAL"),
]


def error_code_for(exc: SearchMetricsError) -> str:
    """Ops error code for *exc* (``INTERNAL`` when nothing more specific applies)."""
    for exc_type, code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            return code
    return "INTERNAL"


@dataclass(frozen=True, slots=True)
class OperationError:
    """Structured error detail for failed operations.

    Attributes:
        code: Machine-readable code (``INVALID_INPUT``, ``UNAVAILABLE``, ...).
        message: Human-readable description of the error.
        category: Optional :class:`ErrorCategory` for routing/alerting.
        details: Extra key/value context (step, table, cutoff, ...).
        retryable: Whether the caller should retry the operation.
    """

    code: str
    message: str
    category: ErrorCategory | None = None
    details: dict[str, Any] = field(default_factory=dict)
    retryable: bool = False


T = TypeVar("T")


@dataclass
class OperationResult(Generic[T]):
    """Envelope returned by every operation function.

    Use the :meth:`ok` and :meth:`fail` factories rather than the constructor.
    """

    success: bool
    data: T | None = None
    error: OperationError | None = None
    warnings: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(
        cls,
        data: T,
        *,
        warnings: list[str] | None = None,
        elapsed_ms: float = 0.0,
        metadata: dict[str, Any] | None = None,
    ) -> OperationResult[T]:
        """Create a successful result."""
        return cls(
            success=True,
            data=data,
            warnings=warnings or [],
            elapsed_ms=elapsed_ms,
            metadata=metadata or {},
        )

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        *,
        category: ErrorCategory | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        """Create a failed result."""
        return cls(
            success=False,
            error=OperationError(
                code=code,
                message=message,
                category=category,
                details=details or {},
                retryable=retryable,
            ),
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def from_error(cls, exc: SearchMetricsError, *, elapsed_ms: float = 0.0) -> OperationResult[T]:
        """Failed result carrying the code, context and retryability of *exc*."""
        return cls.fail(
            error_code_for(exc),
            exc.message,
            category=exc.category,
            details=exc.context.to_dict(),
            retryable=exc.retryable,
            elapsed_ms=elapsed_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict (for JSON output)."""
        d: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            d["data"] = self.data
        if self.error is not None:
            d["error"] = {
                "code": self.error.code,
                "message": self.error.message,
                "retryable": self.error.retryable,
            }
            if self.error.details:
                d["error"]["details"] = self.error.details
        if self.warnings:
            d["warnings"] = self.warnings
        if self.elapsed_ms:
            d["elapsed_ms"] = round(self.elapsed_ms, 2)
        if self.metadata:
            d["metadata"] = self.metadata
        return d


class _Timer:
    """Minimal stopwatch for timing operations."""

    __slots__ = ("_start",)

    def __init__(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000


def start_timer() -> _Timer:
    """Return a lightweight timer. Use ``timer.elapsed_ms`` when done."""
    return _Timer()
