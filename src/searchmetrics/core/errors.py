"""
Structured error types for searchmetrics.

Every failure raised by the retention subsystem is a ``SearchMetricsError``
carrying a category, a retry flag, structured context and an optional
chained cause. Callers route on the concrete type; loggers and API
responses use :meth:`SearchMetricsError.to_dict`.

Manifesto:
    - **Typed hierarchy:** one class per failure the caller must tell apart
    - **Explicit retry semantics:** an unreachable store is retryable, a
      rejected statement is not
    - **Rich context:** step, table and key metadata travel with the error
    - **Error chaining:** the driver exception is kept as ``cause``

Architecture:
    ::

        ┌────────────────────────────────────────────────────────────┐
        │                    SearchMetricsError                       │
        │  (category, retryable, context, cause)                      │
        ├────────────────────────────────────────────────────────────┤
        │  ValidationError     ConfigError        AuthError           │
        │       │                   │                  │              │
        │  InvalidCutoffError  InvalidConfigError AuthorizationError  │
        │                                                             │
        │  StoreError                         RetentionError          │
        │       │                                  │                  │
        │  StoreUnavailableError             SweepCancelledError      │
        │  QueryExecutionError                                        │
        └────────────────────────────────────────────────────────────┘

Examples:
    >>> err = StoreUnavailableError("database is gone").with_context(step="queries")
    >>> err.retryable
    True
    >>> err.context.step
    'queries'

Tags:
    error-handling, exception-hierarchy, retention, searchmetrics
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    DATABASE = "DATABASE"  # Relational engine failures
    STORAGE = "STORAGE"  # Key-value store failures
    VALIDATION = "VALIDATION"  # Bad input
    CONFIG = "CONFIG"  # Missing or invalid settings
    AUTH = "AUTH"  # Authorization
    RETENTION = "RETENTION"  # Sweep lifecycle (cancellation, deadlines)
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        step: Name of the cascade step being executed.
        table: Physical table (or store) the step targeted.
        cutoff: Normalized cutoff string of the sweep.
        metadata: Additional key/value pairs.
    """

    step: str | None = None
    table: str | None = None
    cutoff: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for key in ("step", "table", "cutoff"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SearchMetricsError(Exception):
    """
    Base exception for all searchmetrics errors.

    Subclasses set ``default_category`` and ``default_retryable``; both can
    be overridden per instance.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SearchMetricsError:
        """
        Add context to this error (fluent API).

        Usage:
            raise QueryExecutionError("bad statement").with_context(
                step="meta", table="wp_swpext_metrics_meta"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(SearchMetricsError):
    """
    Input validation error.

    Never retryable - the input must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class InvalidCutoffError(ValidationError):
    """The supplied cutoff cannot be parsed as a calendar date/time."""

    def __init__(self, value: Any, message: str | None = None, **kwargs: Any):
        super().__init__(
            message or f"Cannot parse cutoff date: {value!r}",
            field="date",
            value=value,
            **kwargs,
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(SearchMetricsError):
    """Configuration error. Never retryable."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# AUTHORIZATION ERRORS
# =============================================================================


class AuthError(SearchMetricsError):
    """Authentication or authorization error."""

    default_category = ErrorCategory.AUTH
    default_retryable = False


class AuthorizationError(AuthError):
    """Caller is not allowed to trigger a purge."""

    pass


# =============================================================================
# STORE ERRORS
# =============================================================================


class StoreError(SearchMetricsError):
    """Failure talking to the relational engine or the key-value store."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class StoreUnavailableError(StoreError):
    """The store cannot be reached (closed connection, refused, disconnected)."""

    default_retryable = True


class QueryExecutionError(StoreError):
    """The store rejected a statement (syntax, constraint, lock timeout)."""

    pass


# =============================================================================
# RETENTION LIFECYCLE ERRORS
# =============================================================================


class RetentionError(SearchMetricsError):
    """Sweep-level error that is not tied to a single store."""

    default_category = ErrorCategory.RETENTION
    default_retryable = False


class SweepCancelledError(RetentionError):
    """A sweep stopped between steps because it was cancelled or ran out of time."""

    default_retryable = True

    def __init__(self, message: str, *, completed_steps: list[str] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.completed_steps = list(completed_steps or [])

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["completed_steps"] = self.completed_steps
        return result


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, SearchMetricsError):
        return error.retryable
    return isinstance(error, ConnectionError)


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SearchMetricsError",
    "ValidationError",
    "InvalidCutoffError",
    "ConfigError",
    "InvalidConfigError",
    "AuthError",
    "AuthorizationError",
    "StoreError",
    "StoreUnavailableError",
    "QueryExecutionError",
    "RetentionError",
    "SweepCancelledError",
    "is_retryable",
]
