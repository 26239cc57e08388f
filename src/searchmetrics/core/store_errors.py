"""Map driver exceptions onto the store error taxonomy.

Every place that talks to a store (relational engine or key-value store)
funnels driver failures through :func:`classify_store_error` so callers
only ever see :class:`StoreUnavailableError` (cannot reach the store) or
:class:`QueryExecutionError` (the store rejected the statement).
"""

from __future__ import annotations

import sqlite3
from typing import Any

import redis.exceptions
from sqlalchemy import exc as sa_exc

from searchmetrics.core.errors import (
    ErrorCategory,
    QueryExecutionError,
    StoreError,
    StoreUnavailableError,
)
from searchmetrics.core.logging import get_logger

logger = get_logger(__name__)

# Errors that are raised as-is by the store layer; anything else from a
# driver is classified below.
STORE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    sqlite3.Error,
    sa_exc.SQLAlchemyError,
    redis.exceptions.RedisError,
    ConnectionError,
    OSError,
)

_SQLITE_UNAVAILABLE_MARKERS = (
    "closed database",
    "unable to open database",
    "disk i/o error",
)


def _is_unavailable(exc: BaseException) -> bool:
    if isinstance(exc, (ConnectionError, OSError)):
        return True
    if isinstance(exc, (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError)):
        return True
    if isinstance(exc, sa_exc.DBAPIError) and exc.connection_invalidated:
        return True
    if isinstance(exc, (sa_exc.DisconnectionError, sa_exc.InterfaceError)):
        return True
    if isinstance(exc, sqlite3.Error):
        message = str(exc).lower()
        return any(marker in message for marker in _SQLITE_UNAVAILABLE_MARKERS)
    return False


def classify_store_error(
    exc: BaseException,
    message: str,
    *,
    category: ErrorCategory = ErrorCategory.DATABASE,
) -> StoreError:
    """Wrap *exc* in the matching :class:`StoreError` subclass.

    Args:
        exc: Driver exception.
        message: Human-readable description of what was being attempted.
        category: ``DATABASE`` for the relational engine, ``STORAGE`` for
            the key-value store.
    """
    cause = exc if isinstance(exc, Exception) else None
    if _is_unavailable(exc):
        return StoreUnavailableError(f"{message}: store unavailable ({exc})", category=category, cause=cause)
    return QueryExecutionError(f"{message}: {exc}", category=category, cause=cause)


def safe_rollback(conn: Any) -> None:
    """Roll back *conn*, tolerating a connection that is already gone."""
    try:
        conn.rollback()
    except STORE_EXCEPTIONS as exc:
        logger.warning("store.rollback_failed", error=str(exc))
