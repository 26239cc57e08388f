"""Connection factory: create database connections from URL strings.

Supported URL schemes
---------------------
==========================  ==============================================  ============
Scheme                      Example                                         Backend
==========================  ==============================================  ============
``memory``                  ``memory`` or ``:memory:`` or ``None``          SQLite RAM
``sqlite``                  ``sqlite:///path/to/file.db``                   SQLite file
``(file path)``             ``./data/metrics.db``                           SQLite file
``mysql+driver``            ``mysql+pymysql://user:pw@host/wordpress``      SQLAlchemy
``postgresql``              ``postgresql://user:pw@host:port/db``           SQLAlchemy
==========================  ==============================================  ============

``create_connection()`` returns ``(conn, ConnectionInfo)``; ``conn``
satisfies the ``Connection`` protocol.

Unlike a development convenience layer, this factory never falls back to
another backend: a server that cannot be reached raises
:class:`~searchmetrics.core.errors.StoreUnavailableError` so the caller
sees the outage.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from searchmetrics.core.errors import StoreUnavailableError
from searchmetrics.core.logging import get_logger

logger = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    """Backend identifier: ``"sqlite"``, ``"mysql"``, ``"postgresql"``, …"""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The original URL or path used to create the connection."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"


# ── Backends ─────────────────────────────────────────────────────────────


def _create_sqlite_memory() -> tuple[Any, ConnectionInfo]:
    from searchmetrics.core.sqlite_conn import SqliteConnection

    conn = SqliteConnection(":memory:")
    return conn, ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")


def _create_sqlite_file(path_str: str) -> tuple[Any, ConnectionInfo]:
    from searchmetrics.core.sqlite_conn import SqliteConnection

    path = Path(path_str).expanduser()
    resolved = str(path.resolve())
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = SqliteConnection(resolved)
    except (OSError, sqlite3.Error) as exc:
        logger.error("connection.unavailable", backend="sqlite", path=resolved, error=str(exc))
        raise StoreUnavailableError(f"Cannot open SQLite database {resolved}", cause=exc).with_context(
            backend="sqlite"
        ) from exc
    info = ConnectionInfo(
        backend="sqlite",
        persistent=True,
        url=path_str,
        resolved_path=resolved,
    )
    return conn, info


def _create_sqlalchemy(url: str) -> tuple[Any, ConnectionInfo]:
    """Create a server connection through the SQLAlchemy bridge."""
    from sqlalchemy.orm import Session

    from searchmetrics.core.orm_bridge import SAConnectionBridge, create_metrics_engine

    backend = url.split("://", 1)[0].split("+", 1)[0]
    if backend == "postgres":
        backend = "postgresql"
    try:
        engine = create_metrics_engine(url)
        session = Session(bind=engine, expire_on_commit=False)
        session.connection()
    except SQLAlchemyError as exc:
        logger.error("connection.unavailable", backend=backend, error=str(exc))
        raise StoreUnavailableError(
            f"Cannot connect to {backend} database", cause=exc
        ).with_context(backend=backend) from exc

    return SAConnectionBridge(session), ConnectionInfo(backend=backend, persistent=True, url=url)


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into ``(scheme, target)``.

    ``scheme`` is one of ``"memory"``, ``"sqlite"``, ``"file"``, ``"sqlalchemy"``.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    if "://" in db:
        return "sqlalchemy", db

    # Bare file path is a SQLite file
    return "file", db


# ── Main factory ─────────────────────────────────────────────────────────


def create_connection(
    db: str | None = None,
    *,
    init_schema: bool = False,
    table_prefix: str | None = None,
    kv_table: str | None = None,
) -> tuple[Any, ConnectionInfo]:
    """Create a database connection from a URL, path, or keyword.

    Parameters
    ----------
    db:
        Database URL, file path, or keyword (see module docstring).
    init_schema:
        If ``True``, create the metrics tables (idempotent
        ``CREATE TABLE IF NOT EXISTS``) and the table-backed key-value store.
    table_prefix:
        Prefix of the metrics tables (used with ``init_schema``).
    kv_table:
        Key-value table to create (used with ``init_schema``).

    Returns
    -------
    tuple[Connection, ConnectionInfo]
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        conn, info = _create_sqlite_memory()
    elif scheme in ("sqlite", "file"):
        conn, info = _create_sqlite_file(target)
    else:
        conn, info = _create_sqlalchemy(target)

    if init_schema:
        from searchmetrics.core.kvstore import TableKeyValueStore
        from searchmetrics.core.schema import MetricsSchema
        from searchmetrics.core.settings import DEFAULT_TABLE_PREFIX

        MetricsSchema(table_prefix or DEFAULT_TABLE_PREFIX).create_tables(conn)
        if kv_table:
            TableKeyValueStore(conn, table=kv_table).create_table()

    logger.debug("connection.created", backend=info.backend, persistent=info.persistent)
    return conn, info
