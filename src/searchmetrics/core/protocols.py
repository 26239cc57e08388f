"""
Canonical protocol definitions for searchmetrics.

Every module that talks to the relational engine depends on the
:class:`Connection` shape defined here, never on a concrete driver. The
same retention code therefore runs on SQLite (tests, single-node installs)
and on any SQLAlchemy-supported server through the bridge in
:mod:`searchmetrics.core.orm_bridge`.

Architecture:
    ::

        protocols.py
        └── Connection  : sync DB protocol (execute, fetch*, commit, rollback, rowcount)

        Implementations:
        ┌────────────────────────────────────────────────────────┐
        │ SqliteConnection    → sqlite3 (native sync)             │
        │ SAConnectionBridge  → SQLAlchemy Session (MySQL, PG)    │
        └────────────────────────────────────────────────────────┘

Tags:
    protocol, connection, database, searchmetrics
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """
    Minimal SYNCHRONOUS connection interface for database operations.

    ``rowcount`` reports the number of rows affected by the last
    ``execute``; the Store Deleter uses it to report per-step counts.

    Examples:
        >>> conn.execute("DELETE FROM t WHERE ts < ?", ("2024-01-10 00:00:00",))
        >>> conn.rowcount
        3
        >>> conn.commit()
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters. SYNC."""
        ...

    def executemany(self, sql: str, params: list[tuple]) -> Any:
        """Execute SQL statement for multiple parameter sets. SYNC."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from last query. SYNC."""
        ...

    def fetchall(self) -> list:
        """Fetch all rows from last query. SYNC."""
        ...

    def commit(self) -> None:
        """Commit current transaction. SYNC."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction. SYNC."""
        ...

    @property
    def rowcount(self) -> int:
        """Rows affected by the last statement (-1 when unknown)."""
        ...
