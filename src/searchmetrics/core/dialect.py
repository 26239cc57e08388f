"""SQL dialect abstraction for the retention statements.

The cascade statements are plain ANSI SQL (``DELETE ... WHERE [NOT] EXISTS``)
so the only backend-specific fragment is the parameter placeholder. Domain
code asks a ``Dialect`` for it instead of hard-coding ``?`` or ``%s``.

Architecture::

    ┌──────────┐ ┌──────────────┐ ┌────────┐
    │ SQLite   │ │ PostgreSQL   │ │ MySQL  │
    │ ?, ?, ?  │ │ %s, %s, %s   │ │ %s,%s  │
    └──────────┘ └──────────────┘ └────────┘

Connections going through :class:`~searchmetrics.core.orm_bridge.SAConnectionBridge`
use ``?`` placeholders regardless of the server; the bridge rewrites them
into SQLAlchemy bind parameters.

Examples:
    >>> from searchmetrics.core.dialect import SQLiteDialect
    >>> SQLiteDialect().placeholders(3)
    '?, ?, ?'
"""

from __future__ import annotations

from typing import Any, Protocol


class Dialect(Protocol):
    """Protocol for SQL dialect implementations."""

    @property
    def name(self) -> str:
        """Dialect identifier (``sqlite``, ``postgresql``, ``mysql``)."""
        ...

    def placeholder(self, index: int) -> str:
        """Return the parameter placeholder for position *index* (0-based)."""
        ...

    def placeholders(self, count: int) -> str:
        """Return *count* comma-separated placeholders."""
        ...


class SQLiteDialect:
    """SQLite (and SQLAlchemy bridge) dialect: ``?`` placeholders."""

    @property
    def name(self) -> str:
        return "sqlite"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))


class PostgreSQLDialect:
    """PostgreSQL dialect for raw DB-API drivers (psycopg): ``%s`` placeholders."""

    @property
    def name(self) -> str:
        return "postgresql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))


class MySQLDialect(PostgreSQLDialect):
    """MySQL dialect for raw DB-API drivers (PyMySQL, mysqlclient)."""

    @property
    def name(self) -> str:
        return "mysql"


_DIALECTS: dict[str, type] = {
    "sqlite": SQLiteDialect,
    "postgresql": PostgreSQLDialect,
    "mysql": MySQLDialect,
}


def get_dialect(conn: Any) -> Dialect:
    """Best-effort dialect detection from a connection object.

    The searchmetrics adapters (``SqliteConnection``, ``SAConnectionBridge``)
    both accept ``?``; raw drivers are recognised by module name.
    """
    module = type(conn).__module__.lower()
    if module.startswith("searchmetrics") or "sqlite" in module:
        return SQLiteDialect()
    if "psycopg" in module:
        return PostgreSQLDialect()
    if "mysql" in module:
        return MySQLDialect()
    return SQLiteDialect()


def dialect_for(name: str) -> Dialect:
    """Return the dialect registered under *name* (defaults to SQLite)."""
    return _DIALECTS.get(name, SQLiteDialect)()
