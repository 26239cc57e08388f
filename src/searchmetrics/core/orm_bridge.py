"""SQLAlchemy engine factory and Connection bridge.

The production metrics tables usually live in the same MySQL (or
PostgreSQL) database as the site that writes them. ``SAConnectionBridge``
wraps a SQLAlchemy ``Session`` so the retention statements, written against
the :class:`~searchmetrics.core.protocols.Connection` protocol with ``?``
placeholders, run unchanged on any SQLAlchemy-supported server.

Tags:
    sqlalchemy, session, engine, bridge, connection, searchmetrics
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session


def create_metrics_engine(
    url: str,
    *,
    echo: bool = False,
    pool_size: int | None = None,
    pool_timeout: int | None = None,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine with sane defaults.

    Parameters
    ----------
    url:
        Database URL (``mysql+pymysql://…``, ``postgresql://…``, etc.)
    echo:
        If ``True``, log all SQL to stdout.
    pool_size, pool_timeout:
        Connection pool parameters (ignored for SQLite).
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        return _sa_create_engine(url, echo=echo, **kwargs)

    pool_kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if pool_size is not None:
        pool_kwargs["pool_size"] = pool_size
    if pool_timeout is not None:
        pool_kwargs["pool_timeout"] = pool_timeout

    return _sa_create_engine(url, echo=echo, **pool_kwargs, **kwargs)


def _rewrite_placeholders(sql: str) -> str:
    """Rewrite positional ``?`` placeholders into ``:p0, :p1, …`` bind names."""
    rewritten, idx = [], 0
    for ch in sql:
        if ch == "?":
            rewritten.append(f":p{idx}")
            idx += 1
        else:
            rewritten.append(ch)
    return "".join(rewritten)


class SAConnectionBridge:
    """Adapter that makes a SQLAlchemy ``Session`` look like ``Connection``.

    Implements: ``execute``, ``executemany``, ``fetchone``, ``fetchall``,
    ``commit``, ``rollback``, ``rowcount``, ``close``.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._last_result: Any = None

    def execute(self, sql: str, parameters: Sequence[Any] | None = None) -> SAConnectionBridge:
        if parameters:
            mapping = {f"p{i}": v for i, v in enumerate(parameters)}
            self._last_result = self._session.execute(text(_rewrite_placeholders(sql)), mapping)
        else:
            self._last_result = self._session.execute(text(sql))
        return self

    def executemany(self, sql: str, seq_of_parameters: Sequence[Sequence[Any]]) -> SAConnectionBridge:
        rows = [{f"p{i}": v for i, v in enumerate(params)} for params in seq_of_parameters]
        if rows:
            self._last_result = self._session.execute(text(_rewrite_placeholders(sql)), rows)
        return self

    def fetchone(self) -> tuple[Any, ...] | None:
        if self._last_result is None:
            return None
        row = self._last_result.fetchone()
        return tuple(row) if row is not None else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        if self._last_result is None:
            return []
        return [tuple(r) for r in self._last_result.fetchall()]

    @property
    def rowcount(self) -> int:
        if self._last_result is None:
            return -1
        return self._last_result.rowcount

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()

    def close(self) -> None:
        self._session.close()

    @property
    def session(self) -> Session:
        """Access the underlying SA session."""
        return self._session

    @property
    def server(self) -> str:
        """Dialect name of the bound engine (``sqlite``, ``postgresql``, ``mysql``)."""
        name = self._session.get_bind().dialect.name
        return "mysql" if name == "mariadb" else name
