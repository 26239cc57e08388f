"""
Search-metrics schema model.

Defines the five relational stores written by the search-logging pipeline
and the relationships the retention cascade relies on. Table names are
derived from a configurable prefix held by a :class:`MetricsSchema`
instance; no module-level prefix exists.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                   Search Metrics Schema                      │
        └─────────────────────────────────────────────────────────────┘

                      ┌──────────────┐
                      │   queries    │◄──── click-buoy key =
                      │ id, query    │      <prefix>_md5(query)
                      └──────▲───────┘      (external key-value store)
                             │ searches.query
        ┌──────────┐  ┌──────┴───────────────────────┐  ┌─────────┐
        │   ids    │◄─┤          searches            ├─►│  meta   │
        │ id, type │  │ query, hash, uid, tstamp      │  │ hashid  │
        └──────────┘  └──────▲───────────────────────┘  └─────────┘
          type=hash ← hash   │ clicks.hash               meta.hashid
          type=uid  ← uid    │                           = searches.hash
                      ┌──────┴───────┐
                      │   clicks     │
                      │ tstamp, hash │
                      └──────────────┘

Timestamps are stored as ``YYYY-MM-DD HH:MM:SS`` (UTC) text (``DATETIME`` on
MySQL), so comparison with the normalized cutoff is chronological on every
backend.

Examples:
    >>> schema = MetricsSchema("wp_swpext_metrics_")
    >>> schema.table("searches")
    'wp_swpext_metrics_searches'
    >>> schema.create_tables(conn)

Tags:
    schema, ddl, tables, searchmetrics
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field

from searchmetrics.core.dialect import get_dialect
from searchmetrics.core.errors import InvalidConfigError
from searchmetrics.core.orm_bridge import SAConnectionBridge
from searchmetrics.core.protocols import Connection
from searchmetrics.core.settings import DEFAULT_TABLE_PREFIX
from searchmetrics.core.store_errors import STORE_EXCEPTIONS, safe_rollback

# Logical store names, in the order they were introduced by the plugin
TABLES: tuple[str, ...] = ("clicks", "ids", "meta", "queries", "searches")

ID_TYPE_HASH = "hash"
ID_TYPE_UID = "uid"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_PREFIX_RE = re.compile(r"^[A-Za-z0-9_]*$")

# Column types per server. ``key`` columns are indexed text, which MySQL
# only indexes when bounded; MySQL also rejects literal defaults on TEXT.
_TYPES: dict[str, dict[str, str]] = {
    "sqlite": {"pk": "INTEGER PRIMARY KEY", "int": "INTEGER", "text": "TEXT", "key": "TEXT", "tstamp": "TEXT"},
    "postgresql": {"pk": "INTEGER PRIMARY KEY", "int": "INTEGER", "text": "TEXT", "key": "TEXT", "tstamp": "TEXT"},
    "mysql": {
        "pk": "BIGINT AUTO_INCREMENT PRIMARY KEY",
        "int": "BIGINT",
        "text": "LONGTEXT",
        "key": "VARCHAR(191)",
        "tstamp": "DATETIME",
    },
}

# Column definitions use {pk}/{int}/{text}/{key}/{tstamp} type slots; indexes
# are keyed by the suffix of their ``ix_<table>_`` name.
_COLUMNS: dict[str, tuple[str, ...]] = {
    "queries": ("id {pk}", "query {text} NOT NULL"),
    "ids": ("id {pk}", "value {text} NOT NULL", "type {key} NOT NULL"),
    "searches": (
        "id {pk}",
        "query {int} NOT NULL",
        "engine {key} NOT NULL DEFAULT 'default'",
        "tstamp {tstamp} NOT NULL",
        "hits {int} NOT NULL DEFAULT 0",
        "hash {int} NOT NULL",
        "uid {int}",
    ),
    "clicks": (
        "id {pk}",
        "post_id {int} NOT NULL",
        "position {int} NOT NULL DEFAULT 0",
        "tstamp {tstamp} NOT NULL",
        "hash {int} NOT NULL",
    ),
    "meta": ("id {pk}", "hashid {int} NOT NULL", "meta_key {key} NOT NULL", "meta_value {text}"),
}

_INDEXES: dict[str, dict[str, tuple[str, ...]]] = {
    "queries": {},
    "ids": {"type": ("type",)},
    "searches": {
        "query_tstamp": ("query", "tstamp"),
        "hash_tstamp": ("hash", "tstamp"),
        "uid_tstamp": ("uid", "tstamp"),
    },
    "clicks": {"tstamp": ("tstamp",)},
    "meta": {"hashid": ("hashid",)},
}


def render_table_ddl(
    table: str,
    columns: tuple[str, ...],
    indexes: dict[str, tuple[str, ...]],
    server: str = "sqlite",
) -> list[str]:
    """Render ``CREATE TABLE`` (and index) statements for *server*.

    MySQL has no ``CREATE INDEX IF NOT EXISTS``, so its indexes are declared
    inline as ``KEY`` clauses of the table statement.
    """
    types = _TYPES.get(server, _TYPES["sqlite"])
    body = [column.format(**types) for column in columns]
    if server == "mysql":
        body += [f"KEY ix_{table}_{name} ({', '.join(cols)})" for name, cols in indexes.items()]
    statements = [f"CREATE TABLE IF NOT EXISTS {table} (\n    " + ",\n    ".join(body) + "\n)"]
    if server != "mysql":
        statements += [
            f"CREATE INDEX IF NOT EXISTS ix_{table}_{name} ON {table} ({', '.join(cols)})"
            for name, cols in indexes.items()
        ]
    return statements


def server_name(conn: Connection) -> str:
    """Name of the database server behind *conn*, used to pick DDL types."""
    if isinstance(conn, SAConnectionBridge):
        return conn.server
    return get_dialect(conn).name


def validate_identifier(name: str, *, key: str) -> str:
    """Reject prefixes/table names that could not be interpolated into SQL safely."""
    if not _PREFIX_RE.match(name):
        raise InvalidConfigError(key, name, f"{key} may only contain letters, digits and '_': {name!r}")
    return name


@dataclass(frozen=True)
class MetricsSchema:
    """Physical layout of the metrics stores for one table prefix.

    Attributes:
        prefix: Table prefix (WordPress prefix + plugin prefix).
        tables: Mapping of logical store name to physical table name.
    """

    prefix: str = DEFAULT_TABLE_PREFIX
    tables: dict[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        validate_identifier(self.prefix, key="table_prefix")
        object.__setattr__(self, "tables", {name: f"{self.prefix}{name}" for name in TABLES})

    def table(self, name: str) -> str:
        """Return the physical table name for logical store *name*."""
        try:
            return self.tables[name]
        except KeyError:
            raise KeyError(f"Unknown metrics store: {name!r}") from None

    @property
    def clicks(self) -> str:
        return self.tables["clicks"]

    @property
    def ids(self) -> str:
        return self.tables["ids"]

    @property
    def meta(self) -> str:
        return self.tables["meta"]

    @property
    def queries(self) -> str:
        return self.tables["queries"]

    @property
    def searches(self) -> str:
        return self.tables["searches"]

    def ddl(self, server: str = "sqlite") -> Iterator[str]:
        """Yield every DDL statement for *server*, tables before their indexes."""
        for name in TABLES:
            yield from render_table_ddl(self.tables[name], _COLUMNS[name], _INDEXES[name], server)

    def create_tables(self, conn: Connection, *, server: str | None = None) -> None:
        """Create all metrics tables (idempotent).

        *server* defaults to the one detected from *conn*.
        """
        for statement in self.ddl(server or server_name(conn)):
            conn.execute(statement)
        conn.commit()

    def table_counts(self, conn: Connection) -> dict[str, int]:
        """Row counts per logical store (``-1`` when the table is missing)."""
        counts: dict[str, int] = {}
        for name, table in self.tables.items():
            try:
                conn.execute(f"SELECT COUNT(*) FROM {table}")  # noqa: S608
                row = conn.fetchone()
                counts[name] = row[0] if row else 0
            except STORE_EXCEPTIONS:
                safe_rollback(conn)
                counts[name] = -1
        return counts
