"""
Shared pytest fixtures for searchmetrics tests.

This module provides:
- An in-memory SQLite connection with the metrics tables created
- ``MetricsSeeder`` to populate the five tables and the click-buoy store
- Logging reset between tests
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest
import structlog

from searchmetrics.core.hashing import counter_key
from searchmetrics.core.kvstore import InMemoryKeyValueStore
from searchmetrics.core.schema import ID_TYPE_HASH, ID_TYPE_UID, MetricsSchema
from searchmetrics.core.sqlite_conn import SqliteConnection
from searchmetrics.retention.deleter import StoreDeleter
from searchmetrics.retention.orchestrator import RetentionOrchestrator

COUNTER_PREFIX = "wp_swpext_metrics_click_buoy"


class MetricsSeeder:
    """Writes fixture rows the way the ingestion pipeline would."""

    def __init__(self, conn: SqliteConnection, schema: MetricsSchema, kv: InMemoryKeyValueStore):
        self.conn = conn
        self.schema = schema
        self.kv = kv

    def _insert(self, table: str, columns: tuple[str, ...], values: tuple[Any, ...]) -> int:
        marks = ", ".join("?" for _ in columns)
        self.conn.execute(f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({marks})", values)
        self.conn.execute("SELECT last_insert_rowid()")
        row_id = self.conn.fetchone()[0]
        self.conn.commit()
        return row_id

    def query(self, text: str, *, counter: str | None = "1") -> int:
        """Add a query; also writes its click-buoy counter unless ``counter=None``."""
        query_id = self._insert(self.schema.queries, ("query",), (text,))
        if counter is not None:
            self.kv.set(counter_key(COUNTER_PREFIX, text), counter)
        return query_id

    def identifier(self, value: str, id_type: str) -> int:
        return self._insert(self.schema.ids, ("value", "type"), (value, id_type))

    def search(
        self,
        query_id: int,
        tstamp: str,
        *,
        hash_id: int | None = None,
        uid_id: int | None = None,
        hits: int = 10,
    ) -> int:
        """Add a search; creates a fresh hash identifier when none is given."""
        if hash_id is None:
            hash_id = self.identifier(f"h-{query_id}-{tstamp}", ID_TYPE_HASH)
        self._insert(
            self.schema.searches,
            ("query", "engine", "tstamp", "hits", "hash", "uid"),
            (query_id, "default", tstamp, hits, hash_id, uid_id),
        )
        return hash_id

    def click(self, hash_id: int, tstamp: str, *, post_id: int = 1, position: int = 1) -> int:
        return self._insert(
            self.schema.clicks,
            ("post_id", "position", "tstamp", "hash"),
            (post_id, position, tstamp, hash_id),
        )

    def meta(self, hash_id: int, key: str = "referrer", value: str = "https://example.com") -> int:
        return self._insert(self.schema.meta, ("hashid", "meta_key", "meta_value"), (hash_id, key, value))

    def uid(self, value: str = "visitor") -> int:
        return self.identifier(value, ID_TYPE_UID)

    # ── Inspection ───────────────────────────────────────────────────

    def ids(self, store: str) -> set[int]:
        self.conn.execute(f"SELECT id FROM {self.schema.table(store)}")
        return {row[0] for row in self.conn.fetchall()}

    def counts(self) -> dict[str, int]:
        counts = self.schema.table_counts(self.conn)
        counts["click_buoy"] = len(self.kv)
        return counts

    def snapshot(self) -> dict[str, Any]:
        state: dict[str, Any] = {name: self.ids(name) for name in self.schema.tables}
        state["click_buoy"] = set(self.kv.keys())
        return state


@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None, None, None]:
    yield
    structlog.reset_defaults()


@pytest.fixture()
def schema() -> MetricsSchema:
    return MetricsSchema()


@pytest.fixture()
def conn(schema: MetricsSchema) -> Generator[SqliteConnection, None, None]:
    """In-memory SQLite connection with the metrics tables created."""
    connection = SqliteConnection(":memory:")
    schema.create_tables(connection)
    yield connection
    connection.close()


@pytest.fixture()
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture()
def seed(conn: SqliteConnection, schema: MetricsSchema, kv: InMemoryKeyValueStore) -> MetricsSeeder:
    return MetricsSeeder(conn, schema, kv)


@pytest.fixture()
def deleter(conn: SqliteConnection, schema: MetricsSchema, kv: InMemoryKeyValueStore) -> StoreDeleter:
    return StoreDeleter(conn, schema, kv)


@pytest.fixture()
def orchestrator(deleter: StoreDeleter) -> RetentionOrchestrator:
    return RetentionOrchestrator(deleter)


@pytest.fixture()
def file_db(
    tmp_path, schema: MetricsSchema, kv: InMemoryKeyValueStore
) -> Generator[tuple[str, MetricsSeeder], None, None]:
    """SQLite file with the metrics tables, plus a seeder on its own connection."""
    path = tmp_path / "metrics.db"
    connection = SqliteConnection(str(path))
    schema.create_tables(connection)
    yield f"sqlite:///{path}", MetricsSeeder(connection, schema, kv)
    connection.close()


@pytest.fixture()
def make_seeder(schema: MetricsSchema) -> Generator[Any, None, None]:
    """Factory for independent in-memory stores, each with its own seeder."""
    connections: list[SqliteConnection] = []

    def _make() -> MetricsSeeder:
        connection = SqliteConnection(":memory:")
        schema.create_tables(connection)
        connections.append(connection)
        return MetricsSeeder(connection, schema, InMemoryKeyValueStore())

    yield _make
    for connection in connections:
        connection.close()
