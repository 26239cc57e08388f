"""Tests for ``searchmetrics.ops.database``."""

from __future__ import annotations

import pytest

from searchmetrics.core.settings import SearchMetricsSettings
from searchmetrics.core.sqlite_conn import SqliteConnection
from searchmetrics.ops.context import OperationContext
from searchmetrics.ops.database import get_table_counts, initialize_database
from searchmetrics.ops.requests import DatabaseInitRequest


@pytest.fixture()
def empty_conn():
    connection = SqliteConnection(":memory:")
    yield connection
    connection.close()


def _table_names(conn) -> set[str]:
    conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    return {row[0] for row in conn.fetchall()}


def test_initialize_creates_tables_and_kv_table(empty_conn):
    ctx = OperationContext(conn=empty_conn, settings=SearchMetricsSettings(_env_file=None))

    result = initialize_database(ctx)

    assert result.success
    assert result.data.kv_table == "wp_postmeta"
    assert set(result.data.tables_created) | {"wp_postmeta"} == _table_names(empty_conn)


def test_initialize_is_idempotent(empty_conn):
    ctx = OperationContext(conn=empty_conn, settings=SearchMetricsSettings(_env_file=None))
    assert initialize_database(ctx).success
    assert initialize_database(ctx).success


def test_initialize_without_kv_table(empty_conn):
    ctx = OperationContext(conn=empty_conn, settings=SearchMetricsSettings(_env_file=None))

    result = initialize_database(ctx, DatabaseInitRequest(create_kv_table=False))

    assert result.data.kv_table is None
    assert "wp_postmeta" not in _table_names(empty_conn)


def test_initialize_skips_kv_table_for_other_backends(empty_conn):
    settings = SearchMetricsSettings(_env_file=None, kv_backend="redis")
    result = initialize_database(OperationContext(conn=empty_conn, settings=settings))
    assert result.data.kv_table is None


def test_initialize_dry_run(empty_conn):
    ctx = OperationContext(conn=empty_conn, settings=SearchMetricsSettings(_env_file=None), dry_run=True)

    result = initialize_database(ctx)

    assert result.data.dry_run
    assert len(result.data.tables_created) == 5
    assert _table_names(empty_conn) == set()


def test_table_counts(conn, seed):
    seed.search(seed.query("hello"), "2024-01-01 00:00:00")
    ctx = OperationContext(conn=conn, settings=SearchMetricsSettings(_env_file=None))

    result = get_table_counts(ctx)

    counts = {item.store: item.count for item in result.data}
    assert counts == {"clicks": 0, "ids": 1, "meta": 0, "queries": 1, "searches": 1}
    assert {item.table for item in result.data} >= {"wp_swpext_metrics_searches"}


def test_table_counts_missing_tables(empty_conn):
    result = get_table_counts(OperationContext(conn=empty_conn, settings=SearchMetricsSettings(_env_file=None)))
    assert all(item.count == -1 for item in result.data)


def test_initialize_on_closed_connection(empty_conn):
    empty_conn.close()
    ctx = OperationContext(conn=empty_conn, settings=SearchMetricsSettings(_env_file=None))

    result = initialize_database(ctx)

    assert not result.success
    assert result.error.code == "UNAVAILABLE"
    assert result.error.retryable
