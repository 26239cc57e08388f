"""Tests for ``searchmetrics.core.connection.create_connection``."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from searchmetrics.core.connection import _parse_url, create_connection
from searchmetrics.core.errors import StoreUnavailableError
from searchmetrics.core.kvstore import TableKeyValueStore
from searchmetrics.core.orm_bridge import SAConnectionBridge, _rewrite_placeholders
from searchmetrics.core.schema import MetricsSchema


class TestParseUrl:
    @pytest.mark.parametrize("db", [None, "", "memory", ":memory:", "sqlite://", "sqlite:///:memory:"])
    def test_memory(self, db):
        assert _parse_url(db) == ("memory", ":memory:")

    def test_sqlite_url(self):
        assert _parse_url("sqlite:///data/metrics.db") == ("sqlite", "data/metrics.db")

    def test_server_url(self):
        assert _parse_url("mysql+pymysql://u:p@db/wp") == ("sqlalchemy", "mysql+pymysql://u:p@db/wp")

    def test_bare_path(self):
        assert _parse_url("./metrics.db") == ("file", "./metrics.db")


class TestCreateConnection:
    def test_memory_with_schema(self):
        conn, info = create_connection(None, init_schema=True, kv_table="wp_postmeta")
        assert info.is_sqlite
        assert not info.persistent
        assert MetricsSchema().table_counts(conn)["searches"] == 0
        TableKeyValueStore(conn).set("k", "1")
        conn.close()

    def test_file(self, tmp_path):
        path = tmp_path / "nested" / "metrics.db"
        conn, info = create_connection(str(path), init_schema=True, table_prefix="t_")
        assert info.persistent
        assert info.resolved_path == str(path.resolve())
        assert MetricsSchema("t_").table_counts(conn)["clicks"] == 0
        conn.close()

    def test_sqlalchemy_sqlite_bridge(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'sa.db'}"
        conn, info = create_connection(url.replace("sqlite:///", "sqlite+pysqlite:///"))
        assert isinstance(conn, SAConnectionBridge)
        assert info.backend == "sqlite"
        conn.execute("CREATE TABLE t (id INTEGER, v TEXT)")
        conn.execute("INSERT INTO t VALUES (?, ?)", (1, "a"))
        conn.execute("DELETE FROM t WHERE v = ?", ("a",))
        assert conn.rowcount == 1
        conn.commit()
        conn.close()

    def test_unreachable_server_raises(self):
        with patch(
            "searchmetrics.core.orm_bridge.create_metrics_engine",
            side_effect=OperationalError("connect", {}, Exception("refused")),
        ):
            with pytest.raises(StoreUnavailableError) as exc_info:
                create_connection("mysql+pymysql://u:p@nowhere/wp")
        assert exc_info.value.context.metadata["backend"] == "mysql"


class TestPlaceholderRewrite:
    def test_rewrites_in_order(self):
        assert _rewrite_placeholders("a = ? AND b < ?") == "a = :p0 AND b < :p1"

    def test_no_placeholders(self):
        assert _rewrite_placeholders("SELECT 1") == "SELECT 1"


def test_unopenable_sqlite_path_is_unavailable(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x")

    with pytest.raises(StoreUnavailableError) as exc_info:
        create_connection(str(blocker / "metrics.db"))

    assert exc_info.value.context.metadata["backend"] == "sqlite"
