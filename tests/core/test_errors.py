"""Tests for the searchmetrics error hierarchy and driver error classification."""

from __future__ import annotations

import sqlite3

import pytest
import redis.exceptions
from sqlalchemy import exc as sa_exc

from searchmetrics.core.errors import (
    ErrorCategory,
    InvalidConfigError,
    InvalidCutoffError,
    QueryExecutionError,
    SearchMetricsError,
    StoreError,
    StoreUnavailableError,
    SweepCancelledError,
    ValidationError,
    is_retryable,
)
from searchmetrics.core.store_errors import classify_store_error


class TestHierarchy:
    def test_store_errors_share_base(self):
        assert issubclass(StoreUnavailableError, StoreError)
        assert issubclass(QueryExecutionError, StoreError)
        assert issubclass(StoreError, SearchMetricsError)

    def test_invalid_cutoff_is_validation(self):
        err = InvalidCutoffError("not-a-date")
        assert isinstance(err, ValidationError)
        assert err.field == "date"
        assert err.value == "not-a-date"
        assert err.category == ErrorCategory.VALIDATION
        assert "not-a-date" in err.message

    def test_retry_flags(self):
        assert StoreUnavailableError("down").retryable is True
        assert QueryExecutionError("bad sql").retryable is False
        assert is_retryable(StoreUnavailableError("down"))
        assert not is_retryable(QueryExecutionError("bad sql"))
        assert is_retryable(ConnectionError())
        assert not is_retryable(ValueError())

    def test_invalid_config_keeps_key(self):
        err = InvalidConfigError("kv_backend", "memcached")
        assert err.key == "kv_backend"
        assert err.category == ErrorCategory.CONFIG


class TestContextAndSerialisation:
    def test_with_context_sets_known_fields(self):
        err = QueryExecutionError("boom").with_context(step="meta", table="t_meta", cutoff="2024-01-01 00:00:00")
        assert err.context.step == "meta"
        assert err.context.table == "t_meta"
        assert err.context.cutoff == "2024-01-01 00:00:00"

    def test_with_context_unknown_keys_go_to_metadata(self):
        err = StoreUnavailableError("down").with_context(backend="mysql")
        assert err.context.metadata == {"backend": "mysql"}

    def test_to_dict(self):
        cause = RuntimeError("driver")
        err = StoreUnavailableError("down", cause=cause).with_context(step="queries")
        data = err.to_dict()
        assert data["error_type"] == "StoreUnavailableError"
        assert data["retryable"] is True
        assert data["context"] == {"step": "queries"}
        assert data["cause"] == "driver"
        assert err.__cause__ is cause

    def test_cancelled_lists_completed_steps(self):
        err = SweepCancelledError("stop", completed_steps=["clicks", "meta"])
        assert err.to_dict()["completed_steps"] == ["clicks", "meta"]
        assert err.retryable is True


class TestClassifyStoreError:
    def test_closed_sqlite_connection_is_unavailable(self):
        err = classify_store_error(sqlite3.ProgrammingError("Cannot operate on a closed database."), "step")
        assert isinstance(err, StoreUnavailableError)

    def test_sqlite_syntax_error_is_query_error(self):
        err = classify_store_error(sqlite3.OperationalError('near "DELTE": syntax error'), "step")
        assert isinstance(err, QueryExecutionError)

    def test_missing_table_is_query_error(self):
        err = classify_store_error(sqlite3.OperationalError("no such table: wp_postmeta"), "step")
        assert isinstance(err, QueryExecutionError)

    def test_sqlalchemy_disconnect_is_unavailable(self):
        err = classify_store_error(sa_exc.DisconnectionError("gone"), "step")
        assert isinstance(err, StoreUnavailableError)

    def test_sqlalchemy_invalidated_connection_is_unavailable(self):
        exc = sa_exc.OperationalError("SELECT 1", {}, Exception("server has gone away"), connection_invalidated=True)
        assert isinstance(classify_store_error(exc, "step"), StoreUnavailableError)

    def test_sqlalchemy_integrity_error_is_query_error(self):
        exc = sa_exc.IntegrityError("DELETE", {}, Exception("constraint"))
        assert isinstance(classify_store_error(exc, "step"), QueryExecutionError)

    def test_redis_connection_error_is_unavailable(self):
        err = classify_store_error(redis.exceptions.ConnectionError("refused"), "kv", category=ErrorCategory.STORAGE)
        assert isinstance(err, StoreUnavailableError)
        assert err.category == ErrorCategory.STORAGE

    def test_redis_response_error_is_query_error(self):
        err = classify_store_error(redis.exceptions.ResponseError("WRONGTYPE"), "kv")
        assert isinstance(err, QueryExecutionError)

    @pytest.mark.parametrize("exc", [ConnectionRefusedError(), TimeoutError()])
    def test_os_level_errors_are_unavailable(self, exc):
        assert isinstance(classify_store_error(exc, "step"), StoreUnavailableError)

    def test_cause_is_kept(self):
        exc = sqlite3.OperationalError("database is locked")
        err = classify_store_error(exc, "step")
        assert err.cause is exc
