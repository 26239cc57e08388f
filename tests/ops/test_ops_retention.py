"""Tests for ``searchmetrics.ops.retention.clear_metrics_data_before``."""

from __future__ import annotations

import threading

import pytest

from searchmetrics.core.settings import SearchMetricsSettings
from searchmetrics.ops.context import OperationContext
from searchmetrics.ops.requests import ClearMetricsRequest
from searchmetrics.ops.retention import clear_metrics_data_before

JAN_01 = "2024-01-01 00:00:00"


def _settings(**overrides) -> SearchMetricsSettings:
    return SearchMetricsSettings(_env_file=None, **overrides)


@pytest.fixture()
def ctx(conn, kv) -> OperationContext:
    return OperationContext(conn=conn, settings=_settings(), kv_store=kv)


@pytest.fixture()
def seeded(seed):
    hash_id = seed.search(seed.query("hello"), JAN_01)
    seed.click(hash_id, JAN_01)
    seed.meta(hash_id)
    return seed


def test_deletes_and_reports(ctx, seeded):
    result = clear_metrics_data_before(ctx, ClearMetricsRequest(before="2024-01-10"))

    assert result.success
    assert result.data.cutoff == "2024-01-10 00:00:00"
    assert result.data.total_deleted == 6
    assert [step["step"] for step in result.data.steps][-1] == "searches"
    assert all(count == 0 for count in seeded.counts().values())


def test_unparseable_date_is_skipped(ctx, seeded):
    result = clear_metrics_data_before(ctx, ClearMetricsRequest(before="whenever"))

    assert result.success
    assert result.data.skipped
    assert result.data.cutoff is None
    assert result.warnings
    assert seeded.counts()["searches"] == 1


def test_missing_date_is_skipped(ctx):
    result = clear_metrics_data_before(ctx, ClearMetricsRequest())
    assert result.success
    assert result.data.skipped


def test_strict_request(ctx, seeded):
    result = clear_metrics_data_before(ctx, ClearMetricsRequest(before="whenever", strict=True))

    assert not result.success
    assert result.error.code == "INVALID_INPUT"
    assert not result.error.retryable
    assert seeded.counts()["searches"] == 1


def test_strict_from_settings(conn, kv):
    ctx = OperationContext(conn=conn, settings=_settings(strict_cutoff=True), kv_store=kv)
    result = clear_metrics_data_before(ctx, ClearMetricsRequest(before="whenever"))
    assert result.error.code == "INVALID_INPUT"


def test_request_overrides_strict_setting(conn, kv):
    ctx = OperationContext(conn=conn, settings=_settings(strict_cutoff=True), kv_store=kv)
    result = clear_metrics_data_before(ctx, ClearMetricsRequest(before="whenever", strict=False))
    assert result.success


def test_unavailable_store(ctx, conn):
    conn.close()
    result = clear_metrics_data_before(ctx, ClearMetricsRequest(before="2024-01-10"))

    assert not result.success
    assert result.error.code == "UNAVAILABLE"
    assert result.error.retryable
    assert result.error.details["step"] == "clicks"
    assert result.error.details["cutoff"] == "2024-01-10 00:00:00"


def test_rejected_statement_is_internal(conn, kv):
    ctx = OperationContext(conn=conn, settings=_settings(table_prefix="missing_"), kv_store=kv)
    result = clear_metrics_data_before(ctx, ClearMetricsRequest(before="2024-01-10"))

    assert result.error.code == "INTERNAL"
    assert result.error.details["table"] == "missing_clicks"


def test_bad_kv_backend_is_internal(conn):
    ctx = OperationContext(conn=conn, settings=_settings(kv_backend="bogus"))
    result = clear_metrics_data_before(ctx, ClearMetricsRequest(before="2024-01-10"))
    assert result.error.code == "INTERNAL"


def test_cancelled(conn, kv, seeded):
    event = threading.Event()
    event.set()
    ctx = OperationContext(conn=conn, settings=_settings(), kv_store=kv, cancel_event=event)

    result = clear_metrics_data_before(ctx, ClearMetricsRequest(before="2024-01-10"))

    assert result.error.code == "CANCELLED"
    assert result.error.retryable
    assert seeded.counts()["clicks"] == 1


def test_zero_timeout_cancels(conn, kv):
    ctx = OperationContext(conn=conn, settings=_settings(sweep_timeout_seconds=0), kv_store=kv)
    result = clear_metrics_data_before(ctx, ClearMetricsRequest(before="2024-01-10"))
    assert result.error.code == "CANCELLED"


def test_older_than_days(ctx, seeded):
    result = clear_metrics_data_before(ctx, ClearMetricsRequest(older_than_days=30))

    assert result.success
    assert result.data.total_deleted == 6
    assert seeded.counts()["searches"] == 0


def test_negative_days_is_invalid(ctx):
    result = clear_metrics_data_before(ctx, ClearMetricsRequest(older_than_days=-1))
    assert result.error.code == "INVALID_INPUT"


def test_dry_run_deletes_nothing(conn, kv, seeded):
    ctx = OperationContext(conn=conn, settings=_settings(), kv_store=kv, dry_run=True)

    result = clear_metrics_data_before(ctx, ClearMetricsRequest(before="2024-01-10"))

    assert result.success
    assert result.data.dry_run
    assert result.data.cutoff == "2024-01-10 00:00:00"
    assert len(result.data.steps) == 7
    assert seeded.counts()["searches"] == 1


def test_result_to_dict(ctx, seeded):
    data = clear_metrics_data_before(ctx, ClearMetricsRequest(before="2024-01-10")).to_dict()
    assert data["success"] is True
    assert data["data"].total_deleted == 6
