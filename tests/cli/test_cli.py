"""Tests for the ``searchmetrics`` command line."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from searchmetrics import __version__
from searchmetrics.cli.app import app
from searchmetrics.core.hashing import counter_key
from searchmetrics.core.kvstore import TableKeyValueStore

runner = CliRunner()

JAN_01 = "2024-01-01 00:00:00"
JAN_15 = "2024-01-15 00:00:00"


@pytest.fixture()
def seeded(file_db):
    url, seed = file_db
    seed.search(seed.query("hello"), JAN_01)
    seed.search(seed.query("cats"), JAN_15)
    return url, seed


def test_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "db" in result.output


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.strip() == f"searchmetrics {__version__}"


class TestInit:
    def test_creates_tables(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'fresh.db'}"

        result = runner.invoke(app, ["db", "init", "-d", url, "--json"])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["kv_table"] == "wp_postmeta"
        assert "wp_swpext_metrics_searches" in payload["tables_created"]

    def test_dry_run(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'fresh.db'}"
        result = runner.invoke(app, ["db", "init", "-d", url, "--dry-run"])
        assert result.exit_code == 0
        assert "dry_run" in result.output


class TestTables:
    def test_json_counts(self, seeded):
        result = runner.invoke(app, ["db", "tables", "-d", seeded[0], "--json"])

        assert result.exit_code == 0, result.output
        counts = {row["store"]: row["count"] for row in json.loads(result.output)}
        assert counts["searches"] == 2
        assert counts["queries"] == 2

    def test_table_output(self, seeded):
        result = runner.invoke(app, ["db", "tables", "-d", seeded[0]])
        assert result.exit_code == 0
        assert "searches" in result.output


class TestPurge:
    def test_purge_before(self, seeded):
        url, seed = seeded

        result = runner.invoke(app, ["db", "purge", "-d", url, "--kv-backend", "memory", "--before", "2024-01-10"])

        assert result.exit_code == 0, result.output
        assert "Total deleted:" in result.output
        assert seed.counts()["searches"] == 1
        assert seed.counts()["queries"] == 1

    def test_purge_json(self, seeded):
        url, _seed = seeded

        result = runner.invoke(
            app, ["db", "purge", "-d", url, "--kv-backend", "memory", "--before", "2024-01-10", "--json"]
        )

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["cutoff"] == "2024-01-10 00:00:00"
        assert payload["total_deleted"] == 3
        assert len(payload["steps"]) == 7

    def test_purge_days(self, seeded):
        url, seed = seeded
        result = runner.invoke(app, ["db", "purge", "-d", url, "--kv-backend", "memory", "--days", "30"])
        assert result.exit_code == 0, result.output
        assert seed.counts()["searches"] == 0

    def test_purge_removes_table_counters(self, seeded):
        url, seed = seeded
        assert runner.invoke(app, ["db", "init", "-d", url]).exit_code == 0
        store = TableKeyValueStore(seed.conn)
        key = counter_key("wp_swpext_metrics_click_buoy", "hello")
        store.set(key, "3", post_id=7)
        kept = counter_key("wp_swpext_metrics_click_buoy", "cats")
        store.set(kept, "1", post_id=7)

        result = runner.invoke(app, ["db", "purge", "-d", url, "--before", "2024-01-10"])

        assert result.exit_code == 0, result.output
        assert store.get(key) is None
        assert store.get(kept) == "1"

    def test_unparseable_date_deletes_nothing(self, seeded):
        url, seed = seeded
        result = runner.invoke(app, ["db", "purge", "-d", url, "--kv-backend", "memory", "--before", "someday"])
        assert result.exit_code == 0
        assert "Nothing deleted." in result.output
        assert seed.counts()["searches"] == 2

    def test_strict_unparseable_date_fails(self, seeded):
        url, seed = seeded
        result = runner.invoke(
            app, ["db", "purge", "-d", url, "--kv-backend", "memory", "--before", "someday", "--strict"]
        )
        assert result.exit_code == 1
        assert seed.counts()["searches"] == 2

    def test_dry_run(self, seeded):
        url, seed = seeded
        result = runner.invoke(
            app, ["db", "purge", "-d", url, "--kv-backend", "memory", "--before", "2024-01-10", "--dry-run"]
        )
        assert result.exit_code == 0, result.output
        assert "Dry run, nothing deleted." in result.output
        assert "Total deleted" not in result.output
        assert seed.counts()["searches"] == 2

    @pytest.mark.parametrize(
        "args",
        [
            [],
            ["--before", "2024-01-10", "--days", "3"],
        ],
    )
    def test_requires_exactly_one_cutoff(self, seeded, args):
        result = runner.invoke(app, ["db", "purge", "-d", seeded[0], *args])
        assert result.exit_code == 2

    def test_negative_days_rejected(self, seeded):
        result = runner.invoke(app, ["db", "purge", "-d", seeded[0], "--days", "-1"])
        assert result.exit_code == 2

    def test_unknown_kv_backend(self, seeded):
        result = runner.invoke(
            app, ["db", "purge", "-d", seeded[0], "--kv-backend", "nope", "--before", "2024-01-10"]
        )
        assert result.exit_code == 1


class TestServe:
    @pytest.fixture
    def uvicorn_run(self, monkeypatch):
        run = MagicMock()
        monkeypatch.setattr("searchmetrics.cli.serve.uvicorn.run", run)
        monkeypatch.delenv("SEARCHMETRICS_HOST", raising=False)
        monkeypatch.delenv("SEARCHMETRICS_PORT", raising=False)
        return run

    def test_defaults_come_from_settings(self, uvicorn_run, monkeypatch):
        monkeypatch.setenv("SEARCHMETRICS_HOST", "0.0.0.0")
        monkeypatch.setenv("SEARCHMETRICS_PORT", "9000")

        result = runner.invoke(app, ["serve", "start"])

        assert result.exit_code == 0, result.output
        kwargs = uvicorn_run.call_args.kwargs
        assert (kwargs["host"], kwargs["port"]) == ("0.0.0.0", 9000)
        assert kwargs["factory"] is True

    def test_options_override_settings(self, uvicorn_run, monkeypatch):
        monkeypatch.setenv("SEARCHMETRICS_PORT", "9000")

        result = runner.invoke(app, ["serve", "start", "--host", "10.0.0.5", "--port", "8181"])

        assert result.exit_code == 0, result.output
        kwargs = uvicorn_run.call_args.kwargs
        assert (kwargs["host"], kwargs["port"]) == ("10.0.0.5", 8181)

    def test_built_in_defaults(self, uvicorn_run):
        result = runner.invoke(app, ["serve", "start"])

        assert result.exit_code == 0, result.output
        kwargs = uvicorn_run.call_args.kwargs
        assert (kwargs["host"], kwargs["port"]) == ("127.0.0.1", 12080)
