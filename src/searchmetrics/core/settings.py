"""Shared settings for searchmetrics.

``SearchMetricsSettings`` holds everything the retention subsystem needs to
build its collaborators: where the relational store lives, which table
prefix the metrics tables use, where click-buoy counters are kept, and the
compatibility switches of the purge trigger.

Values are read from ``SEARCHMETRICS_*`` environment variables and an
optional ``.env`` file.

Examples:
    >>> settings = SearchMetricsSettings(table_prefix="wp2_swpext_metrics_")
    >>> settings.resolved_counter_prefix
    'wp2_swpext_metrics_click_buoy'

Tags:
    settings, configuration, pydantic, environment, searchmetrics
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TABLE_PREFIX = "wp_swpext_metrics_"


class SearchMetricsSettings(BaseSettings):
    """Settings shared by the CLI, the API and library callers.

    Fields
    ──────
    database_url          : Relational store URL (SQLite path/URL or SQLAlchemy URL)
    table_prefix          : Prefix of the five metrics tables
    counter_prefix        : Click-buoy key prefix (default ``<table_prefix>click_buoy``)
    kv_backend            : ``table`` | ``redis`` | ``memory``
    kv_table              : Table used by the ``table`` backend
    redis_url             : URL used by the ``redis`` backend
    strict_cutoff         : Raise on unparseable dates instead of a silent no-op
    legacy_silent_success : Acknowledge unauthorized purge requests with success
    sweep_timeout_seconds : Optional deadline for a whole sweep (checked between steps)
    """

    model_config = SettingsConfigDict(
        env_prefix="SEARCHMETRICS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    database_url: str = Field(
        default="sqlite:///searchmetrics.db",
        description="Relational store URL",
    )
    table_prefix: str = DEFAULT_TABLE_PREFIX
    counter_prefix: str | None = None
    kv_backend: str = "table"
    kv_table: str = "wp_postmeta"
    redis_url: str = "redis://localhost:6379/0"

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Retention behaviour ──────────────────────────────────────
    strict_cutoff: bool = False
    legacy_silent_success: bool = True
    sweep_timeout_seconds: float | None = None

    @property
    def resolved_counter_prefix(self) -> str:
        """Click-buoy key prefix, derived from the table prefix unless overridden."""
        return self.counter_prefix or f"{self.table_prefix}click_buoy"
