"""
API-specific settings.

Extends :class:`~searchmetrics.core.settings.SearchMetricsSettings` with the
parameters that govern the HTTP transport (bind address, prefix, auth).
All values can be overridden via ``SEARCHMETRICS_*`` environment variables.
"""

from __future__ import annotations

from pydantic import Field

from searchmetrics.core.settings import SearchMetricsSettings


class SearchMetricsAPISettings(SearchMetricsSettings):
    """Settings for the purge trigger API.

    Order of precedence (highest -> lowest):
        1. Environment variables (``SEARCHMETRICS_API_KEY``, etc.)
        2. ``.env`` file
        3. Defaults below
    """

    # ── Server ───────────────────────────────────────────────────────────
    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=12080, description="Bind port")
    debug: bool = Field(default=False, description="Include exception text in 500 responses")

    # ── API ──────────────────────────────────────────────────────────────
    api_prefix: str = Field(default="/api/v1", description="URL prefix for all endpoints")
    api_title: str = Field(default="searchmetrics API", description="OpenAPI title")
    api_version: str = Field(default="0.1.0", description="OpenAPI version string")

    # ── Auth ─────────────────────────────────────────────────────────────
    api_key: str | None = Field(default=None, description="API key required to trigger a purge")
