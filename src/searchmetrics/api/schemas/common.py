"""
API schemas -- response envelopes and RFC 7807 errors.

The purge trigger answers with :class:`ClearBeforeResponse`, the shape its
existing callers parse (``{"success": true, "data": ...}``). Failures use
:class:`ProblemDetail`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs».

    Error Codes:
        - ``INVALID_INPUT`` (400): unparseable date with strict cutoff enabled
        - ``UNAUTHORIZED`` (401): missing or invalid API key
        - ``INTERNAL`` (500): a store rejected a statement
        - ``UNAVAILABLE`` (503): a store could not be reached
        - ``CANCELLED`` (504): the sweep stopped before finishing
    """

    type: str = Field(default="about:blank", description="Error type URI (usually 'about:blank')")
    title: str = Field(description="Short human-readable error summary")
    status: int = Field(description="HTTP status code")
    detail: str = Field(default="", description="Human-readable explanation of the error")
    instance: str = Field(default="", description="URI of the failing request")
    errors: list[dict[str, Any]] = Field(default_factory=list, description="Nested error details")


class StepCountSchema(BaseModel):
    """Rows (or keys) removed by one cascade step."""

    step: str
    store: str
    deleted: int
    elapsed_ms: float = 0.0


class SweepDiagnosticsSchema(BaseModel):
    """Per-step counts returned when ``?diagnostics=true``."""

    cutoff: str | None = None
    total_deleted: int = 0
    skipped: bool = False
    steps: list[StepCountSchema] = Field(default_factory=list)


class ClearBeforeResponse(BaseModel):
    """Success envelope of the purge trigger."""

    success: bool = True
    data: SweepDiagnosticsSchema | None = None


class TableCountSchema(BaseModel):
    """Row count of one metrics table."""

    store: str
    table: str
    count: int


class TableCountsResponse(BaseModel):
    data: list[TableCountSchema]
    elapsed_ms: float = 0.0
