"""
Retention orchestrator -- run one sweep of the cascade.

A sweep takes a caller-supplied date, normalizes it once to a UTC
``YYYY-MM-DD HH:MM:SS`` cutoff string and runs every planned step with that
same string, in order. A step that deletes nothing does not end the sweep.

Failure model:
    - Unparseable date: logged and ignored (``None`` returned, nothing
      deleted) unless ``strict=True``, which raises ``InvalidCutoffError``.
    - Store failure: the sweep stops and the error propagates. Steps that
      already committed stay committed; a rerun with the same cutoff
      completes the work.
    - Cancellation / deadline: checked before each step, never while a
      statement runs; raises ``SweepCancelledError`` naming the completed
      steps.

Examples:
    >>> orchestrator = RetentionOrchestrator(deleter)
    >>> report = orchestrator.sweep("2024-01-01")
    >>> report.cutoff
    '2024-01-01 00:00:00'
    >>> orchestrator.sweep("not a date") is None
    True

Tags:
    retention, sweep, cutoff, orchestrator, searchmetrics
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Any

from dateutil import parser as date_parser

from searchmetrics.core.errors import InvalidCutoffError, StoreError, SweepCancelledError
from searchmetrics.core.logging import get_logger
from searchmetrics.retention.deleter import StepResult, StoreDeleter
from searchmetrics.retention.planner import CascadePlanner

logger = get_logger(__name__)


# ── Cutoff handling ──────────────────────────────────────────────────────


def parse_cutoff(value: Any) -> datetime:
    """Parse a caller-supplied date into an aware UTC ``datetime``.

    Accepts ``datetime`` and ``date`` objects and free-text strings
    (``"2024-01-01"``, ``"2024-01-01T12:30:00+02:00"``, ``"March 3 2024"``).
    Naive values are taken as UTC; microseconds are dropped.

    Raises:
        InvalidCutoffError: Empty, unparseable or out-of-range input.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidCutoffError(value, "Cutoff date is empty")
        try:
            today = datetime.now(UTC).replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)
            parsed = date_parser.parse(text, default=today)
        except (ValueError, OverflowError) as exc:
            raise InvalidCutoffError(value, cause=exc) from exc
    else:
        raise InvalidCutoffError(value, f"Unsupported cutoff type: {type(value).__name__}")

    try:
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        else:
            parsed = parsed.astimezone(UTC)
    except (ValueError, OverflowError) as exc:
        raise InvalidCutoffError(value, cause=exc) from exc
    return parsed.replace(microsecond=0)


def format_cutoff(cutoff: datetime) -> str:
    """Render *cutoff* in the stored timestamp format, zero-padded."""
    if cutoff.tzinfo is not None:
        cutoff = cutoff.astimezone(UTC)
    return (
        f"{cutoff.year:04d}-{cutoff.month:02d}-{cutoff.day:02d} "
        f"{cutoff.hour:02d}:{cutoff.minute:02d}:{cutoff.second:02d}"
    )


def cutoff_for_days(days: int, *, now: datetime | None = None) -> datetime:
    """Cutoff that keeps the last *days* days."""
    if days < 0:
        raise InvalidCutoffError(days, f"Retention days must be >= 0, got {days}")
    now = now or datetime.now(UTC)
    return (now - timedelta(days=days)).replace(microsecond=0)


# ── Report ───────────────────────────────────────────────────────────────


@dataclass
class SweepReport:
    """Diagnostic summary of a completed sweep."""

    cutoff: str
    steps: list[StepResult] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def total_deleted(self) -> int:
        return sum(result.deleted for result in self.steps)

    def deleted_by_step(self) -> dict[str, int]:
        return {result.step: result.deleted for result in self.steps}

    def to_dict(self) -> dict[str, Any]:
        return {
            "cutoff": self.cutoff,
            "total_deleted": self.total_deleted,
            "elapsed_ms": self.elapsed_ms,
            "steps": [result.to_dict() for result in self.steps],
        }


# ── Orchestrator ─────────────────────────────────────────────────────────


class RetentionOrchestrator:
    """Runs the cascade for one cutoff.

    Args:
        deleter: Executes individual steps.
        planner: Supplies the step order (default plan when omitted).
        clock: Monotonic clock used for deadlines.
    """

    def __init__(
        self,
        deleter: StoreDeleter,
        planner: CascadePlanner | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._deleter = deleter
        self._planner = planner or CascadePlanner()
        self._clock = clock

    @property
    def planner(self) -> CascadePlanner:
        return self._planner

    def sweep(
        self,
        value: Any,
        *,
        strict: bool = False,
        deadline: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> SweepReport | None:
        """Delete everything older than *value* across all stores.

        Args:
            value: Cutoff date (string, ``date`` or ``datetime``).
            strict: Raise on an unparseable date instead of returning ``None``.
            deadline: Value of ``clock()`` after which no further step starts.
            cancel_event: Set to stop the sweep before its next step.

        Returns:
            SweepReport, or ``None`` when the date was invalid and not strict.

        Raises:
            InvalidCutoffError: Invalid date with ``strict=True``.
            SweepCancelledError: Cancelled or past the deadline between steps.
            StoreError: A step failed; earlier steps remain applied.
        """
        try:
            cutoff = format_cutoff(parse_cutoff(value))
        except InvalidCutoffError as exc:
            logger.warning("retention.invalid_cutoff", value=repr(value), error=exc.message, strict=strict)
            if strict:
                raise
            return None

        started = time.perf_counter()
        report = SweepReport(cutoff=cutoff)
        for step in self._planner.plan():
            self._check_continue(report, cancel_event, deadline)
            try:
                report.steps.append(self._deleter.execute(step, cutoff))
            except StoreError:
                logger.error(
                    "retention.sweep_failed",
                    cutoff=cutoff,
                    failed_step=step.name,
                    completed_steps=[result.step for result in report.steps],
                )
                raise

        report.elapsed_ms = round((time.perf_counter() - started) * 1000, 3)
        logger.info(
            "retention.sweep_completed",
            cutoff=cutoff,
            total_deleted=report.total_deleted,
            deleted=report.deleted_by_step(),
            elapsed_ms=report.elapsed_ms,
        )
        return report

    def _check_continue(
        self,
        report: SweepReport,
        cancel_event: threading.Event | None,
        deadline: float | None,
    ) -> None:
        reason = None
        if cancel_event is not None and cancel_event.is_set():
            reason = "cancelled"
        elif deadline is not None and self._clock() >= deadline:
            reason = "deadline exceeded"
        if reason is None:
            return

        completed = [result.step for result in report.steps]
        logger.warning("retention.sweep_cancelled", cutoff=report.cutoff, reason=reason, completed_steps=completed)
        raise SweepCancelledError(
            f"Sweep {reason} after {len(completed)} step(s)",
            completed_steps=completed,
        ).with_context(cutoff=report.cutoff)


__all__ = [
    "RetentionOrchestrator",
    "SweepReport",
    "cutoff_for_days",
    "format_cutoff",
    "parse_cutoff",
]
