"""
Store deleter -- apply one deletion step atomically.

Relational steps compile to a single ``DELETE ... WHERE <predicate>``
statement followed by a commit. The click-buoy step selects the text of
every query that has no live reference, derives the counter keys and hands
them to the key-value store in one ``delete_many`` call.

Driver failures never escape raw: a lost connection becomes
:class:`StoreUnavailableError`, anything the engine rejects becomes
:class:`QueryExecutionError`, both carrying step/table/cutoff context.

Examples:
    >>> deleter = StoreDeleter(conn, MetricsSchema(), InMemoryKeyValueStore())
    >>> deleter.execute(DEFAULT_PLAN[0], "2024-01-01 00:00:00")
    StepResult(step='clicks', store='clicks', deleted=3, elapsed_ms=0.4)

Tags:
    retention, delete, sql, kvstore, searchmetrics
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from searchmetrics.core.dialect import Dialect, get_dialect
from searchmetrics.core.errors import SearchMetricsError, StoreError
from searchmetrics.core.hashing import KeyFunction, content_hash, counter_key
from searchmetrics.core.kvstore import KeyValueStore
from searchmetrics.core.logging import get_logger
from searchmetrics.core.protocols import Connection
from searchmetrics.core.schema import MetricsSchema
from searchmetrics.core.store_errors import STORE_EXCEPTIONS, classify_store_error, safe_rollback
from searchmetrics.retention.planner import DeletionStep

logger = get_logger(__name__)


@dataclass(frozen=True)
class StepResult:
    """Outcome of one executed step."""

    step: str
    store: str
    deleted: int
    elapsed_ms: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step,
            "store": self.store,
            "deleted": self.deleted,
            "elapsed_ms": self.elapsed_ms,
        }


class StoreDeleter:
    """Executes :class:`DeletionStep` objects against the configured stores.

    Args:
        conn: Relational connection (``Connection`` protocol).
        schema: Table layout; supplies the physical table names.
        kv_store: Store holding the click-buoy counters.
        counter_prefix: Click-buoy key prefix (default ``<prefix>click_buoy``).
        dialect: Placeholder dialect (detected from *conn* when omitted).
        key_fn: Content hash used to derive counter keys.
    """

    def __init__(
        self,
        conn: Connection,
        schema: MetricsSchema,
        kv_store: KeyValueStore,
        *,
        counter_prefix: str | None = None,
        dialect: Dialect | None = None,
        key_fn: KeyFunction = content_hash,
    ):
        self._conn = conn
        self._schema = schema
        self._kv = kv_store
        self._counter_prefix = counter_prefix or f"{schema.prefix}click_buoy"
        self._dialect = dialect or get_dialect(conn)
        self._key_fn = key_fn

    @property
    def schema(self) -> MetricsSchema:
        return self._schema

    @property
    def counter_prefix(self) -> str:
        return self._counter_prefix

    # ── SQL rendering ────────────────────────────────────────────────

    def compile(self, step: DeletionStep, cutoff: str) -> tuple[str, tuple[Any, ...]]:
        """Render the step's statement and parameters.

        Relational steps yield a ``DELETE``; the counter step yields the
        ``SELECT`` of the query texts whose keys are to be removed.
        """
        table = self._schema.table(step.source if step.is_counter else step.store)
        params: list[Any] = []
        clauses: list[str] = []

        if step.filter_column:
            clauses.append(f"{table}.{step.filter_column} = {self._dialect.placeholder(len(params))}")
            params.append(step.filter_value)

        clauses.append(step.policy.where(table, self._schema.searches, self._dialect.placeholder(len(params))))
        params.append(cutoff)
        where = " AND ".join(clauses)

        if step.is_counter:
            sql = f"SELECT {table}.{step.text_column} FROM {table} WHERE {where}"  # noqa: S608
        else:
            sql = f"DELETE FROM {table} WHERE {where}"  # noqa: S608
        return sql, tuple(params)

    # ── Execution ────────────────────────────────────────────────────

    def execute(self, step: DeletionStep, cutoff: str) -> StepResult:
        """Apply *step* at *cutoff* and return the number of entries removed.

        Raises:
            StoreUnavailableError: The store could not be reached.
            QueryExecutionError: The store rejected the statement.
        """
        started = time.perf_counter()
        sql, params = self.compile(step, cutoff)
        table = self._counter_prefix if step.is_counter else self._schema.table(step.store)

        try:
            if step.is_counter:
                deleted = self._delete_counters(sql, params)
            else:
                deleted = self._delete_rows(sql, params)
        except StoreError as exc:
            self._fail(step, table, cutoff, exc)
            raise exc.with_context(step=step.name, table=table, cutoff=cutoff)
        except STORE_EXCEPTIONS as exc:
            safe_rollback(self._conn)
            error = classify_store_error(exc, f"Step {step.name!r} failed")
            self._fail(step, table, cutoff, error)
            raise error.with_context(step=step.name, table=table, cutoff=cutoff) from exc

        elapsed_ms = round((time.perf_counter() - started) * 1000, 3)
        logger.info(
            "retention.step_completed",
            step=step.name,
            table=table,
            deleted=deleted,
            elapsed_ms=elapsed_ms,
            cutoff=cutoff,
        )
        return StepResult(step=step.name, store=step.store, deleted=deleted, elapsed_ms=elapsed_ms)

    def _delete_rows(self, sql: str, params: tuple[Any, ...]) -> int:
        self._conn.execute(sql, params)
        deleted = max(self._conn.rowcount, 0)
        self._conn.commit()
        return deleted

    def _delete_counters(self, sql: str, params: tuple[Any, ...]) -> int:
        self._conn.execute(sql, params)
        rows = self._conn.fetchall()
        self._conn.commit()

        keys = sorted({counter_key(self._counter_prefix, row[0], self._key_fn) for row in rows if row[0] is not None})
        if not keys:
            return 0
        return self._kv.delete_many(keys)

    def _fail(self, step: DeletionStep, table: str, cutoff: str, error: SearchMetricsError) -> None:
        logger.error(
            "retention.step_failed",
            step=step.name,
            table=table,
            cutoff=cutoff,
            error_type=type(error).__name__,
            error=error.message,
            retryable=error.retryable,
        )


__all__ = ["StepResult", "StoreDeleter"]
