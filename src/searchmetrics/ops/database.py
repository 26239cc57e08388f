"""
Database operations.

Thin wrappers around :class:`~searchmetrics.core.schema.MetricsSchema` for
table creation and row counts.
"""

from __future__ import annotations

from searchmetrics.core.errors import SearchMetricsError
from searchmetrics.core.kvstore import TableKeyValueStore
from searchmetrics.core.logging import get_logger
from searchmetrics.core.store_errors import STORE_EXCEPTIONS, classify_store_error
from searchmetrics.ops.context import OperationContext
from searchmetrics.ops.requests import DatabaseInitRequest
from searchmetrics.ops.responses import DatabaseInitResult, TableCount
from searchmetrics.ops.result import OperationResult, start_timer

logger = get_logger(__name__)


def initialize_database(
    ctx: OperationContext,
    request: DatabaseInitRequest | None = None,
) -> OperationResult[DatabaseInitResult]:
    """Create the five metrics tables and, optionally, the key-value table (idempotent)."""
    request = request or DatabaseInitRequest()
    timer = start_timer()

    schema = ctx.schema
    tables = sorted(schema.tables.values())
    kv_table = ctx.settings.kv_table if request.create_kv_table and ctx.settings.kv_backend == "table" else None

    if ctx.dry_run:
        return OperationResult.ok(
            DatabaseInitResult(tables_created=tables, kv_table=kv_table, dry_run=True),
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        schema.create_tables(ctx.conn)
        if kv_table:
            TableKeyValueStore(ctx.conn, table=kv_table).create_table()
    except STORE_EXCEPTIONS as exc:
        error = classify_store_error(exc, "Creating the metrics tables failed")
        logger.error("op_failed", op="initialize_database", request_id=ctx.request_id, **error.to_dict())
        return OperationResult.from_error(error, elapsed_ms=timer.elapsed_ms)
    except SearchMetricsError as exc:
        logger.error("op_failed", op="initialize_database", request_id=ctx.request_id, **exc.to_dict())
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)

    logger.info("database.initialized", tables=tables, kv_table=kv_table, request_id=ctx.request_id)
    return OperationResult.ok(
        DatabaseInitResult(tables_created=tables, kv_table=kv_table),
        elapsed_ms=timer.elapsed_ms,
    )


def get_table_counts(ctx: OperationContext) -> OperationResult[list[TableCount]]:
    """Return row counts for the metrics tables."""
    timer = start_timer()
    schema = ctx.schema
    counts = [
        TableCount(store=store, table=schema.table(store), count=count)
        for store, count in schema.table_counts(ctx.conn).items()
    ]
    return OperationResult.ok(counts, elapsed_ms=timer.elapsed_ms)
