"""
Key-value store abstraction for click-buoy counters.

The search plugin keeps one counter per query outside the relational
metrics tables, addressed by a key derived from the query text. Retention
only ever needs to remove those keys, but tests and fixtures need to write
and read them too, so every backend offers the same small contract.

Architecture:
    ::

        KeyValueStore (Protocol)
        ├── InMemoryKeyValueStore  : tests, single process
        ├── TableKeyValueStore     : postmeta-shaped relational table
        └── RedisKeyValueStore     : Redis, counters as plain keys

        API: get(key) → value | None
             set(key, value)
             delete(key) → int
             delete_many(keys) → int     (one atomic operation)
             exists(key) → bool

Examples:
    >>> store = InMemoryKeyValueStore()
    >>> store.set("wp_swpext_metrics_click_buoy_5d41...", "3")
    >>> store.delete_many(["wp_swpext_metrics_click_buoy_5d41..."])
    1

Guardrails:
    ❌ DON'T: Delete keys one call at a time during a sweep
    ✅ DO: Collect the keys and call ``delete_many`` once

Tags:
    kvstore, counters, click-buoy, redis, postmeta, searchmetrics
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

import redis
import redis.exceptions

from searchmetrics.core.errors import ErrorCategory, InvalidConfigError
from searchmetrics.core.logging import get_logger
from searchmetrics.core.protocols import Connection
from searchmetrics.core.schema import render_table_ddl, server_name, validate_identifier
from searchmetrics.core.settings import SearchMetricsSettings
from searchmetrics.core.store_errors import STORE_EXCEPTIONS, classify_store_error, safe_rollback

logger = get_logger(__name__)

KV_BACKENDS = ("table", "redis", "memory")

# Keys per DELETE ... IN (...) statement in the table backend
_DELETE_CHUNK = 500


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for click-buoy counter storage.

    Keys and values are strings.
    """

    def get(self, key: str) -> str | None:
        """Return the value for *key*, or ``None`` when absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*."""
        ...

    def delete(self, key: str) -> int:
        """Remove *key*; returns how many entries were removed."""
        ...

    def delete_many(self, keys: Iterable[str]) -> int:
        """Remove every key in *keys* as one atomic operation.

        Keys that do not exist are ignored.

        Returns:
            Number of entries removed.
        """
        ...

    def exists(self, key: str) -> bool:
        """Check whether *key* is present."""
        ...


# ------------------------------------------------------------------ #
# In-Memory
# ------------------------------------------------------------------ #


class InMemoryKeyValueStore:
    """Dictionary-backed store for tests and single-process use."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._store: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def set(self, key: str, value: str) -> None:
        self._store[key] = value

    def delete(self, key: str) -> int:
        return 1 if self._store.pop(key, None) is not None else 0

    def delete_many(self, keys: Iterable[str]) -> int:
        removed = 0
        for key in set(keys):
            if key in self._store:
                del self._store[key]
                removed += 1
        return removed

    def exists(self, key: str) -> bool:
        return key in self._store

    def keys(self) -> list[str]:
        """All stored keys, sorted."""
        return sorted(self._store)

    def __len__(self) -> int:
        return len(self._store)


# ------------------------------------------------------------------ #
# Relational table (postmeta layout)
# ------------------------------------------------------------------ #


class TableKeyValueStore:
    """Key-value store on a ``postmeta``-shaped table.

    Columns: ``meta_id``, ``post_id``, ``meta_key``, ``meta_value``. Several
    rows may share a key (one per post); deleting a key removes all of them.

    Args:
        conn: Connection satisfying the ``Connection`` protocol.
        table: Physical table name (default ``wp_postmeta``).
    """

    def __init__(self, conn: Connection, *, table: str = "wp_postmeta"):
        self._conn = conn
        self._table = validate_identifier(table, key="kv_table")

    @property
    def table(self) -> str:
        return self._table

    def create_table(self, *, server: str | None = None) -> None:
        """Create the table and its key index (idempotent)."""
        columns = ("meta_id {pk}", "post_id {int} NOT NULL DEFAULT 0", "meta_key {key}", "meta_value {text}")
        for statement in render_table_ddl(
            self._table, columns, {"meta_key": ("meta_key",)}, server or server_name(self._conn)
        ):
            self._conn.execute(statement)
        self._conn.commit()

    def get(self, key: str) -> str | None:
        try:
            self._conn.execute(
                f"SELECT meta_value FROM {self._table} WHERE meta_key = ? ORDER BY meta_id LIMIT 1",  # noqa: S608
                (key,),
            )
            row = self._conn.fetchone()
        except STORE_EXCEPTIONS as exc:
            safe_rollback(self._conn)
            raise classify_store_error(exc, f"Reading {key!r}", category=ErrorCategory.STORAGE) from exc
        return row[0] if row else None

    def set(self, key: str, value: str, *, post_id: int = 0) -> None:
        """Insert a row for *key* attached to *post_id*."""
        try:
            self._conn.execute(
                f"INSERT INTO {self._table} (post_id, meta_key, meta_value) VALUES (?, ?, ?)",  # noqa: S608
                (post_id, key, value),
            )
            self._conn.commit()
        except STORE_EXCEPTIONS as exc:
            safe_rollback(self._conn)
            raise classify_store_error(exc, f"Writing {key!r}", category=ErrorCategory.STORAGE) from exc

    def delete(self, key: str) -> int:
        return self.delete_many([key])

    def delete_many(self, keys: Iterable[str]) -> int:
        unique = sorted(set(keys))
        if not unique:
            return 0

        removed = 0
        try:
            for start in range(0, len(unique), _DELETE_CHUNK):
                chunk = unique[start : start + _DELETE_CHUNK]
                marks = ", ".join("?" for _ in chunk)
                self._conn.execute(
                    f"DELETE FROM {self._table} WHERE meta_key IN ({marks})",  # noqa: S608
                    tuple(chunk),
                )
                removed += max(self._conn.rowcount, 0)
            self._conn.commit()
        except STORE_EXCEPTIONS as exc:
            safe_rollback(self._conn)
            raise classify_store_error(
                exc, f"Deleting {len(unique)} keys from {self._table}", category=ErrorCategory.STORAGE
            ) from exc
        return removed

    def exists(self, key: str) -> bool:
        return self.get(key) is not None


# ------------------------------------------------------------------ #
# Redis
# ------------------------------------------------------------------ #


class RedisKeyValueStore:
    """Redis-backed store; counters are plain string keys.

    Example:
        store = RedisKeyValueStore("redis://localhost:6379/0")
        store.delete_many(["wp_swpext_metrics_click_buoy_<md5>"])
    """

    def __init__(self, url: str = "redis://localhost:6379/0", *, client: redis.Redis | None = None):
        self._client = client if client is not None else redis.from_url(url, decode_responses=True)

    def _wrap(self, exc: redis.exceptions.RedisError, message: str) -> Exception:
        return classify_store_error(exc, message, category=ErrorCategory.STORAGE)

    def get(self, key: str) -> str | None:
        try:
            value = self._client.get(key)
        except redis.exceptions.RedisError as exc:
            raise self._wrap(exc, f"Reading {key!r}") from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        try:
            self._client.set(key, value)
        except redis.exceptions.RedisError as exc:
            raise self._wrap(exc, f"Writing {key!r}") from exc

    def delete(self, key: str) -> int:
        return self.delete_many([key])

    def delete_many(self, keys: Iterable[str]) -> int:
        unique = sorted(set(keys))
        if not unique:
            return 0
        try:
            return int(self._client.delete(*unique))
        except redis.exceptions.RedisError as exc:
            raise self._wrap(exc, f"Deleting {len(unique)} keys") from exc

    def exists(self, key: str) -> bool:
        try:
            return bool(self._client.exists(key))
        except redis.exceptions.RedisError as exc:
            raise self._wrap(exc, f"Checking {key!r}") from exc


def build_kv_store(settings: SearchMetricsSettings, conn: Connection | None = None) -> KeyValueStore:
    """Build the key-value store selected by ``settings.kv_backend``.

    Raises:
        InvalidConfigError: Unknown backend, or ``table`` without a connection.
    """
    backend = settings.kv_backend.lower()
    if backend == "memory":
        return InMemoryKeyValueStore()
    if backend == "redis":
        logger.debug("kvstore.redis", url=settings.redis_url)
        return RedisKeyValueStore(settings.redis_url)
    if backend == "table":
        if conn is None:
            raise InvalidConfigError("kv_backend", backend, "The table key-value backend needs a database connection")
        return TableKeyValueStore(conn, table=settings.kv_table)
    raise InvalidConfigError(
        "kv_backend",
        settings.kv_backend,
        f"Unknown kv_backend {settings.kv_backend!r}; expected one of {', '.join(KV_BACKENDS)}",
    )


__all__ = [
    "KV_BACKENDS",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "RedisKeyValueStore",
    "TableKeyValueStore",
    "build_kv_store",
]
