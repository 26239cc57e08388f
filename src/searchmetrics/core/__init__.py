"""searchmetrics.core -- shared primitives for the retention subsystem.

Architecture::

    Layer 1 -- Errors & Settings
        errors.py          Structured error hierarchy (SearchMetricsError)
        store_errors.py    Driver exception -> StoreError classification
        settings.py        SearchMetricsSettings (pydantic-settings)
        logging.py         structlog configuration

    Layer 2 -- Database & Storage
        protocols.py       Connection protocol
        dialect.py         Placeholder dialects
        connection.py      Connection factory (create_connection)
        sqlite_conn.py     sqlite3 adapter
        orm_bridge.py      SQLAlchemy Session adapter
        schema.py          MetricsSchema (table names, DDL)
        kvstore.py         Click-buoy key-value stores

    Layer 3 -- Keys
        hashing.py         content_hash / counter_key
"""

from searchmetrics.core.errors import (
    InvalidConfigError,
    InvalidCutoffError,
    QueryExecutionError,
    SearchMetricsError,
    StoreError,
    StoreUnavailableError,
    SweepCancelledError,
)
from searchmetrics.core.hashing import content_hash, counter_key
from searchmetrics.core.kvstore import (
    InMemoryKeyValueStore,
    KeyValueStore,
    RedisKeyValueStore,
    TableKeyValueStore,
    build_kv_store,
)
from searchmetrics.core.protocols import Connection
from searchmetrics.core.schema import MetricsSchema
from searchmetrics.core.settings import DEFAULT_TABLE_PREFIX, SearchMetricsSettings

__all__ = [
    "DEFAULT_TABLE_PREFIX",
    "Connection",
    "InMemoryKeyValueStore",
    "InvalidConfigError",
    "InvalidCutoffError",
    "KeyValueStore",
    "MetricsSchema",
    "QueryExecutionError",
    "RedisKeyValueStore",
    "SearchMetricsError",
    "SearchMetricsSettings",
    "StoreError",
    "StoreUnavailableError",
    "SweepCancelledError",
    "TableKeyValueStore",
    "build_kv_store",
    "content_hash",
    "counter_key",
]
