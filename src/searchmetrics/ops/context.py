"""
Request-scoped context for operations.

Every operation function receives an :class:`OperationContext` as its first
argument. The context carries the database connection, the settings the
collaborators are built from, an optional pre-built key-value store, and
the caller identity used in logs.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from typing import Any

from searchmetrics.core.kvstore import KeyValueStore, build_kv_store
from searchmetrics.core.protocols import Connection
from searchmetrics.core.schema import MetricsSchema
from searchmetrics.core.settings import SearchMetricsSettings


@dataclass
class OperationContext:
    """Context passed to every operation function.

    Attributes:
        conn: Database connection satisfying :class:`searchmetrics.core.protocols.Connection`.
        settings: Table prefix, key-value backend and retention switches.
        kv_store: Click-buoy store; built from ``settings`` on first use when omitted.
        request_id: Unique ID for this operation invocation (auto-generated).
        caller: Origin of the request -- ``"api"``, ``"cli"`` or ``"sdk"``.
        dry_run: When ``True``, operations return a preview without side effects.
        cancel_event: Set by the host (e.g. on shutdown) to stop a sweep between steps.
        metadata: Arbitrary key/value pairs forwarded to logging.
    """

    conn: Connection
    settings: SearchMetricsSettings = field(default_factory=SearchMetricsSettings)
    kv_store: KeyValueStore | None = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "sdk"
    dry_run: bool = False
    cancel_event: threading.Event | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def schema(self) -> MetricsSchema:
        return MetricsSchema(self.settings.table_prefix)

    def get_kv_store(self) -> KeyValueStore:
        """Return the configured click-buoy store, building it once."""
        if self.kv_store is None:
            self.kv_store = build_kv_store(self.settings, self.conn)
        return self.kv_store
