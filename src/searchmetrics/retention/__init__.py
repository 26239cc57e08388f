"""searchmetrics.retention -- the retention cascade.

``CascadePlanner`` fixes the step order, each ``DeletionStep`` carries a
named policy, ``StoreDeleter`` applies one step atomically and
``RetentionOrchestrator`` runs a whole sweep for one cutoff.
"""

from searchmetrics.retention.deleter import StepResult, StoreDeleter
from searchmetrics.retention.orchestrator import (
    RetentionOrchestrator,
    SweepReport,
    cutoff_for_days,
    format_cutoff,
    parse_cutoff,
)
from searchmetrics.retention.planner import COUNTER_STORE, DEFAULT_PLAN, CascadePlanner, DeletionStep
from searchmetrics.retention.policies import (
    DeleteIfNoLiveReference,
    DeleteIfOrphanedOrExpired,
    DeletionPolicy,
    ExpiredByTimestamp,
)

__all__ = [
    "COUNTER_STORE",
    "DEFAULT_PLAN",
    "CascadePlanner",
    "DeleteIfNoLiveReference",
    "DeleteIfOrphanedOrExpired",
    "DeletionPolicy",
    "DeletionStep",
    "ExpiredByTimestamp",
    "RetentionOrchestrator",
    "StepResult",
    "StoreDeleter",
    "SweepReport",
    "cutoff_for_days",
    "format_cutoff",
    "parse_cutoff",
]
