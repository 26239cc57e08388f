"""
Cascade planner -- the fixed order in which stores are pruned.

Every dependent store is pruned while the rows it is judged against still
exist; the searches table, which every other predicate reads, goes last::

    1 clicks       ExpiredByTimestamp
    2 meta         DeleteIfOrphanedOrExpired   meta.hashid  -> searches.hash
    3 click_buoy   DeleteIfNoLiveReference     queries.id   <- searches.query
                   (keys derived from queries.query)
    4 queries      DeleteIfNoLiveReference     queries.id   <- searches.query
    5 hash_ids     DeleteIfOrphanedOrExpired   ids.id       -> searches.hash
    6 uid_ids      DeleteIfNoLiveReference     ids.id       <- searches.uid
    7 searches     ExpiredByTimestamp

Reordering changes the result (pruning searches first would orphan and then
over-delete), so :meth:`CascadePlanner.validate` rejects any plan where a
step reads a store an earlier step already pruned.

Tags:
    retention, cascade, planner, ordering, searchmetrics
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from searchmetrics.core.errors import InvalidConfigError
from searchmetrics.core.schema import ID_TYPE_HASH, ID_TYPE_UID
from searchmetrics.retention.policies import (
    DeleteIfNoLiveReference,
    DeleteIfOrphanedOrExpired,
    DeletionPolicy,
    ExpiredByTimestamp,
)

COUNTER_STORE = "click_buoy"


@dataclass(frozen=True)
class DeletionStep:
    """One unit of the cascade.

    Attributes:
        name: Step name, unique within a plan.
        store: Logical store pruned by the step (``click_buoy`` for the
            external counter store).
        policy: Rule deciding which rows are deletable.
        source: For the counter step, the relational store whose rows the
            policy is evaluated on and whose text column yields the keys.
        text_column: Column of ``source`` holding the text to hash.
        filter_column: Optional equality filter restricting the target rows.
        filter_value: Value for ``filter_column``.
    """

    name: str
    store: str
    policy: DeletionPolicy
    source: str | None = None
    text_column: str | None = None
    filter_column: str | None = None
    filter_value: str | None = None

    @property
    def is_counter(self) -> bool:
        return self.store == COUNTER_STORE

    @property
    def reads(self) -> tuple[str, ...]:
        """Logical stores that must still be intact when the step runs."""
        stores = list(self.policy.depends_on)
        if self.source:
            stores.append(self.source)
        return tuple(stores)


DEFAULT_PLAN: tuple[DeletionStep, ...] = (
    DeletionStep("clicks", "clicks", ExpiredByTimestamp()),
    DeletionStep("meta", "meta", DeleteIfOrphanedOrExpired("hashid", "hash")),
    DeletionStep(
        COUNTER_STORE,
        COUNTER_STORE,
        DeleteIfNoLiveReference("id", "query"),
        source="queries",
        text_column="query",
    ),
    DeletionStep("queries", "queries", DeleteIfNoLiveReference("id", "query")),
    DeletionStep(
        "hash_ids",
        "ids",
        DeleteIfOrphanedOrExpired("id", "hash"),
        filter_column="type",
        filter_value=ID_TYPE_HASH,
    ),
    DeletionStep(
        "uid_ids",
        "ids",
        DeleteIfNoLiveReference("id", "uid"),
        filter_column="type",
        filter_value=ID_TYPE_UID,
    ),
    DeletionStep("searches", "searches", ExpiredByTimestamp()),
)


class CascadePlanner:
    """Produces the ordered deletion steps of a sweep.

    Example:
        planner = CascadePlanner()
        [step.name for step in planner.plan()]
        # ['clicks', 'meta', 'click_buoy', 'queries', 'hash_ids', 'uid_ids', 'searches']
    """

    def __init__(self, steps: Sequence[DeletionStep] | None = None):
        self._steps = tuple(steps) if steps is not None else DEFAULT_PLAN
        self.validate(self._steps)

    def plan(self) -> tuple[DeletionStep, ...]:
        return self._steps

    def __iter__(self) -> Iterator[DeletionStep]:
        return iter(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    @staticmethod
    def validate(steps: Sequence[DeletionStep]) -> None:
        """Reject plans that would read a store after pruning it.

        Raises:
            InvalidConfigError: Empty plan, duplicate step names, a step that
                reads an already-pruned store, or searches not pruned last.
        """
        if not steps:
            raise InvalidConfigError("plan", [], "A retention plan needs at least one step")

        seen: set[str] = set()
        pruned: set[str] = set()
        for step in steps:
            if step.name in seen:
                raise InvalidConfigError("plan", step.name, f"Duplicate step name {step.name!r}")
            seen.add(step.name)

            stale = [store for store in step.reads if store in pruned]
            if stale:
                raise InvalidConfigError(
                    "plan",
                    step.name,
                    f"Step {step.name!r} reads {', '.join(stale)} after it was pruned",
                )
            if step.is_counter and not (step.source and step.text_column):
                raise InvalidConfigError("plan", step.name, f"Counter step {step.name!r} needs source and text_column")
            pruned.add(step.store)

        if "searches" in pruned and steps[-1].store != "searches":
            raise InvalidConfigError("plan", steps[-1].name, "The searches store must be pruned by the last step")


__all__ = [
    "COUNTER_STORE",
    "DEFAULT_PLAN",
    "CascadePlanner",
    "DeletionStep",
]
