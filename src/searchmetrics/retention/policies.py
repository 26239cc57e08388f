"""
Deletion policies for the retention cascade.

A policy decides, for one row of one store, whether the row is deletable at
a cutoff ``T``. Each policy has two renderings of the same rule:

* ``where()`` -- an SQL predicate over the target table with exactly one
  placeholder for the cutoff, used by the store deleter;
* ``decide()`` -- the rule evaluated in Python over the timestamps of the
  referencing Search rows, so the semantics can be checked without a
  database.

Policies:
    ExpiredByTimestamp          tstamp < T
    DeleteIfOrphanedOrExpired   no matching Search, OR some matching Search
                                has tstamp < T (a live match does not protect)
    DeleteIfNoLiveReference     no matching Search with tstamp >= T
                                (one live match always protects)

The two reference policies are not interchangeable: for a row referenced by
one expired and one live Search, ``DeleteIfOrphanedOrExpired`` deletes and
``DeleteIfNoLiveReference`` keeps.

Tags:
    retention, policy, predicate, cascade, searchmetrics
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import ClassVar, Protocol, runtime_checkable

from searchmetrics.core.schema import validate_identifier


@runtime_checkable
class DeletionPolicy(Protocol):
    """Contract shared by every policy."""

    name: ClassVar[str]

    @property
    def depends_on(self) -> tuple[str, ...]:
        """Logical stores the predicate reads besides the target table."""
        ...

    def where(self, table: str, searches: str, placeholder: str) -> str:
        """Render the predicate for *table* with one cutoff *placeholder*."""
        ...


@dataclass(frozen=True)
class ExpiredByTimestamp:
    """Delete rows whose own timestamp is strictly older than the cutoff."""

    name: ClassVar[str] = "expired_by_timestamp"

    column: str = "tstamp"

    def __post_init__(self) -> None:
        validate_identifier(self.column, key="column")

    @property
    def depends_on(self) -> tuple[str, ...]:
        return ()

    def where(self, table: str, searches: str, placeholder: str) -> str:  # noqa: ARG002
        return f"{table}.{self.column} < {placeholder}"

    def decide(self, tstamp: str, cutoff: str) -> bool:
        return tstamp < cutoff


@dataclass(frozen=True)
class _SearchReference:
    """Join between a column of the target table and a column of searches.

    Attributes:
        column: Column of the target table (e.g. ``hashid``).
        search_column: Column of the searches table it matches (e.g. ``hash``).
    """

    column: str
    search_column: str

    def __post_init__(self) -> None:
        validate_identifier(self.column, key="column")
        validate_identifier(self.search_column, key="search_column")

    @property
    def depends_on(self) -> tuple[str, ...]:
        return ("searches",)

    def _match(self, table: str) -> str:
        return f"s.{self.search_column} = {table}.{self.column}"


@dataclass(frozen=True)
class DeleteIfOrphanedOrExpired(_SearchReference):
    """Delete when no Search matches, or when any matching Search is expired."""

    name: ClassVar[str] = "delete_if_orphaned_or_expired"

    def where(self, table: str, searches: str, placeholder: str) -> str:
        match = self._match(table)
        return (
            f"(NOT EXISTS (SELECT 1 FROM {searches} s WHERE {match})"
            f" OR EXISTS (SELECT 1 FROM {searches} s WHERE {match} AND s.tstamp < {placeholder}))"
        )

    def decide(self, references: Sequence[str], cutoff: str) -> bool:
        """*references* are the tstamps of the matching Search rows."""
        if not references:
            return True
        return any(tstamp < cutoff for tstamp in references)


@dataclass(frozen=True)
class DeleteIfNoLiveReference(_SearchReference):
    """Delete unless at least one matching Search is at or after the cutoff."""

    name: ClassVar[str] = "delete_if_no_live_reference"

    def where(self, table: str, searches: str, placeholder: str) -> str:
        return f"NOT EXISTS (SELECT 1 FROM {searches} s WHERE {self._match(table)} AND s.tstamp >= {placeholder})"

    def decide(self, references: Sequence[str], cutoff: str) -> bool:
        """*references* are the tstamps of the matching Search rows."""
        return not any(tstamp >= cutoff for tstamp in references)


__all__ = [
    "DeleteIfNoLiveReference",
    "DeleteIfOrphanedOrExpired",
    "DeletionPolicy",
    "ExpiredByTimestamp",
]
