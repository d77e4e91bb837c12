# src/ducktodo/tasks/reconcile.py

"""
Import reconciliation.

Given a decoded batch of records, a snapshot of the stored tasks and a
strategy, decide which inserts/updates/deletes to perform. Nothing here
touches storage; TaskStore.apply_plan executes the result in one transaction.

Matching:
- a record with an id matches the stored task with that id (the id wins even
  when the descriptions differ); an unknown id is unmatched;
- a record without an id matches the stored task with an identical
  description (lowest id if several share it);
- the snapshot is fixed before the batch is processed, so records never
  match each other, and under skip/upsert each stored task is claimed at most
  once: a later duplicate is inserted as a new task.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..errors import ValidationError
from .task_models import (
    DeleteOp,
    ImportStrategy,
    InsertOp,
    Operation,
    Task,
    TaskRecord,
    UpdateOp,
    normalize_tags,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ImportSummary:
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    unchanged: int = 0

    @property
    def affected(self) -> int:
        return self.inserted + self.updated + self.deleted

    def describe(self) -> str:
        return (
            f"{self.inserted} inserted, {self.updated} updated, {self.deleted} deleted, "
            f"{self.skipped} skipped, {self.unchanged} unchanged"
        )


@dataclass(slots=True)
class ImportPlan:
    strategy: ImportStrategy
    operations: list[Operation] = field(default_factory=list)
    skipped: int = 0
    unchanged: int = 0

    def summary(self) -> ImportSummary:
        return ImportSummary(
            inserted=sum(1 for op in self.operations if isinstance(op, InsertOp)),
            updated=sum(1 for op in self.operations if isinstance(op, UpdateOp)),
            deleted=sum(1 for op in self.operations if isinstance(op, DeleteOp)),
            skipped=self.skipped,
            unchanged=self.unchanged,
        )


class _SnapshotIndex:
    def __init__(self, snapshot: Iterable[Task]) -> None:
        self.by_id: dict[int, Task] = {}
        self.by_description: dict[str, list[int]] = {}
        for task in sorted(snapshot, key=lambda t: t.id):
            self.by_id[task.id] = task
            self.by_description.setdefault(task.description, []).append(task.id)

    def target(self, record: TaskRecord) -> int | None:
        """The single stored task a record refers to (skip/upsert)."""
        if record.id is not None:
            return record.id if record.id in self.by_id else None
        if record.description is None:
            return None
        ids = self.by_description.get(record.description)
        return ids[0] if ids else None

    def all_matches(self, record: TaskRecord) -> list[int]:
        """Every stored task a record matches (remove)."""
        if record.id is not None:
            return [record.id] if record.id in self.by_id else []
        if record.description is None:
            return []
        return list(self.by_description.get(record.description, ()))


def _require_insertable(record: TaskRecord, position: int) -> InsertOp:
    if record.description is None or not record.description.strip():
        raise ValidationError(
            f"Record {position} does not match a stored task and has no description to insert."
        )
    return InsertOp(record)


def _changed_fields(record: TaskRecord, task: Task) -> dict[str, Any]:
    changed: dict[str, Any] = {}
    for name, value in record.present_fields().items():
        if name == "tags":
            value = normalize_tags(value)
        if getattr(task, name) != value:
            changed[name] = value
    return changed


def _plan_skip(records: Sequence[TaskRecord], index: _SnapshotIndex, plan: ImportPlan) -> None:
    claimed: set[int] = set()
    for pos, record in enumerate(records, start=1):
        target = index.target(record)
        if target is not None and target not in claimed:
            claimed.add(target)
            plan.skipped += 1
            continue
        plan.operations.append(_require_insertable(record, pos))


def _plan_remove(records: Sequence[TaskRecord], index: _SnapshotIndex, plan: ImportPlan) -> None:
    doomed: set[int] = set()
    for record in records:
        doomed.update(index.all_matches(record))
    plan.operations.extend(DeleteOp(task_id) for task_id in sorted(doomed))
    for pos, record in enumerate(records, start=1):
        plan.operations.append(_require_insertable(record, pos))


def _plan_upsert(records: Sequence[TaskRecord], index: _SnapshotIndex, plan: ImportPlan) -> None:
    claimed: set[int] = set()
    for pos, record in enumerate(records, start=1):
        target = index.target(record)
        if target is None or target in claimed:
            plan.operations.append(_require_insertable(record, pos))
            continue
        claimed.add(target)
        changed = _changed_fields(record, index.by_id[target])
        if changed:
            plan.operations.append(UpdateOp(target, changed))
        else:
            plan.unchanged += 1


_PLANNERS: dict[ImportStrategy, Callable[[Sequence[TaskRecord], _SnapshotIndex, ImportPlan], None]] = {
    ImportStrategy.SKIP: _plan_skip,
    ImportStrategy.REMOVE: _plan_remove,
    ImportStrategy.UPSERT: _plan_upsert,
}


def plan_import(
    records: Sequence[TaskRecord],
    snapshot: Iterable[Task],
    strategy: ImportStrategy,
) -> ImportPlan:
    """Build the ordered list of storage operations for one import batch."""
    plan = ImportPlan(strategy=strategy)
    if not records:
        return plan

    _PLANNERS[strategy](records, _SnapshotIndex(snapshot), plan)
    logger.debug(
        "Import plan strategy=%s records=%d %s",
        strategy.value,
        len(records),
        plan.summary().describe(),
    )
    return plan
