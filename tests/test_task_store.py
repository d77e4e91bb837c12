# tests/test_task_store.py

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from ducktodo.errors import NotFoundError, StorageError, ValidationError
from ducktodo.tasks.reconcile import ImportPlan
from ducktodo.tasks.task_models import DeleteOp, ImportStrategy, InsertOp, TaskRecord, UpdateOp
from ducktodo.tasks.task_store import TaskStore

from .fakes import FailingDeleteStore


def test_add_get_and_defaults(store: TaskStore) -> None:
    task = store.add_task("  Buy milk ", due_date="2024-09-01", priority="2")
    assert task.id == 1
    assert task.description == "Buy milk"
    assert task.due_date == date(2024, 9, 1)
    assert task.priority == 2
    assert task.category is None
    assert task.tags == ()
    assert task.done is False

    plain = store.add_task("Call mom")
    assert plain.priority == 3
    assert store.get_task(plain.id) == plain
    assert store.count_tasks() == 2


def test_category_and_tags_created_on_first_reference(store: TaskStore) -> None:
    task = store.add_task("Write report", category="work", tags=["b", "a,b"])
    assert task.category == "work"
    assert task.tags == ("a", "b")
    assert store.list_categories() == ["work"]
    assert store.list_tags() == ["a", "b"]


def test_identifiers_are_never_reused(store: TaskStore) -> None:
    store.add_task("one")
    second = store.add_task("two")
    store.apply_plan(ImportPlan(ImportStrategy.REMOVE, [DeleteOp(second.id)]))
    third = store.add_task("three")
    assert third.id == 3
    assert [t.id for t in store.list_tasks()] == [1, 3]


def test_done_and_undone_keep_flag_in_sync(store: TaskStore) -> None:
    task = store.add_task("Buy milk")
    done = store.mark_done(task.id, on=date(2024, 9, 2))
    assert done.completion_date == date(2024, 9, 2)
    assert done.done is True

    undone = store.update_task(task.id, undone=True)
    assert undone.completion_date is None
    assert undone.done is False


def test_unknown_task_raises_not_found(store: TaskStore) -> None:
    with pytest.raises(NotFoundError):
        store.mark_done(123)
    with pytest.raises(NotFoundError):
        store.update_task(123, description="x")
    with pytest.raises(NotFoundError):
        store.get_task(123)


def test_partial_update(store: TaskStore) -> None:
    task = store.add_task("Write report", due_date="2024-09-01", category="work", tags=["office"], priority=2)

    updated = store.update_task(task.id, tags=["home"], priority=5)
    assert updated.tags == ("home",)
    assert updated.priority == 5
    assert updated.description == "Write report"
    assert updated.due_date == date(2024, 9, 1)
    assert updated.category == "work"

    moved = store.update_task(task.id, category="home", due_date="2024-10-01", description="Write memo")
    assert (moved.category, moved.due_date, moved.description) == ("home", date(2024, 10, 1), "Write memo")
    assert store.list_categories() == ["home", "work"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"description": "x", "priority": 0},
        {"description": "x", "priority": 6},
        {"description": "x", "priority": "high"},
        {"description": "x", "due_date": "01/09/2024"},
        {"description": "   "},
        {"description": "x", "tags": ["ok"], "category": ""},
    ],
)
def test_add_rejects_invalid_input(store: TaskStore, kwargs: dict) -> None:
    with pytest.raises(ValidationError):
        store.add_task(**kwargs)
    assert store.count_tasks() == 0


@pytest.mark.parametrize(
    "raw",
    ["2024-09-01 not a date", "2024-09-01Tgarbage", "2024-W36-1", "20240901", "2024-9-1", "2024-02-30"],
)
def test_due_date_must_be_iso_calendar_day(store: TaskStore, raw: str) -> None:
    with pytest.raises(ValidationError, match="YYYY-MM-DD"):
        store.add_task("x", due_date=raw)
    task = store.add_task("x")
    with pytest.raises(ValidationError, match="YYYY-MM-DD"):
        store.update_task(task.id, due_date=raw)
    assert store.get_task(task.id).due_date is None


def test_timestamp_text_keeps_the_calendar_day(store: TaskStore) -> None:
    task = store.add_task("x", due_date="2024-09-01T08:30:00")
    assert task.due_date == date(2024, 9, 1)
    task = store.add_task("y", due_date="2024-09-01 08:30")
    assert task.due_date == date(2024, 9, 1)


def test_unusable_parent_directory_is_storage_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", "utf-8")
    with pytest.raises(StorageError, match="Cannot create directory"):
        TaskStore(blocker / "todo.duckdb")


def test_explicit_duplicate_names_are_rejected_case_sensitively(store: TaskStore) -> None:
    store.add_category("Work")
    store.add_category("work")
    with pytest.raises(ValidationError, match="already exists"):
        store.add_category("Work")

    store.add_tag("urgent")
    with pytest.raises(ValidationError):
        store.add_tag("urgent")
    with pytest.raises(ValidationError, match="comma"):
        store.add_tag("a,b")
    assert store.list_categories() == ["Work", "work"]


def test_delete_category_detaches_tasks(store: TaskStore) -> None:
    task = store.add_task("Write report", category="work")
    other = store.add_task("Other", category="home")

    assert store.delete_category("work") == 1
    assert store.get_task(task.id).category is None
    assert store.get_task(other.id).category == "home"
    assert store.count_tasks() == 2
    assert store.list_categories() == ["home"]

    with pytest.raises(NotFoundError):
        store.delete_category("work")


def test_delete_tag_detaches_tasks(store: TaskStore) -> None:
    task = store.add_task("Write report", tags=["a", "b"])
    assert store.delete_tag("a") == 1
    assert store.get_task(task.id).tags == ("b",)
    assert store.list_tags() == ["b"]
    with pytest.raises(NotFoundError):
        store.delete_tag("a")


def test_apply_plan_runs_all_operation_kinds(store: TaskStore) -> None:
    keep = store.add_task("Keep", priority=2)
    drop = store.add_task("Drop")
    plan = ImportPlan(
        ImportStrategy.UPSERT,
        [
            DeleteOp(drop.id),
            UpdateOp(keep.id, {"priority": 1, "category": "work", "completion_date": date(2024, 1, 2)}),
            InsertOp(TaskRecord(id=drop.id, description="New", tags=("x",))),
        ],
    )
    summary = store.apply_plan(plan)
    assert (summary.inserted, summary.updated, summary.deleted) == (1, 1, 1)

    tasks = store.list_tasks()
    assert [t.description for t in tasks] == ["Keep", "New"]
    assert tasks[0].priority == 1 and tasks[0].category == "work" and tasks[0].done
    # Inserted tasks always get a fresh id.
    assert tasks[1].id == 3
    assert tasks[1].tags == ("x",)


def test_apply_plan_is_all_or_nothing_on_validation_error(store: TaskStore) -> None:
    existing = store.add_task("Existing")
    plan = ImportPlan(
        ImportStrategy.UPSERT,
        [
            InsertOp(TaskRecord(description="Inserted first", tags=("fresh",))),
            UpdateOp(existing.id, {"priority": 9}),
        ],
    )
    with pytest.raises(ValidationError):
        store.apply_plan(plan)

    assert [t.description for t in store.list_tasks()] == ["Existing"]
    assert store.list_tags() == []


def test_apply_plan_rolls_back_on_storage_error(tmp_path: Path) -> None:
    store = FailingDeleteStore(tmp_path / "failing.duckdb")
    victim = store.add_task("Victim", tags=["t"])
    plan = ImportPlan(
        ImportStrategy.REMOVE,
        [InsertOp(TaskRecord(description="Replacement")), DeleteOp(victim.id)],
    )
    with pytest.raises(StorageError):
        store.apply_plan(plan)

    tasks = store.list_tasks()
    assert [t.description for t in tasks] == ["Victim"]
    assert tasks[0].tags == ("t",)


def test_data_survives_reopening(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "todo.duckdb"
    TaskStore(path).add_task("Persisted", category="c", tags=["t"])
    again = TaskStore(path)
    [task] = again.list_tasks()
    assert (task.description, task.category, task.tags) == ("Persisted", "c", ("t",))
