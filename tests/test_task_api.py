# tests/test_task_api.py

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest

from ducktodo.core.state import AppState
from ducktodo.errors import ImportFormatError, NotFoundError, ValidationError
from ducktodo.formats import SUPPORTED_FORMATS
from ducktodo.tasks import task_api
from ducktodo.tasks.search import SearchQuery
from ducktodo.tasks.task_models import ImportStrategy
from ducktodo.tasks.task_store import TaskStore


def _write_json(path: Path, rows: list[dict]) -> Path:
    path.write_text(json.dumps(rows), "utf-8")
    return path


def _seed(state: AppState) -> None:
    task_api.add_task(state, "Buy milk", due_date="2024-09-01", priority=2)
    task_api.add_task(state, "Write report", category="work", tags=["office"])


def test_add_list_done(state: AppState) -> None:
    task = task_api.add_task(state, "Buy milk", due_date="2024-09-01", priority="2")
    assert task_api.list_tasks(state, done_only=True) == []

    done = task_api.mark_done(state, task.id, today=date(2024, 9, 2))
    assert done.completion_date == date(2024, 9, 2)
    [listed] = task_api.list_tasks(state, done_only=True)
    assert listed.id == task.id

    with pytest.raises(NotFoundError):
        task_api.mark_done(state, 99)


def test_search_through_store(state: AppState) -> None:
    _seed(state)
    found = task_api.search_tasks(state, SearchQuery.build(text="REPORT"))
    assert [t.description for t in found] == ["Write report"]
    assert task_api.search_tasks(state, SearchQuery.build(category="missing")) == []


def test_upsert_scenario(state: AppState, tmp_path: Path) -> None:
    _seed(state)
    path = _write_json(
        tmp_path / "in.json",
        [
            {"id": 2, "description": "Write report", "priority": 1, "tags": ["home", "urgent"]},
            {"description": "Call mom"},
        ],
    )
    summary = task_api.import_tasks(state, "json", path, "upsert")
    assert (summary.inserted, summary.updated, summary.deleted) == (1, 1, 0)

    tasks = {t.id: t for t in task_api.list_tasks(state)}
    assert tasks[2].priority == 1
    assert tasks[2].tags == ("home", "urgent")
    assert tasks[2].category == "work"
    assert tasks[3].description == "Call mom"
    assert tasks[3].priority == 3
    assert tasks[1].description == "Buy milk"


def test_skip_never_alters_matched_tasks(state: AppState, tmp_path: Path) -> None:
    _seed(state)
    before = task_api.list_tasks(state)
    path = _write_json(
        tmp_path / "in.json",
        [{"description": "Buy milk", "priority": 5}, {"id": 2, "description": "Renamed"}],
    )
    summary = task_api.import_tasks(state, "json", path)
    assert summary.skipped == 2
    assert summary.affected == 0
    assert task_api.list_tasks(state) == before


def test_remove_replaces_matches(state: AppState, tmp_path: Path) -> None:
    _seed(state)
    before = len(task_api.list_tasks(state))
    path = _write_json(
        tmp_path / "in.json",
        [{"description": "Buy milk", "priority": 4}, {"description": "Brand new"}],
    )
    summary = task_api.import_tasks(state, "json", path, ImportStrategy.REMOVE)

    after = task_api.list_tasks(state)
    assert len(after) == before - summary.deleted + summary.inserted
    assert [(t.id, t.description, t.priority) for t in after] == [
        (2, "Write report", 3),
        (3, "Buy milk", 4),
        (4, "Brand new", 3),
    ]


@pytest.mark.parametrize("fmt", SUPPORTED_FORMATS)
def test_export_then_upsert_import_changes_nothing(state: AppState, tmp_path: Path, fmt: str) -> None:
    _seed(state)
    task_api.mark_done(state, 2, today=date(2024, 9, 3))
    before = task_api.list_tasks(state)

    path = tmp_path / f"tasks.{fmt}"
    assert task_api.export_tasks(state, fmt, path) == 2

    summary = task_api.import_tasks(state, fmt, path, "upsert")
    assert summary.affected == 0
    assert summary.unchanged == 2
    assert task_api.list_tasks(state) == before


@pytest.mark.parametrize("fmt", SUPPORTED_FORMATS)
def test_export_into_fresh_store_reproduces_tasks(
    state: AppState, settings: SimpleNamespace, tmp_path: Path, fmt: str
) -> None:
    _seed(state)
    path = tmp_path / f"tasks.{fmt}"
    task_api.export_tasks(state, fmt, path)

    other = AppState(settings=settings, task_store=TaskStore(tmp_path / "other.duckdb"))
    summary = task_api.import_tasks(other, fmt, path, "skip")
    assert summary.inserted == 2

    def shape(tasks):
        return [(t.description, t.due_date, t.priority, t.category, t.tags) for t in tasks]

    assert shape(task_api.list_tasks(other)) == shape(task_api.list_tasks(state))


def test_malformed_file_writes_nothing(state: AppState, tmp_path: Path) -> None:
    _seed(state)
    path = tmp_path / "in.csv"
    path.write_text("description,due_date\nFirst,2024-01-01\nSecond,not-a-date\n", "utf-8")
    with pytest.raises(ImportFormatError):
        task_api.import_tasks(state, "csv", path, "upsert")
    assert [t.description for t in task_api.list_tasks(state)] == ["Buy milk", "Write report"]


def test_record_without_description_aborts_import(state: AppState, tmp_path: Path) -> None:
    _seed(state)
    path = _write_json(tmp_path / "in.json", [{"description": "Fine"}, {"id": 50, "priority": 1}])
    with pytest.raises(ValidationError):
        task_api.import_tasks(state, "json", path, "upsert")
    assert len(task_api.list_tasks(state)) == 2


def test_empty_file_is_a_no_op(state: AppState, tmp_path: Path) -> None:
    _seed(state)
    path = tmp_path / "empty.json"
    path.write_text("[]", "utf-8")
    summary = task_api.import_tasks(state, "json", path, "remove")
    assert summary.affected == 0
    assert len(task_api.list_tasks(state)) == 2


def test_invalid_strategy(state: AppState, tmp_path: Path) -> None:
    path = _write_json(tmp_path / "in.json", [])
    with pytest.raises(ValidationError, match="strategy"):
        task_api.import_tasks(state, "json", path, "merge")
