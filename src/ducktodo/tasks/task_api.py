# src/ducktodo/tasks/task_api.py

"""
Task service helpers used by the CLI.

Each helper works on `state.task_store` (constructed in bootstrap) and keeps
the command handlers free of storage and file-format details.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from pathlib import Path

from ..core.state import AppState
from ..formats import get_codec
from .reconcile import ImportSummary, plan_import
from .search import SearchQuery, filter_tasks
from .task_models import ImportStrategy, Task

logger = logging.getLogger(__name__)


def add_task(
    state: AppState,
    description: str,
    *,
    due_date: str | date | None = None,
    category: str | None = None,
    tags: Iterable[str] = (),
    priority: int | str | None = None,
) -> Task:
    return state.task_store.add_task(
        description,
        due_date=due_date,
        category=category,
        tags=tags,
        priority=priority,
    )


def mark_done(state: AppState, task_id: int, *, today: date | None = None) -> Task:
    return state.task_store.mark_done(task_id, on=today)


def update_task(
    state: AppState,
    task_id: int,
    *,
    description: str | None = None,
    due_date: str | date | None = None,
    category: str | None = None,
    tags: Iterable[str] | None = None,
    priority: int | str | None = None,
    undone: bool = False,
) -> Task:
    return state.task_store.update_task(
        task_id,
        description=description,
        due_date=due_date,
        category=category,
        tags=tags,
        priority=priority,
        undone=undone,
    )


def search_tasks(state: AppState, query: SearchQuery) -> list[Task]:
    tasks = filter_tasks(state.task_store.list_tasks(), query)
    logger.debug("Search %s -> %d tasks", query, len(tasks))
    return tasks


def list_tasks(state: AppState, *, done_only: bool = False) -> list[Task]:
    return search_tasks(state, SearchQuery(done_only=done_only))


def import_tasks(
    state: AppState,
    fmt: str,
    path: str | Path,
    strategy: ImportStrategy | str = ImportStrategy.SKIP,
) -> ImportSummary:
    """
    Decode a file, reconcile it against the stored tasks, apply atomically.

    Decoding errors abort before anything is written; a storage failure while
    applying rolls back the whole batch.
    """
    if not isinstance(strategy, ImportStrategy):
        strategy = ImportStrategy.parse(strategy)
    codec = get_codec(fmt)
    path = Path(path).expanduser()

    records = codec.read(path)
    logger.info("Decoded %d records from %s (%s)", len(records), path, codec.name)

    plan = plan_import(records, state.task_store.list_tasks(), strategy)
    return state.task_store.apply_plan(plan)


def export_tasks(state: AppState, fmt: str, path: str | Path) -> int:
    """Write every stored task (ordered by id). Returns the number written."""
    codec = get_codec(fmt)
    path = Path(path).expanduser()
    tasks = state.task_store.list_tasks()
    codec.write(path, tasks)
    logger.info("Exported %d tasks to %s (%s)", len(tasks), path, codec.name)
    return len(tasks)
