# src/ducktodo/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the task service layer.

The service depends on Protocols instead of concrete implementations, so the
DuckDB store and the file codecs can be swapped by in-memory fakes in tests.
"""

from collections.abc import Iterable, Sequence
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..tasks.reconcile import ImportPlan, ImportSummary
    from ..tasks.task_models import Task, TaskRecord


class TaskRepo(Protocol):
    """Storage gateway: the narrow surface the service layer needs."""

    def count_tasks(self) -> int: ...
    def list_tasks(self) -> list[Task]: ...
    def get_task(self, task_id: int) -> Task: ...

    def add_task(
            self,
            description: str,
            *,
            due_date: date | str | None = None,
            category: str | None = None,
            tags: Iterable[str] = (),
            priority: int | str | None = None,
    ) -> Task: ...

    def mark_done(self, task_id: int, *, on: date | None = None) -> Task: ...

    def update_task(
            self,
            task_id: int,
            *,
            description: str | None = None,
            due_date: date | str | None = None,
            category: str | None = None,
            tags: Iterable[str] | None = None,
            priority: int | str | None = None,
            undone: bool = False,
    ) -> Task: ...

    # Import: one all-or-nothing unit
    def apply_plan(self, plan: ImportPlan) -> ImportSummary: ...

    # Categories / tags
    def add_category(self, name: str) -> str: ...
    def delete_category(self, name: str) -> int: ...
    def list_categories(self) -> list[str]: ...
    def add_tag(self, name: str) -> str: ...
    def delete_tag(self, name: str) -> int: ...
    def list_tags(self) -> list[str]: ...


class TaskCodec(Protocol):
    """File format adapter (json/csv/xlsx/parquet)."""

    name: str

    def read(self, path: Path) -> list[TaskRecord]: ...
    def write(self, path: Path, tasks: Sequence[Task]) -> None: ...
