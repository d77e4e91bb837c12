# src/ducktodo/cli/display.py

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from tabulate import tabulate

from ..tasks.task_models import Task

TASK_HEADERS = ["ID", "Description", "Due Date", "Priority", "Category", "Tags", "Done"]
TABLE_FORMAT = "simple_grid"


def _day(value: date | None) -> str:
    return value.isoformat() if value else ""


def format_tasks(tasks: Sequence[Task], *, show_completion_date: bool = False) -> str:
    if not tasks:
        return "No tasks found."

    headers = list(TASK_HEADERS)
    if show_completion_date:
        headers.append("Completed")

    rows = []
    for task in tasks:
        row = [
            task.id,
            task.description,
            _day(task.due_date),
            task.priority,
            task.category or "",
            ", ".join(task.tags),
            "yes" if task.done else "no",
        ]
        if show_completion_date:
            row.append(_day(task.completion_date))
        rows.append(row)
    return tabulate(rows, headers=headers, tablefmt=TABLE_FORMAT)


def format_names(title: str, names: Sequence[str], *, empty: str) -> str:
    if not names:
        return empty
    return tabulate([[n] for n in names], headers=[title], tablefmt=TABLE_FORMAT)
