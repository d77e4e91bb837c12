# src/ducktodo/formats/rows.py

"""
Row-level translation shared by every file format.

Exported rows always carry EXPORT_COLUMNS. Imported rows are read leniently:
column names are case-insensitive, `task` is accepted for `description`,
unknown columns and the derived `done` column are ignored, and an empty cell
means "absent".
"""

from __future__ import annotations

import contextlib
import logging
import os
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from ..errors import FileAccessError, ImportFormatError, TodoError
from ..tasks.task_models import (
    Task,
    TaskRecord,
    normalize_tags,
    parse_date,
    validate_name,
    validate_priority,
)

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = (
    "id",
    "description",
    "due_date",
    "completion_date",
    "priority",
    "category",
    "tags",
    "done",
)

_DESCRIPTION_KEYS = ("description", "task", "name")


def task_to_row(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "description": task.description,
        "due_date": task.due_date,
        "completion_date": task.completion_date,
        "priority": task.priority,
        "category": task.category,
        "tags": list(task.tags),
        "done": task.done,
    }


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_id(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(value)
        return int(value)
    if isinstance(value, int):
        return value
    return int(str(value).strip())


def record_from_mapping(row: Any, *, path: str | None = None, row_no: int | None = None) -> TaskRecord:
    """Decode one row into a TaskRecord, raising ImportFormatError on bad content."""
    if not isinstance(row, Mapping):
        raise ImportFormatError("expected an object with task fields", path=path, row=row_no)

    values = {str(k).strip().lower(): v for k, v in row.items() if k is not None}

    def get(*keys: str) -> Any:
        for key in keys:
            value = values.get(key)
            if not _blank(value):
                return value
        return None

    try:
        raw_id = get("id")
        task_id = _parse_id(raw_id) if raw_id is not None else None
    except ValueError:
        raise ImportFormatError(f"invalid id {raw_id!r}", path=path, row=row_no) from None

    raw_tags = values.get("tags")
    if raw_tags is None or (isinstance(raw_tags, str) and not raw_tags.strip()):
        tags = None
    elif isinstance(raw_tags, (list, tuple)):
        tags = normalize_tags(str(t) for t in raw_tags if t is not None)
    else:
        tags = normalize_tags(str(raw_tags))

    try:
        description = get(*_DESCRIPTION_KEYS)
        category = get("category")
        priority = get("priority")
        return TaskRecord(
            id=task_id,
            description=str(description).strip() if description is not None else None,
            due_date=parse_date(get("due_date")),
            completion_date=parse_date(get("completion_date")),
            category=validate_name("category", category) if category is not None else None,
            tags=tuple(validate_name("tag", t) for t in tags) if tags is not None else None,
            priority=validate_priority(priority) if priority is not None else None,
        )
    except TodoError as exc:
        raise ImportFormatError(str(exc), path=path, row=row_no) from None


def cell_text(value: Any) -> str:
    """Flat text for CSV cells."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def ensure_readable(path: Path) -> None:
    if not path.exists():
        raise FileAccessError(f"File not found: {path}. Check the path and try again.")
    if not path.is_file():
        raise FileAccessError(f"Not a regular file: {path}")


@contextlib.contextmanager
def atomic_target(path: Path) -> Iterator[Path]:
    """
    Yield a temporary sibling path; move it over `path` only if the block succeeds.

    A failed export never leaves a half-written file behind.
    """
    tmp = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        yield tmp
        os.replace(tmp, path)
    except OSError as exc:
        raise FileAccessError(f"Cannot write {path}: {exc}") from exc
    finally:
        if tmp.exists():
            with contextlib.suppress(OSError):
                tmp.unlink()
    logger.debug("Wrote %s", path)
