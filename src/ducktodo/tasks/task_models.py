# src/ducktodo/tasks/task_models.py

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from ..errors import ValidationError

MIN_PRIORITY = 1
MAX_PRIORITY = 5
DEFAULT_PRIORITY = 3

_ISO_DAY = re.compile(r"\d{4}-\d{2}-\d{2}")
_ISO_TIMESTAMP = re.compile(r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(:\d{2}(\.\d{1,6})?)?")

# Fields an import record (or `update`) may overwrite. `id` is never mutable.
MUTABLE_FIELDS = ("description", "due_date", "completion_date", "category", "tags", "priority")


class ImportStrategy(StrEnum):
    """How an import batch merges with stored tasks."""

    SKIP = "skip"
    REMOVE = "remove"
    UPSERT = "upsert"

    @classmethod
    def parse(cls, raw: str | None) -> ImportStrategy:
        if not raw:
            return cls.SKIP
        try:
            return cls(raw.strip().lower())
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError(f"Unsupported import strategy '{raw}'. Use one of: {allowed}.") from None


@dataclass(slots=True)
class Task:
    id: int
    description: str
    due_date: date | None = None
    completion_date: date | None = None
    priority: int = DEFAULT_PRIORITY
    category: str | None = None
    tags: tuple[str, ...] = ()

    @property
    def done(self) -> bool:
        return self.completion_date is not None


@dataclass(frozen=True, slots=True)
class TaskRecord:
    """
    One decoded import row.

    None means "absent": the field was not given, so an upsert leaves the
    stored value alone. An empty tags tuple is a present value (clear tags).
    """

    id: int | None = None
    description: str | None = None
    due_date: date | None = None
    completion_date: date | None = None
    category: str | None = None
    tags: tuple[str, ...] | None = None
    priority: int | None = None

    def present_fields(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name in MUTABLE_FIELDS:
            value = getattr(self, name)
            if value is not None:
                out[name] = value
        return out


# ---- storage operations produced by the reconciliation planner ----


@dataclass(frozen=True, slots=True)
class InsertOp:
    record: TaskRecord


@dataclass(frozen=True, slots=True)
class UpdateOp:
    task_id: int
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class DeleteOp:
    task_id: int


Operation = InsertOp | UpdateOp | DeleteOp


# ---- validation helpers shared by the CLI, codecs and store ----


def parse_date(value: Any) -> date | None:
    """Accept None/'' (absent), a date, a datetime or an ISO `YYYY-MM-DD` string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    bad = ValidationError(f"Invalid date '{text}'. Please use YYYY-MM-DD.")
    try:
        if _ISO_DAY.fullmatch(text):
            return date.fromisoformat(text)
        # Timestamps written by spreadsheet tools: keep the calendar part.
        if _ISO_TIMESTAMP.fullmatch(text):
            return datetime.fromisoformat(text).date()
    except ValueError:
        raise bad from None
    raise bad


def validate_priority(value: Any) -> int:
    bad = ValidationError(f"Invalid priority '{value}'. Please enter an integer.")
    if isinstance(value, bool):
        raise bad
    if isinstance(value, float):
        if not value.is_integer():
            raise bad
        value = int(value)
    if isinstance(value, int):
        priority = value
    else:
        try:
            priority = int(str(value).strip())
        except ValueError:
            raise bad from None
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        raise ValidationError(
            f"Priority {priority} is out of range ({MIN_PRIORITY}-{MAX_PRIORITY}, lower is more urgent)."
        )
    return priority


def validate_description(value: Any) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValidationError("Task description must not be empty.")
    return text


def validate_name(kind: str, value: Any) -> str:
    """Category/tag names: stripped, non-empty; tag names may not contain commas."""
    name = str(value or "").strip()
    if not name:
        raise ValidationError(f"{kind.capitalize()} name must not be empty.")
    if kind == "tag" and "," in name:
        raise ValidationError(f"Tag name '{name}' must not contain a comma.")
    return name


def normalize_tags(values: Iterable[str] | str | None) -> tuple[str, ...]:
    """Split comma-separated values, strip, drop empties, dedupe, sort."""
    if values is None:
        return ()
    if isinstance(values, str):
        values = [values]
    names: set[str] = set()
    for raw in values:
        for part in str(raw).split(","):
            part = part.strip()
            if part:
                names.add(part)
    return tuple(sorted(names))
