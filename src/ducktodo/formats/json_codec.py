# src/ducktodo/formats/json_codec.py

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import date
from pathlib import Path
from typing import Any

from ..errors import FileAccessError, ImportFormatError
from ..tasks.task_models import Task, TaskRecord
from .rows import atomic_target, ensure_readable, record_from_mapping, task_to_row


def _default(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Cannot serialize {type(value).__name__}")


class JsonCodec:
    """
    JSON array of task objects.

    Reading also accepts newline-delimited JSON (one object per line), the
    layout DuckDB's `COPY ... (FORMAT JSON)` produces.
    """

    name = "json"

    def read(self, path: Path) -> list[TaskRecord]:
        ensure_readable(path)
        try:
            text = path.read_text("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ImportFormatError(f"not UTF-8 text ({exc.reason})", path=str(path)) from None
        except OSError as exc:
            raise FileAccessError(f"Cannot read {path}: {exc}") from exc

        body = text.strip()
        if not body:
            return []

        if body.startswith("["):
            try:
                data = json.loads(body)
            except json.JSONDecodeError as exc:
                raise ImportFormatError(f"invalid JSON: {exc}", path=str(path)) from None
            return [
                record_from_mapping(item, path=str(path), row_no=i)
                for i, item in enumerate(data, start=1)
            ]

        records: list[TaskRecord] = []
        for line_no, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                item = json.loads(line)
            except json.JSONDecodeError as exc:
                raise ImportFormatError(
                    f"expected a JSON array or one object per line ({exc.msg})",
                    path=str(path),
                    row=line_no,
                ) from None
            records.append(record_from_mapping(item, path=str(path), row_no=line_no))
        return records

    def write(self, path: Path, tasks: Sequence[Task]) -> None:
        payload = json.dumps(
            [task_to_row(t) for t in tasks], ensure_ascii=False, indent=2, default=_default
        )
        with atomic_target(path) as tmp:
            tmp.write_text(payload + "\n", "utf-8")
