# src/ducktodo/formats/csv_codec.py

from __future__ import annotations

import csv
from collections.abc import Sequence
from pathlib import Path

from ..errors import FileAccessError, ImportFormatError
from ..tasks.task_models import Task, TaskRecord
from .rows import EXPORT_COLUMNS, atomic_target, cell_text, ensure_readable, record_from_mapping, task_to_row


class CsvCodec:
    """CSV with a header row; tags are comma-joined inside one cell."""

    name = "csv"

    def read(self, path: Path) -> list[TaskRecord]:
        ensure_readable(path)
        records: list[TaskRecord] = []
        try:
            with path.open("r", newline="", encoding="utf-8-sig") as fh:
                reader = csv.DictReader(fh)
                if reader.fieldnames is None:
                    return []
                # Line 1 is the header.
                for row_no, row in enumerate(reader, start=2):
                    if None in row:
                        raise ImportFormatError("more cells than header columns", path=str(path), row=row_no)
                    if all(not (v or "").strip() for v in row.values()):
                        continue
                    records.append(record_from_mapping(row, path=str(path), row_no=row_no))
        except csv.Error as exc:
            raise ImportFormatError(f"invalid CSV: {exc}", path=str(path)) from None
        except UnicodeDecodeError as exc:
            raise ImportFormatError(f"not UTF-8 text ({exc.reason})", path=str(path)) from None
        except OSError as exc:
            raise FileAccessError(f"Cannot read {path}: {exc}") from exc
        return records

    def write(self, path: Path, tasks: Sequence[Task]) -> None:
        with atomic_target(path) as tmp:
            with tmp.open("w", newline="", encoding="utf-8") as fh:
                writer = csv.DictWriter(fh, fieldnames=list(EXPORT_COLUMNS))
                writer.writeheader()
                for task in tasks:
                    writer.writerow({k: cell_text(v) for k, v in task_to_row(task).items()})
