# src/ducktodo/formats/xlsx_codec.py

from __future__ import annotations

import zipfile
from collections.abc import Sequence
from pathlib import Path

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..errors import FileAccessError, ImportFormatError
from ..tasks.task_models import Task, TaskRecord
from .rows import EXPORT_COLUMNS, atomic_target, ensure_readable, record_from_mapping, task_to_row

SHEET_TITLE = "tasks"


class ExcelCodec:
    """Excel workbook: first worksheet, header row, one task per row."""

    name = "xlsx"

    def read(self, path: Path) -> list[TaskRecord]:
        ensure_readable(path)
        try:
            wb = load_workbook(path, read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError) as exc:
            raise ImportFormatError(f"not an Excel workbook ({exc})", path=str(path)) from None
        except OSError as exc:
            raise FileAccessError(f"Cannot read {path}: {exc}") from exc

        try:
            ws = wb.worksheets[0]
            rows = ws.iter_rows(values_only=True)
            header = next(rows, None)
            if header is None:
                return []
            columns = [str(h).strip().lower() if h is not None else "" for h in header]

            records: list[TaskRecord] = []
            for row_no, values in enumerate(rows, start=2):
                if all(v is None or (isinstance(v, str) and not v.strip()) for v in values):
                    continue
                row = {col: val for col, val in zip(columns, values) if col}
                records.append(record_from_mapping(row, path=str(path), row_no=row_no))
            return records
        finally:
            wb.close()

    def write(self, path: Path, tasks: Sequence[Task]) -> None:
        wb = Workbook()
        ws = wb.active
        ws.title = SHEET_TITLE
        ws.append(list(EXPORT_COLUMNS))
        for task in tasks:
            row = task_to_row(task)
            row["tags"] = ",".join(row["tags"])
            ws.append([row[col] for col in EXPORT_COLUMNS])

        for cells in ws.iter_rows(min_row=2, min_col=3, max_col=4):
            for cell in cells:
                cell.number_format = "yyyy-mm-dd"

        with atomic_target(path) as tmp:
            wb.save(tmp)
