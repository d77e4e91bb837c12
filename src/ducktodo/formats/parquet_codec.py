# src/ducktodo/formats/parquet_codec.py

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import duckdb

from ..errors import FileAccessError, ImportFormatError
from ..tasks.task_models import Task, TaskRecord
from .rows import EXPORT_COLUMNS, atomic_target, ensure_readable, record_from_mapping, task_to_row

_STAGING_DDL = """
    CREATE TABLE export_rows (
        id INTEGER,
        description VARCHAR,
        due_date DATE,
        completion_date DATE,
        priority INTEGER,
        category VARCHAR,
        tags VARCHAR[],
        done BOOLEAN
    )
"""


def _sql_string(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class ParquetCodec:
    """Parquet read and written through a throwaway in-memory DuckDB connection."""

    name = "parquet"

    def read(self, path: Path) -> list[TaskRecord]:
        ensure_readable(path)
        conn = duckdb.connect()
        try:
            rel = conn.read_parquet(str(path))
            columns = [str(c).lower() for c in rel.columns]
            rows = rel.fetchall()
        except duckdb.Error as exc:
            raise ImportFormatError(f"not a Parquet file ({exc})", path=str(path)) from None
        finally:
            conn.close()

        return [
            record_from_mapping(dict(zip(columns, values)), path=str(path), row_no=row_no)
            for row_no, values in enumerate(rows, start=1)
        ]

    def write(self, path: Path, tasks: Sequence[Task]) -> None:
        rows = []
        for task in tasks:
            row = task_to_row(task)
            rows.append([row[col] for col in EXPORT_COLUMNS])

        with atomic_target(path) as tmp:
            conn = duckdb.connect()
            try:
                conn.execute(_STAGING_DDL)
                if rows:
                    conn.executemany("INSERT INTO export_rows VALUES (?, ?, ?, ?, ?, ?, ?, ?)", rows)
                conn.execute(f"COPY export_rows TO {_sql_string(str(tmp))} (FORMAT PARQUET)")
            except duckdb.Error as exc:
                raise FileAccessError(f"Cannot write {path}: {exc}") from exc
            finally:
                conn.close()
