# src/ducktodo/tasks/task_store.py

from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterable, Iterator
from datetime import date
from pathlib import Path
from typing import Any

import duckdb

from ..errors import NotFoundError, StorageError, ValidationError
from .reconcile import ImportPlan, ImportSummary
from .task_models import (
    DEFAULT_PRIORITY,
    MAX_PRIORITY,
    MIN_PRIORITY,
    DeleteOp,
    InsertOp,
    Task,
    TaskRecord,
    UpdateOp,
    normalize_tags,
    parse_date,
    validate_description,
    validate_name,
    validate_priority,
)

logger = logging.getLogger(__name__)

_SCHEMA = (
    "CREATE SEQUENCE IF NOT EXISTS seq_todo_id START 1",
    "CREATE SEQUENCE IF NOT EXISTS seq_category_id START 1",
    "CREATE SEQUENCE IF NOT EXISTS seq_tag_id START 1",
    """
    CREATE TABLE IF NOT EXISTS categories (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_category_id'),
        name VARCHAR NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tags (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_tag_id'),
        name VARCHAR NOT NULL UNIQUE
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS todos (
        id INTEGER PRIMARY KEY DEFAULT nextval('seq_todo_id'),
        description VARCHAR NOT NULL,
        due_date DATE,
        completion_date DATE,
        priority INTEGER NOT NULL DEFAULT {DEFAULT_PRIORITY}
            CHECK (priority BETWEEN {MIN_PRIORITY} AND {MAX_PRIORITY}),
        category_id INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS todo_tags (
        todo_id INTEGER NOT NULL,
        tag_id INTEGER NOT NULL
    )
    """,
)

_TASK_SELECT = """
    SELECT t.id, t.description, t.due_date, t.completion_date, t.priority, c.name
    FROM todos t
    LEFT JOIN categories c ON c.id = t.category_id
"""


class TaskStore:
    """
    DuckDB task store.

    Each public method opens its own connection and closes it on every exit
    path, so separate CLI invocations only ever contend on DuckDB's own file
    lock. Multi-statement writes run inside one transaction; any DuckDB error
    rolls the whole unit back and is re-raised as StorageError.
    """

    def __init__(self, db_path: str | Path, *, default_priority: int = DEFAULT_PRIORITY) -> None:
        self._db_path = Path(db_path)
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create directory {self._db_path.parent}: {exc}") from exc
        self._default_priority = validate_priority(default_priority)
        self._ensure_schema()
        logger.debug("TaskStore ready db=%s", self._db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    @contextlib.contextmanager
    def _connect(self) -> Iterator[duckdb.DuckDBPyConnection]:
        try:
            conn = duckdb.connect(str(self._db_path))
        except duckdb.Error as exc:
            raise StorageError(f"Cannot open database {self._db_path}: {exc}") from exc
        try:
            yield conn
        except duckdb.Error as exc:
            logger.debug("DuckDB error on %s", self._db_path, exc_info=True)
            raise StorageError(f"Database error: {exc}") from exc
        finally:
            conn.close()

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[duckdb.DuckDBPyConnection]:
        with self._connect() as conn:
            conn.begin()
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()

    def _ensure_schema(self) -> None:
        with self._transaction() as conn:
            for stmt in _SCHEMA:
                conn.execute(stmt)

    @staticmethod
    def _tags_by_task(conn: duckdb.DuckDBPyConnection, task_id: int | None = None) -> dict[int, list[str]]:
        sql = "SELECT tt.todo_id, g.name FROM todo_tags tt JOIN tags g ON g.id = tt.tag_id"
        if task_id is not None:
            cur = conn.execute(sql + " WHERE tt.todo_id = ? ORDER BY g.name", [task_id])
        else:
            cur = conn.execute(sql + " ORDER BY g.name")
        out: dict[int, list[str]] = {}
        for todo_id, name in cur.fetchall():
            out.setdefault(int(todo_id), []).append(name)
        return out

    @staticmethod
    def _row_to_task(row: tuple[Any, ...], tags: Iterable[str]) -> Task:
        task_id, description, due, completed, priority, category = row
        return Task(
            id=int(task_id),
            description=str(description),
            due_date=due,
            completion_date=completed,
            priority=int(priority),
            category=category,
            tags=tuple(sorted(tags)),
        )

    def _fetch_task(self, conn: duckdb.DuckDBPyConnection, task_id: int) -> Task:
        row = conn.execute(_TASK_SELECT + " WHERE t.id = ?", [task_id]).fetchone()
        if row is None:
            raise NotFoundError(f"Task {task_id} not found.")
        return self._row_to_task(row, self._tags_by_task(conn, task_id).get(task_id, ()))

    @staticmethod
    def _name_id(conn: duckdb.DuckDBPyConnection, table: str, name: str) -> int | None:
        row = conn.execute(f"SELECT id FROM {table} WHERE name = ?", [name]).fetchone()
        return int(row[0]) if row else None

    def _ensure_name(self, conn: duckdb.DuckDBPyConnection, table: str, name: str) -> int:
        existing = self._name_id(conn, table, name)
        if existing is not None:
            return existing
        (new_id,) = conn.execute(f"INSERT INTO {table} (name) VALUES (?) RETURNING id", [name]).fetchone()
        logger.debug("Created %s row name=%s id=%s", table, name, new_id)
        return int(new_id)

    def _set_tags(self, conn: duckdb.DuckDBPyConnection, task_id: int, tags: Iterable[str]) -> None:
        conn.execute("DELETE FROM todo_tags WHERE todo_id = ?", [task_id])
        for tag in tags:
            tag_id = self._ensure_name(conn, "tags", tag)
            conn.execute("INSERT INTO todo_tags (todo_id, tag_id) VALUES (?, ?)", [task_id, tag_id])

    @staticmethod
    def _clean_fields(fields: dict[str, Any]) -> dict[str, Any]:
        """Validate an update fieldset. A present None clears date/category fields."""
        clean: dict[str, Any] = {}
        for name, value in fields.items():
            if name == "description":
                clean[name] = validate_description(value)
            elif name in ("due_date", "completion_date"):
                clean[name] = parse_date(value)
            elif name == "priority":
                clean[name] = validate_priority(value)
            elif name == "category":
                clean[name] = validate_name("category", value) if value is not None else None
            elif name == "tags":
                clean[name] = tuple(validate_name("tag", t) for t in normalize_tags(value))
            else:
                raise ValidationError(f"Field '{name}' cannot be updated.")
        return clean

    def _insert(self, conn: duckdb.DuckDBPyConnection, record: TaskRecord) -> int:
        fields = self._clean_fields(record.present_fields())
        if "description" not in fields:
            raise ValidationError("Task description must not be empty.")
        category = fields.get("category")
        category_id = self._ensure_name(conn, "categories", category) if category else None
        (task_id,) = conn.execute(
            """
            INSERT INTO todos (description, due_date, completion_date, priority, category_id)
            VALUES (?, ?, ?, ?, ?)
            RETURNING id
            """,
            [
                fields["description"],
                fields.get("due_date"),
                fields.get("completion_date"),
                fields.get("priority", self._default_priority),
                category_id,
            ],
        ).fetchone()
        task_id = int(task_id)
        if fields.get("tags"):
            self._set_tags(conn, task_id, fields["tags"])
        logger.debug("Task inserted id=%s description=%r", task_id, fields["description"])
        return task_id

    def _update(self, conn: duckdb.DuckDBPyConnection, task_id: int, fields: dict[str, Any]) -> None:
        columns: list[str] = []
        params: list[Any] = []

        for name in ("description", "due_date", "completion_date", "priority"):
            if name in fields:
                columns.append(f"{name} = ?")
                params.append(fields[name])

        if "category" in fields:
            category = fields["category"]
            columns.append("category_id = ?")
            params.append(self._ensure_name(conn, "categories", category) if category else None)

        if columns:
            params.append(task_id)
            conn.execute(f"UPDATE todos SET {', '.join(columns)} WHERE id = ?", params)

        if "tags" in fields:
            self._set_tags(conn, task_id, fields["tags"])

    def _delete(self, conn: duckdb.DuckDBPyConnection, task_id: int) -> None:
        conn.execute("DELETE FROM todo_tags WHERE todo_id = ?", [task_id])
        conn.execute("DELETE FROM todos WHERE id = ?", [task_id])

    # ---- tasks ----

    def count_tasks(self) -> int:
        with self._connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM todos").fetchone()
            return int(n)

    def add_task(
        self,
        description: str,
        *,
        due_date: date | str | None = None,
        category: str | None = None,
        tags: Iterable[str] = (),
        priority: int | str | None = None,
    ) -> Task:
        record = TaskRecord(
            description=description,
            due_date=parse_date(due_date),
            category=category,
            tags=normalize_tags(tags),
            priority=priority,
        )
        with self._transaction() as conn:
            task_id = self._insert(conn, record)
            task = self._fetch_task(conn, task_id)
        logger.info("Task added id=%s", task.id)
        return task

    def get_task(self, task_id: int) -> Task:
        with self._connect() as conn:
            return self._fetch_task(conn, task_id)

    def list_tasks(self) -> list[Task]:
        """All tasks ordered by id."""
        with self._connect() as conn:
            rows = conn.execute(_TASK_SELECT + " ORDER BY t.id").fetchall()
            tags = self._tags_by_task(conn)
        return [self._row_to_task(row, tags.get(int(row[0]), ())) for row in rows]

    def mark_done(self, task_id: int, *, on: date | None = None) -> Task:
        completed = on or date.today()
        with self._transaction() as conn:
            self._fetch_task(conn, task_id)
            conn.execute("UPDATE todos SET completion_date = ? WHERE id = ?", [completed, task_id])
            task = self._fetch_task(conn, task_id)
        logger.info("Task done id=%s on=%s", task_id, completed)
        return task

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
    ) -> Task:
        """Partial update: None leaves a field unchanged; `undone` clears the completion date."""
        fields: dict[str, Any] = {}
        if description is not None:
            fields["description"] = description
        if due_date is not None:
            fields["due_date"] = due_date
        if category is not None:
            fields["category"] = category
        if tags is not None:
            fields["tags"] = tags
        if priority is not None:
            fields["priority"] = priority
        if undone:
            fields["completion_date"] = None
        clean = self._clean_fields(fields)

        with self._transaction() as conn:
            self._fetch_task(conn, task_id)
            self._update(conn, task_id, clean)
            task = self._fetch_task(conn, task_id)
        logger.info("Task updated id=%s fields=%s", task_id, sorted(clean))
        return task

    def apply_plan(self, plan: ImportPlan) -> ImportSummary:
        """Run every operation of an import plan as one all-or-nothing unit."""
        if not plan.operations:
            return plan.summary()

        with self._transaction() as conn:
            for op in plan.operations:
                if isinstance(op, DeleteOp):
                    self._delete(conn, op.task_id)
                elif isinstance(op, InsertOp):
                    self._insert(conn, op.record)
                elif isinstance(op, UpdateOp):
                    self._update(conn, op.task_id, self._clean_fields(op.fields))
                else:
                    raise TypeError(f"Unknown import operation: {op!r}")

        summary = plan.summary()
        logger.info("Import applied strategy=%s %s", plan.strategy.value, summary.describe())
        return summary

    # ---- categories / tags ----

    def _add_name(self, table: str, kind: str, name: str) -> str:
        name = validate_name(kind, name)
        with self._transaction() as conn:
            if self._name_id(conn, table, name) is not None:
                raise ValidationError(f"A {kind} named '{name}' already exists.")
            conn.execute(f"INSERT INTO {table} (name) VALUES (?)", [name])
        logger.info("Added %s %s", kind, name)
        return name

    def _list_names(self, table: str) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute(f"SELECT name FROM {table} ORDER BY name").fetchall()
        return [r[0] for r in rows]

    def add_category(self, name: str) -> str:
        return self._add_name("categories", "category", name)

    def delete_category(self, name: str) -> int:
        """Delete a category, detaching it from its tasks. Returns the number of tasks detached."""
        name = validate_name("category", name)
        with self._transaction() as conn:
            category_id = self._name_id(conn, "categories", name)
            if category_id is None:
                raise NotFoundError(f"Category '{name}' not found.")
            (detached,) = conn.execute(
                "SELECT COUNT(*) FROM todos WHERE category_id = ?", [category_id]
            ).fetchone()
            conn.execute("UPDATE todos SET category_id = NULL WHERE category_id = ?", [category_id])
            conn.execute("DELETE FROM categories WHERE id = ?", [category_id])
        logger.info("Deleted category %s detached=%s", name, detached)
        return int(detached)

    def list_categories(self) -> list[str]:
        return self._list_names("categories")

    def add_tag(self, name: str) -> str:
        return self._add_name("tags", "tag", name)

    def delete_tag(self, name: str) -> int:
        """Delete a tag and its task associations. Returns the number of tasks detached."""
        name = validate_name("tag", name)
        with self._transaction() as conn:
            tag_id = self._name_id(conn, "tags", name)
            if tag_id is None:
                raise NotFoundError(f"Tag '{name}' not found.")
            (detached,) = conn.execute(
                "SELECT COUNT(*) FROM todo_tags WHERE tag_id = ?", [tag_id]
            ).fetchone()
            conn.execute("DELETE FROM todo_tags WHERE tag_id = ?", [tag_id])
            conn.execute("DELETE FROM tags WHERE id = ?", [tag_id])
        logger.info("Deleted tag %s detached=%s", name, detached)
        return int(detached)

    def list_tags(self) -> list[str]:
        return self._list_names("tags")
