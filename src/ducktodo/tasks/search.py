# src/ducktodo/tasks/search.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .task_models import Task, normalize_tags


@dataclass(frozen=True, slots=True)
class SearchQuery:
    """
    Task filter. All given predicates must hold.

    - text: case-insensitive substring of description, category or any tag
    - tags: task carries at least one of these tags
    - category: exact category name
    - done_only: only completed tasks

    Unknown category/tag names simply match nothing.
    """

    text: str | None = None
    tags: tuple[str, ...] = ()
    category: str | None = None
    done_only: bool = False

    @classmethod
    def build(
        cls,
        *,
        text: str | None = None,
        tags: Iterable[str] | None = None,
        category: str | None = None,
        done_only: bool = False,
    ) -> SearchQuery:
        text = (text or "").strip() or None
        category = (category or "").strip() or None
        return cls(text=text, tags=normalize_tags(tags), category=category, done_only=done_only)

    def matches(self, task: Task) -> bool:
        if self.done_only and not task.done:
            return False
        if self.category is not None and task.category != self.category:
            return False
        if self.tags and not set(self.tags).intersection(task.tags):
            return False
        if self.text is not None:
            needle = self.text.casefold()
            haystack = [task.description, task.category or "", *task.tags]
            if not any(needle in h.casefold() for h in haystack):
                return False
        return True


def filter_tasks(tasks: Iterable[Task], query: SearchQuery) -> list[Task]:
    """Matching tasks ordered by id ascending."""
    return sorted((t for t in tasks if query.matches(t)), key=lambda t: t.id)
