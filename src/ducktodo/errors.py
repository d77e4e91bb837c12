# src/ducktodo/errors.py

"""
Error taxonomy.

Every failure that should reach the user is a TodoError subclass; the CLI
prints its message and exits non-zero.
"""

from __future__ import annotations


class TodoError(Exception):
    """Base class for all reported errors."""


class NotFoundError(TodoError):
    """Unknown task id, category name or tag name."""


class ValidationError(TodoError):
    """Bad user input: date format, priority range, names, formats."""


class ImportFormatError(TodoError):
    """File content does not parse as the declared format."""

    def __init__(self, message: str, *, path: str | None = None, row: int | None = None) -> None:
        prefix = []
        if path:
            prefix.append(path)
        if row is not None:
            prefix.append(f"row {row}")
        full = f"{': '.join(prefix)}: {message}" if prefix else message
        super().__init__(full)
        self.path = path
        self.row = row


class StorageError(TodoError):
    """Database I/O or constraint failure."""


class FileAccessError(TodoError):
    """Import/export file could not be read or written."""
