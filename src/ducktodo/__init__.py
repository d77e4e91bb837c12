"""Command-line todo manager backed by DuckDB."""

__version__ = "1.2.0"
