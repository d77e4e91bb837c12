# src/ducktodo/formats/__init__.py

"""Import/export codecs keyed by format name."""

from __future__ import annotations

from ..core.ports import TaskCodec
from ..errors import ValidationError
from .csv_codec import CsvCodec
from .json_codec import JsonCodec
from .parquet_codec import ParquetCodec
from .xlsx_codec import ExcelCodec

_CODECS: dict[str, TaskCodec] = {
    "json": JsonCodec(),
    "csv": CsvCodec(),
    "xlsx": ExcelCodec(),
    "parquet": ParquetCodec(),
}
_ALIASES = {"excel": "xlsx", "ndjson": "json", "jsonl": "json"}

SUPPORTED_FORMATS = tuple(_CODECS)


def get_codec(fmt: str) -> TaskCodec:
    key = (fmt or "").strip().lower()
    key = _ALIASES.get(key, key)
    try:
        return _CODECS[key]
    except KeyError:
        raise ValidationError(
            f"Unsupported format '{fmt}'. Please use {', '.join(SUPPORTED_FORMATS)}."
        ) from None


__all__ = ["SUPPORTED_FORMATS", "get_codec"]
