"""
Source adapter protocol and probe DTO.

Contract:
    SourceAdapter.read() yields one dict per upstream record (streaming).
    SourceAdapter.probe() returns a quick snapshot: row count, columns, sample rows.

Architecture: ledger_ingestion/adapters. File I/O only; records are handed to
the aggregator through ``ledger_ingestion.sources.file_source``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Protocol, runtime_checkable

SAMPLE_SIZE = 5


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for reading exported source files into record dicts."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        """Yield one dict per record without loading the whole file where possible."""
        ...

    def probe(self, source_path: Path, options: dict[str, Any]) -> "SourceProbe":
        ...


@dataclass(frozen=True)
class SourceProbe:
    """Result of probing a source file (row count, columns, first rows)."""

    row_count: int
    columns: tuple[str, ...]
    sample_rows: tuple[dict[str, Any], ...]
    encoding: str | None = None
    detected_delimiter: str | None = None


def blank_to_none(row: dict[str, Any]) -> dict[str, Any]:
    """Strip string cells; empty cells become None so defaults apply downstream."""
    cleaned: dict[str, Any] = {}
    for key, value in row.items():
        if key is None:
            continue
        if isinstance(value, str):
            value = value.strip() or None
        cleaned[str(key).strip()] = value
    return cleaned
