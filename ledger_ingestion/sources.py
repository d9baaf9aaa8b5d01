"""
Build ``SourceFetch`` values from files and tables.

The aggregator only knows fetch callables; these helpers bind an adapter,
a path or table, and an optional column rename map into one.

Usage:
    from ledger_ingestion.sources import file_source, sql_source

    sources = [
        file_source(SourceType.PAYMENT, "exports/payments.csv"),
        file_source(
            SourceType.BANK_TRANSACTION, "exports/statement.xlsx",
            field_map={"Txn Date": "date", "Narration": "description"},
        ),
        sql_source(SourceType.EXPENSE, engine, "expenses", date_column="date"),
    ]
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from sqlalchemy.engine import Engine

from ledger_ingestion.adapters.base import SourceAdapter
from ledger_ingestion.adapters.csv_adapter import CsvSourceAdapter
from ledger_ingestion.adapters.json_adapter import JsonSourceAdapter
from ledger_ingestion.adapters.sql_source import SqlTableSource
from ledger_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter
from ledger_kernel.domain.ledger_types import (
    CancellationToken,
    DateRange,
    SourceFetch,
    SourceType,
)

_ADAPTERS_BY_SUFFIX: dict[str, type] = {
    ".csv": CsvSourceAdapter,
    ".json": JsonSourceAdapter,
    ".jsonl": JsonSourceAdapter,
    ".xlsx": XlsxSourceAdapter,
}


def adapter_for(path: Path | str) -> SourceAdapter:
    """Pick an adapter from the file suffix."""
    suffix = Path(path).suffix.lower()
    try:
        return _ADAPTERS_BY_SUFFIX[suffix]()
    except KeyError:
        raise ValueError(
            f"No source adapter for {suffix or 'extensionless'} file {path}; "
            f"expected one of {', '.join(sorted(_ADAPTERS_BY_SUFFIX))}"
        ) from None


def rename_fields(row: Mapping[str, Any], field_map: Mapping[str, str]) -> dict[str, Any]:
    """Rename keys found in ``field_map``; other keys pass through."""
    return {field_map.get(key, key): value for key, value in row.items()}


def file_source(
    source_type: SourceType | str,
    path: Path | str,
    adapter: SourceAdapter | None = None,
    options: dict[str, Any] | None = None,
    field_map: Mapping[str, str] | None = None,
    name: str | None = None,
) -> SourceFetch:
    """
    Wrap a file adapter as a SourceFetch.

    The file is read when the fetch runs, not here, so a missing file
    surfaces as a failed source in the aggregation result.  A cancelled
    token stops the read between rows.
    """
    path = Path(path)
    adapter = adapter or adapter_for(path)
    opts = dict(options or {})
    if path.suffix.lower() == ".jsonl":
        opts.setdefault("format", "jsonl")

    label = name or path.name

    def fetch(cancel_token: CancellationToken | None = None) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        for row in adapter.read(path, opts):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled(label)
            rows.append(rename_fields(row, field_map) if field_map else row)
        return rows

    return SourceFetch(source_type, fetch, name=name)


def sql_source(
    source_type: SourceType | str,
    engine: Engine,
    table_name: str,
    date_column: str | None = None,
    date_range: DateRange | None = None,
    name: str | None = None,
) -> SourceFetch:
    """Wrap a table read as a SourceFetch."""
    return SourceFetch(
        source_type,
        SqlTableSource(engine, table_name, date_column=date_column, date_range=date_range),
        name=name,
    )
