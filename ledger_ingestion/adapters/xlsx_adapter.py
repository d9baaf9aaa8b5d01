"""
XLSX source adapter for bank statement and register exports.

Options:
  sheet: 0-based sheet index (int) or sheet name (str). Default: active sheet.
  skip_rows: rows to skip at the top of the sheet. Default: 0.
  header_row: 0-based row index (after skip_rows) holding the column names.
    When omitted, the first of the top 15 rows containing at least two
    ledger-like column names (date, amount, type, description, ...) is used.

Cells are returned as-is except strings, which are stripped (blank -> None),
and whole-number floats, which become ints.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Iterator

import openpyxl

from ledger_ingestion.adapters.base import SAMPLE_SIZE, SourceProbe

_HEADER_KEYWORDS = frozenset({
    "id", "date", "payment_date", "transaction date", "value date",
    "amount", "type", "description", "narration", "reference",
    "payment_method", "source_type", "balance", "category",
})

_HEADER_SEARCH_ROWS = 15


def _cell(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return value.strip() or None
    return value


def _header_name(value: Any, position: int) -> str:
    text = re.sub(r"\s+", " ", str(value)).strip() if value is not None else ""
    return text or f"column_{position + 1}"


def _detect_header_row(rows: list[tuple[Any, ...]]) -> int:
    for index, row in enumerate(rows[:_HEADER_SEARCH_ROWS]):
        names = {str(v).strip().lower() for v in row if v is not None}
        if len(names & _HEADER_KEYWORDS) >= 2:
            return index
    return 0


class XlsxSourceAdapter:
    """Read .xlsx sheets as one dict per data row."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        yield from self._rows(source_path, options)

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        rows = list(self._rows(source_path, options))
        columns: tuple[str, ...] = tuple(rows[0].keys()) if rows else ()
        return SourceProbe(
            row_count=len(rows),
            columns=columns,
            sample_rows=tuple(rows[:SAMPLE_SIZE]),
        )

    def _rows(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        wb = openpyxl.load_workbook(Path(source_path), read_only=True, data_only=True)
        try:
            sheet = self._sheet(wb, options.get("sheet"))
            skip_rows = int(options.get("skip_rows", 0))
            rows = list(sheet.iter_rows(min_row=1 + skip_rows, values_only=True))
            if not rows:
                return

            header_row = options.get("header_row")
            hi = int(header_row) if header_row is not None else _detect_header_row(rows)

            headers: list[str] = []
            for position, value in enumerate(rows[hi]):
                name = base = _header_name(value, position)
                suffix = 0
                while name in headers:
                    suffix += 1
                    name = f"{base}_{suffix}"
                headers.append(name)

            for row in rows[hi + 1:]:
                values = [_cell(v) for v in row[: len(headers)]]
                if all(v is None for v in values):
                    continue
                yield dict(zip(headers, values))
        finally:
            wb.close()

    @staticmethod
    def _sheet(wb: Any, ref: int | str | None) -> Any:
        if ref is None:
            return wb.active
        if isinstance(ref, int):
            return wb.worksheets[ref]
        return wb[ref]
