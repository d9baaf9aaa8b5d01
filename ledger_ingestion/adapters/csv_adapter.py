"""
CSV source adapter.

Uses csv.DictReader. Configurable: delimiter, encoding, skip_rows, quoting.
A UTF-8 byte order mark (common in spreadsheet exports) is stripped. Streams rows.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterator

from ledger_ingestion.adapters.base import SAMPLE_SIZE, SourceProbe, blank_to_none

_QUOTING = {
    "minimal": csv.QUOTE_MINIMAL,
    "all": csv.QUOTE_ALL,
    "none": csv.QUOTE_NONE,
}


def _encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() in ("utf-8", "utf8"):
        return "utf-8-sig"
    return enc


def _reader(f: Any, options: dict[str, Any]) -> csv.DictReader:
    for _ in range(int(options.get("skip_rows", 0))):
        next(f, None)
    quoting = _QUOTING.get(str(options.get("quoting", "minimal")).lower(), csv.QUOTE_MINIMAL)
    return csv.DictReader(f, delimiter=options.get("delimiter", ","), quoting=quoting)


class CsvSourceAdapter:
    """Read CSV exports as one dict per row."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        with Path(source_path).open("r", encoding=_encoding(options), newline="") as f:
            for row in _reader(f, options):
                cleaned = blank_to_none(row)
                if any(v is not None for v in cleaned.values()):
                    yield cleaned

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        encoding = _encoding(options)
        with Path(source_path).open("r", encoding=encoding, newline="") as f:
            reader = _reader(f, options)
            columns = tuple(reader.fieldnames or ())
            sample: list[dict[str, Any]] = []
            count = 0
            for row in reader:
                count += 1
                if len(sample) < SAMPLE_SIZE:
                    sample.append(blank_to_none(row))

        return SourceProbe(
            row_count=count,
            columns=columns,
            sample_rows=tuple(sample),
            encoding=encoding,
            detected_delimiter=options.get("delimiter", ","),
        )
