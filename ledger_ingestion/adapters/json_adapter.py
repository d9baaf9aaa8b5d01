"""
JSON source adapter.

Handles a JSON array (``[{...}, {...}]``), an array nested under a dotted
``json_path`` (e.g. ``"data.payments"``, as returned by the finance API
routes) and JSON Lines (``format: jsonl``).  Nested relations such as a
payment's ``invoices`` object are passed through untouched.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator

from ledger_ingestion.adapters.base import SAMPLE_SIZE, SourceProbe


def _get_nested(data: Any, path: str) -> Any:
    """Follow a dot-separated path into dicts and lists; None when missing."""
    for key in path.split("."):
        key = key.strip()
        if not key:
            continue
        if isinstance(data, list):
            try:
                data = data[int(key)]
            except (ValueError, IndexError):
                return None
        elif isinstance(data, dict) and key in data:
            data = data[key]
        else:
            return None
    return data


class JsonSourceAdapter:
    """Read JSON arrays or JSON Lines files as one dict per record."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        encoding = options.get("encoding", "utf-8")

        if options.get("format", "array") == "jsonl":
            with Path(source_path).open("r", encoding=encoding) as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    item = json.loads(line)
                    if isinstance(item, dict):
                        yield item
            return

        with Path(source_path).open("r", encoding=encoding) as f:
            data = json.load(f)
        json_path = options.get("json_path")
        root = _get_nested(data, json_path) if json_path else data
        if not isinstance(root, list):
            raise ValueError(
                f"{source_path}: expected a JSON array"
                + (f" at {json_path!r}" if json_path else "")
            )
        for item in root:
            if isinstance(item, dict):
                yield item

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        rows = list(self.read(source_path, options))
        sample = rows[:SAMPLE_SIZE]
        seen: set[str] = set()
        for row in sample:
            seen.update(row.keys())
        return SourceProbe(
            row_count=len(rows),
            columns=tuple(sorted(seen)),
            sample_rows=tuple(sample),
            encoding=options.get("encoding", "utf-8"),
        )
