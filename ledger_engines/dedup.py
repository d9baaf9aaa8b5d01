"""
Module: ledger_engines.dedup
Responsibility:
    Remove entries that describe the same economic event twice.  The same
    customer payment often appears once in the payments collection and once
    again as a bank deposit; both normalize to identical date, description,
    amount, direction and category.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - First occurrence in input order wins.
    - Idempotent: ``dedupe(dedupe(xs)) == dedupe(xs)``.
    - Single O(n) pass keyed on ``LedgerEntry.dedup_key``.

Failure modes:
    - None.  Any iterable of entries is accepted; an empty input yields an
      empty output.

Usage:
    from ledger_engines.dedup import Deduplicator

    unique = Deduplicator().dedupe(entries)
    groups = Deduplicator().find_duplicates(entries)  # for review screens
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ledger_kernel.domain.ledger_types import LedgerEntry
from ledger_kernel.logging_config import get_logger
from ledger_engines.tracer import traced_engine

logger = get_logger("engines.dedup")


@dataclass(frozen=True)
class DuplicateGroup:
    """
    Entries that collided on one dedup key.

    ``kept`` is the entry ``dedupe`` retains; ``dropped`` are the later
    collisions in input order.
    """

    key: tuple
    kept: LedgerEntry
    dropped: tuple[LedgerEntry, ...]

    @property
    def source_types(self) -> tuple[str | None, ...]:
        """Source type of every member, kept entry first."""
        members = (self.kept, *self.dropped)
        return tuple(e.source_type.value if e.source_type else None for e in members)


class Deduplicator:
    """
    Collapse entries with identical (date, description, amount, direction,
    category).

    Contract:
        Exact match on the key.  Two genuinely distinct events that share
        every key field on one day are merged; ``find_duplicates`` exposes
        such merges so a host can review them.
    """

    @traced_engine("dedup", "1.0")
    def dedupe(self, entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
        seen: set[tuple] = set()
        unique: list[LedgerEntry] = []
        total = 0
        for entry in entries:
            total += 1
            key = entry.dedup_key
            if key in seen:
                continue
            seen.add(key)
            unique.append(entry)

        removed = total - len(unique)
        if removed:
            logger.info("duplicates_removed", extra={
                "input_count": total,
                "output_count": len(unique),
                "duplicates_removed": removed,
            })
        return unique

    def find_duplicates(self, entries: Iterable[LedgerEntry]) -> list[DuplicateGroup]:
        """
        Collision groups in order of first occurrence.

        Keys seen only once are not reported.
        """
        groups: dict[tuple, list[LedgerEntry]] = {}
        for entry in entries:
            groups.setdefault(entry.dedup_key, []).append(entry)

        return [
            DuplicateGroup(key=key, kept=members[0], dropped=tuple(members[1:]))
            for key, members in groups.items()
            if len(members) > 1
        ]
