"""
Module: ledger_engines.chrono
Responsibility:
    Order ledger entries by calendar date, breaking ties on the creation
    timestamp.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Dates are parsed to ``date`` before comparison; raw strings are never
      compared (``"02/01/2024"`` would otherwise sort after
      ``"2024-01-15"``).
    - ``created_at`` is compared in UTC; naive timestamps are read as UTC.
    - Stable: entries equal on both keys keep their input order in either
      direction.

Failure modes:
    - An entry whose date cannot be parsed is dropped with a warning
      (MalformedDateError is recovered here, not raised).

Usage:
    from ledger_engines.chrono import ChronoSorter
    from ledger_kernel.domain.ledger_types import SortOrder

    newest_first = ChronoSorter().sort(entries, SortOrder.DESCENDING)
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timezone
from typing import Any, TypeVar

from ledger_kernel.domain.dates import parse_business_date, parse_timestamp
from ledger_kernel.domain.ledger_types import SortOrder
from ledger_kernel.exceptions import MalformedDateError
from ledger_kernel.logging_config import get_logger
from ledger_engines.tracer import traced_engine

logger = get_logger("engines.chrono")

T = TypeVar("T")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ChronoSorter:
    """
    Sort anything exposing ``date`` and ``created_at``.

    Works on ``LedgerEntry`` and on lighter host objects alike; a missing or
    unparseable ``created_at`` sorts first within its day.
    """

    @traced_engine("chrono", "1.0", fingerprint_fields=("order",))
    def sort(
        self,
        entries: Iterable[T],
        order: SortOrder | str = SortOrder.DESCENDING,
    ) -> list[T]:
        order = SortOrder(order)

        keyed: list[tuple[tuple[date, datetime], T]] = []
        for entry in entries:
            try:
                day = parse_business_date(getattr(entry, "date", None))
            except MalformedDateError as exc:
                logger.warning("entry_dropped_malformed_date", extra={
                    "entry_id": getattr(entry, "id", None),
                    "date": str(exc.value),
                })
                continue
            keyed.append(((day, self._created_key(entry)), entry))

        # sorted() is stable with reverse=True as well
        keyed.sort(key=lambda pair: pair[0], reverse=order == SortOrder.DESCENDING)
        return [entry for _, entry in keyed]

    @staticmethod
    def _created_key(entry: Any) -> datetime:
        raw = getattr(entry, "created_at", None)
        if raw is None:
            return _EPOCH
        try:
            return parse_timestamp(raw)
        except MalformedDateError:
            return _EPOCH
