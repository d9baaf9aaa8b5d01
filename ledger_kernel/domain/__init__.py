"""
Pure domain layer.

This module contains immutable ledger values and parsing helpers
with NO dependencies on:
- Database
- Wall-clock time (use an injected Clock)
- I/O

All domain objects are immutable and deterministic.
"""

from ledger_kernel.domain.amounts import ZERO, coerce_amount, require_amount
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dates import parse_business_date, parse_timestamp, to_utc
from ledger_kernel.domain.ledger_types import (
    ALL,
    AccountLedgerView,
    ActivityClass,
    AggregationResult,
    BalancedEntry,
    CancellationToken,
    DateRange,
    Direction,
    EntryCategory,
    LedgerEntry,
    ObligationStatus,
    PaymentStatus,
    SkippedRecord,
    SortOrder,
    SourceFetch,
    SourceType,
)

__all__ = [
    "ALL",
    "ZERO",
    "AccountLedgerView",
    "ActivityClass",
    "AggregationResult",
    "BalancedEntry",
    "CancellationToken",
    "Clock",
    "DateRange",
    "DeterministicClock",
    "Direction",
    "EntryCategory",
    "LedgerEntry",
    "ObligationStatus",
    "PaymentStatus",
    "SkippedRecord",
    "SortOrder",
    "SourceFetch",
    "SourceType",
    "SystemClock",
    "coerce_amount",
    "parse_business_date",
    "parse_timestamp",
    "require_amount",
    "to_utc",
]
