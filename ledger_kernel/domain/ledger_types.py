"""
Ledger types -- canonical, immutable money-movement values.

Responsibility:
    Define the single shape every upstream record is normalized into
    (``LedgerEntry``) and the projections computed from it
    (``AccountLedgerView``, ``ObligationStatus``, ``AggregationResult``).

Architecture position:
    Kernel > Domain -- pure frozen dataclasses and enums, zero I/O.
    Imported by engines, services, config and ingestion.

Invariants enforced:
    - ``LedgerEntry.amount`` is a Decimal and is never negative; the sign
      lives in ``direction``.
    - ``LedgerEntry.date`` is a calendar ``date``; ``created_at`` is a
      timezone-aware UTC ``datetime``.
    - All values are projections: recomputed per query, never persisted.

Failure modes:
    - ValidationError when an entry is built with a negative or non-numeric
      amount.
    - MalformedDateError when an entry is built with an unparseable date.
"""

from __future__ import annotations

import inspect
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from ledger_kernel.domain.amounts import ZERO, require_amount
from ledger_kernel.domain.dates import parse_business_date, parse_timestamp
from ledger_kernel.exceptions import FetchCancelledError, SourceFetchError


# =============================================================================
# Enums
# =============================================================================


class Direction(str, Enum):
    """Whether money came in or went out."""

    INCOME = "income"
    EXPENSE = "expense"


class EntryCategory(str, Enum):
    """Economic category of a ledger entry."""

    PAYMENT = "payment"
    INVESTMENT = "investment"
    WITHDRAWAL = "withdrawal"
    EXPENSE = "expense"
    VENDOR_PAYMENT = "vendor_payment"
    LIABILITY_PAYMENT = "liability_payment"
    LOAN_SETUP = "loan_setup"


class SourceType(str, Enum):
    """Upstream record collection a raw record was fetched from."""

    PAYMENT = "payment"
    INVESTMENT = "investment"
    WITHDRAWAL = "withdrawal"
    LIABILITY_PAYMENT = "liability_payment"
    VENDOR_PAYMENT = "vendor_payment"
    BANK_TRANSACTION = "bank_transaction"
    EXPENSE = "expense"
    LOAN_DISBURSEMENT = "loan_disbursement"


class SortOrder(str, Enum):
    """Traversal order for chronological sorting."""

    ASCENDING = "ascending"
    DESCENDING = "descending"


class PaymentStatus(str, Enum):
    """Settlement state of an obligation."""

    PAID = "paid"
    PARTIAL = "partial"
    UNPAID = "unpaid"


class ActivityClass(str, Enum):
    """Cash-flow statement grouping."""

    OPERATING = "operating"
    INVESTING = "investing"
    FINANCING = "financing"


# =============================================================================
# Ledger entries
# =============================================================================


@dataclass(frozen=True)
class LedgerEntry:
    """
    One normalized money-movement record.

    Contract:
        Frozen dataclass produced by the TransactionNormalizer.  ``id`` is
        namespaced by source type (``"payment-<record id>"``) so identifiers
        from different collections never collide.
    Guarantees:
        - ``amount >= 0`` and is a Decimal.
        - ``date`` is a ``date``; ``created_at`` is aware UTC.
    Non-goals:
        - Does not guarantee economic uniqueness; see ``dedup_key``.
    """

    id: str
    date: date
    created_at: datetime
    description: str
    direction: Direction
    category: EntryCategory
    amount: Decimal
    payment_method: str = "cash"
    subcategory: str | None = None
    reference: str | None = None
    related_party_name: str | None = None
    source_record_id: str | None = None
    source_type: SourceType | None = None
    memo: str | None = None
    account_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "amount",
            require_amount(self.amount, record_id=self.source_record_id),
        )
        if not isinstance(self.date, date) or isinstance(self.date, datetime):
            object.__setattr__(
                self,
                "date",
                parse_business_date(self.date, record_id=self.source_record_id),
            )
        object.__setattr__(
            self,
            "created_at",
            parse_timestamp(self.created_at, record_id=self.source_record_id),
        )
        object.__setattr__(self, "direction", Direction(self.direction))
        object.__setattr__(self, "category", EntryCategory(self.category))

    @property
    def is_income(self) -> bool:
        return self.direction == Direction.INCOME

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the direction applied: positive in, negative out."""
        return self.amount if self.is_income else -self.amount

    @property
    def dedup_key(self) -> tuple[date, str, Decimal, Direction, EntryCategory]:
        """Collision key used by the Deduplicator."""
        return (self.date, self.description, self.amount, self.direction, self.category)


@dataclass(frozen=True)
class BalancedEntry:
    """A ledger entry with the account balance on either side of it."""

    entry: LedgerEntry
    balance_before: Decimal
    balance_after: Decimal


@dataclass(frozen=True)
class AccountLedgerView:
    """
    Transaction history of one account with running balances.

    Contract:
        ``lines`` are newest-first.  ``lines[0].balance_after`` equals
        ``current_balance`` and each line's ``balance_before`` equals the
        next (older) line's ``balance_after``.
    Non-goals:
        - Never persisted; a projection recomputed per query.
    """

    current_balance: Decimal
    lines: tuple[BalancedEntry, ...] = ()

    @property
    def entry_count(self) -> int:
        return len(self.lines)

    @property
    def opening_balance(self) -> Decimal:
        """Balance before the oldest entry (``current_balance`` if empty)."""
        if not self.lines:
            return self.current_balance
        return self.lines[-1].balance_before

    @property
    def total_inflows(self) -> Decimal:
        return sum((ln.entry.amount for ln in self.lines if ln.entry.is_income), ZERO)

    @property
    def total_outflows(self) -> Decimal:
        return sum(
            (ln.entry.amount for ln in self.lines if not ln.entry.is_income), ZERO
        )

    def oldest_first(self) -> tuple[BalancedEntry, ...]:
        """Lines in chronological order."""
        return tuple(reversed(self.lines))


# =============================================================================
# Obligations
# =============================================================================


@dataclass(frozen=True)
class ObligationStatus:
    """
    Paid / partial / unpaid classification of an amount due.

    ``total_waived`` counts toward settlement through ``effective_paid`` but
    is kept apart from ``total_paid`` for reporting.
    """

    total_due: Decimal
    total_paid: Decimal
    total_waived: Decimal
    effective_paid: Decimal
    balance_due: Decimal
    status: PaymentStatus

    @property
    def is_settled(self) -> bool:
        return self.status == PaymentStatus.PAID

    @property
    def waived_share(self) -> Decimal:
        """Fraction of ``effective_paid`` that came from waivers (0 when none)."""
        if self.effective_paid <= ZERO:
            return ZERO
        return self.total_waived / self.effective_paid


# =============================================================================
# Aggregation boundary
# =============================================================================

ALL = "all"


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive calendar-day window.  ``None`` on either end means unbounded
    (the "all" sentinel).  ``end`` covers the whole of its calendar day.
    """

    start: date | None = None
    end: date | None = None

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValueError(f"DateRange start {self.start} is after end {self.end}")

    @classmethod
    def all(cls) -> DateRange:
        return cls(None, None)

    @classmethod
    def parse(cls, start: object = ALL, end: object = ALL) -> DateRange:
        """Build a range from ISO / DD/MM/YYYY strings, dates or ``"all"``."""
        return cls(_parse_bound(start, "from"), _parse_bound(end, "to"))

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, day: date) -> bool:
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


def _parse_bound(value: object, field: str) -> date | None:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() == ALL:
        return None
    return parse_business_date(value, field=field)


class CancellationToken:
    """
    Cooperative cancellation signal shared between a caller, the aggregator
    and the fetch callables it runs.

    Python threads cannot be killed, so a fetch stops early only if it
    checks the token; ``raise_if_cancelled`` is the usual check.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    def raise_if_cancelled(self, source_name: str | None = None) -> None:
        if self._event.is_set():
            raise FetchCancelledError(source_name)


def _accepts_cancel_token(fetch: Callable[..., Any]) -> bool:
    try:
        params = inspect.signature(fetch).parameters
    except (TypeError, ValueError):
        return False
    return "cancel_token" in params or any(
        p.kind is inspect.Parameter.VAR_KEYWORD for p in params.values()
    )


@dataclass(frozen=True)
class SourceFetch:
    """
    One source collection: its type and the callable that loads it.

    ``fetch`` takes no arguments, or a ``cancel_token`` keyword when it can
    stop early (see ``run``).
    """

    source_type: SourceType
    fetch: Callable[..., Iterable[Mapping[str, Any]]]
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "source_type", SourceType(self.source_type))
        if self.name is None:
            object.__setattr__(self, "name", self.source_type.value)

    def run(self, cancel_token: CancellationToken | None = None) -> list[Mapping[str, Any]]:
        """
        Call ``fetch`` and collect its records.

        With a token, the token is passed to fetch callables that declare
        ``cancel_token`` and is checked between records, so a cancelled
        fetch raises FetchCancelledError instead of running to the end.
        """
        if cancel_token is None:
            return list(self.fetch())
        cancel_token.raise_if_cancelled(self.name)
        if _accepts_cancel_token(self.fetch):
            rows = self.fetch(cancel_token=cancel_token)
        else:
            rows = self.fetch()
        records: list[Mapping[str, Any]] = []
        for row in rows:
            cancel_token.raise_if_cancelled(self.name)
            records.append(row)
        return records


@dataclass(frozen=True)
class SkippedRecord:
    """A record dropped during normalization, reported to the host."""

    source_name: str
    record_id: str | None
    code: str
    reason: str


@dataclass(frozen=True)
class AggregationResult:
    """
    Unified cashflow feed plus everything that was left out of it.

    The host renders ``entries`` and shows a non-fatal notice built from
    ``failed_sources`` and ``skipped_records``.
    """

    entries: tuple[LedgerEntry, ...] = ()
    failed_sources: tuple[SourceFetchError, ...] = ()
    skipped_records: tuple[SkippedRecord, ...] = ()
    duplicates_removed: int = 0
    sources_loaded: tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_warnings(self) -> bool:
        return bool(self.failed_sources or self.skipped_records)

    @property
    def failed_source_names(self) -> tuple[str, ...]:
        return tuple(f.source_name for f in self.failed_sources)
