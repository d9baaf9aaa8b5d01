"""
Module: ledger_engines.normalizer
Responsibility:
    Convert each heterogeneous upstream record (customer payment, partner
    investment or withdrawal, liability payment, vendor payment, expense,
    loan disbursement, bank transaction) into one canonical ``LedgerEntry``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ledger_kernel.

Invariants enforced:
    - Purity: "today" and "now" come from the injected Clock, never from
      the wall clock.
    - Entry ids are namespaced by source type so ids from different
      collections never collide.
    - Amounts are Decimal and never negative; the sign lives in direction.
    - Missing optional fields (date, description, payment method) degrade
      to defaults instead of failing.

Failure modes:
    - ValidationError when the amount is absent, unparseable or negative
      after coercion (and for a bank transaction with no usable type).
    - MalformedDateError when a business date is in neither ISO nor
      DD/MM/YYYY form.
    - UnknownSourceTypeError for a source type with no mapping.
    ``normalize_batch`` recovers all three per record.

Usage:
    from ledger_engines.normalizer import TransactionNormalizer
    from ledger_kernel.domain.ledger_types import SourceType

    normalizer = TransactionNormalizer(clock=DeterministicClock())
    entry = normalizer.normalize(
        {"id": "42", "payment_date": "2024-03-01", "amount": "500",
         "customer_name": "Asha Traders"},
        SourceType.PAYMENT,
    )
    entry.description  # "Payment from Asha Traders"
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from ledger_kernel.domain.amounts import coerce_amount, require_amount
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dates import parse_business_date, parse_timestamp
from ledger_kernel.domain.ledger_types import (
    Direction,
    EntryCategory,
    LedgerEntry,
    SkippedRecord,
    SourceType,
)
from ledger_kernel.exceptions import (
    MalformedDateError,
    RecordError,
    UnknownSourceTypeError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_engines.tracer import traced_engine

logger = get_logger("engines.normalizer")

DEFAULT_PAYMENT_METHOD = "cash"

_DATE_FIELDS: dict[SourceType, tuple[str, ...]] = {
    SourceType.PAYMENT: ("payment_date", "date"),
    SourceType.INVESTMENT: ("investment_date", "date"),
    SourceType.WITHDRAWAL: ("withdrawal_date", "date"),
    SourceType.LIABILITY_PAYMENT: ("payment_date", "date"),
    SourceType.VENDOR_PAYMENT: ("payment_date", "date"),
    SourceType.BANK_TRANSACTION: ("date", "transaction_date"),
    SourceType.EXPENSE: ("date", "expense_date"),
    SourceType.LOAN_DISBURSEMENT: ("disbursement_date", "date"),
}

_METHOD_FIELDS = ("payment_method", "method")
_REFERENCE_FIELDS = ("reference", "reference_number", "receipt_number", "transaction_id")
_ACCOUNT_FIELDS = ("bank_account_id", "account_id")

# Bank transaction source_type -> category
_BANK_SOURCE_CATEGORIES: dict[str, EntryCategory] = {
    "sales_payment": EntryCategory.PAYMENT,
    "payment": EntryCategory.PAYMENT,
    "vendor_payment": EntryCategory.VENDOR_PAYMENT,
    "withdrawal": EntryCategory.WITHDRAWAL,
    "liability_payment": EntryCategory.LIABILITY_PAYMENT,
    "expense": EntryCategory.EXPENSE,
    "investment": EntryCategory.INVESTMENT,
    "loan_disbursement": EntryCategory.LOAN_SETUP,
}

# Older bank rows carry no source_type; fall back to description patterns.
_BANK_DESCRIPTION_PATTERNS: tuple[tuple[tuple[str, ...], EntryCategory], ...] = (
    (("Vendor Payment",), EntryCategory.VENDOR_PAYMENT),
    (("Loan Payment", "Liability"), EntryCategory.LIABILITY_PAYMENT),
    (("Withdrawal", "Owner"), EntryCategory.WITHDRAWAL),
    (("Expense:",), EntryCategory.EXPENSE),
    (("Payment received",), EntryCategory.PAYMENT),
)

_INFLOW_TYPES = frozenset({"deposit", "credit", "income", "inflow"})
_OUTFLOW_TYPES = frozenset({"withdrawal", "debit", "expense", "outflow"})


@dataclass(frozen=True)
class NormalizationResult:
    """Entries normalized from one source plus the records that were dropped."""

    entries: tuple[LedgerEntry, ...] = ()
    skipped: tuple[SkippedRecord, ...] = ()

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


@dataclass(frozen=True)
class _Mapped:
    """Source-specific part of an entry."""

    direction: Direction
    category: EntryCategory
    amount: Decimal
    description: str
    related_party_name: str | None = None
    subcategory: str | None = None
    memo: str | None = None


def _first(record: Mapping[str, Any], *keys: str) -> Any:
    """First present, non-blank value among ``keys``."""
    for key in keys:
        val = record.get(key)
        if val is None:
            continue
        if isinstance(val, str) and not val.strip():
            continue
        return val
    return None


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _nested_name(record: Mapping[str, Any], relation: str, key: str) -> str | None:
    """Read ``record[relation][key]`` where the relation is a dict or list of dicts."""
    related = record.get(relation)
    if isinstance(related, list):
        related = related[0] if related else None
    if isinstance(related, Mapping):
        return _text(related.get(key))
    return None


def _string_keys(value: Any) -> Any:
    # sort_keys cannot order mixed int and str keys
    if isinstance(value, Mapping):
        return {str(k): _string_keys(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_string_keys(v) for v in value]
    return value


def _content_hash(record: Mapping[str, Any]) -> str:
    canonical = json.dumps(_string_keys(record), sort_keys=True, default=str)
    return "anon-" + hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def coerce_source_type(source_type: SourceType | str) -> SourceType:
    """Accept a SourceType or its string value."""
    try:
        return SourceType(source_type)
    except ValueError as exc:
        raise UnknownSourceTypeError(str(source_type)) from exc


class TransactionNormalizer:
    """
    Map raw source records to canonical ledger entries.

    Contract:
        Pure functions over the record and the injected clock.
    Guarantees:
        - ``normalize`` returns exactly one LedgerEntry or raises a
          RecordError subclass.
        - ``normalize_batch`` never raises for bad records; it returns them
          as SkippedRecord values.
    Non-goals:
        - Does not deduplicate or sort (see Deduplicator, ChronoSorter).
    """

    def __init__(
        self,
        clock: Clock | None = None,
        default_payment_method: str = DEFAULT_PAYMENT_METHOD,
    ) -> None:
        self._clock = clock or SystemClock()
        self._default_payment_method = default_payment_method

    # -----------------------------------------------------------------
    # Single record
    # -----------------------------------------------------------------

    def normalize(
        self,
        record: Mapping[str, Any],
        source_type: SourceType | str,
    ) -> LedgerEntry:
        """
        Normalize one record.

        Raises:
            ValidationError: amount absent/negative, or record not a mapping.
            MalformedDateError: business date unparseable.
            UnknownSourceTypeError: no mapping for ``source_type``.
        """
        source_type = coerce_source_type(source_type)
        if not isinstance(record, Mapping):
            raise ValidationError(
                "record",
                f"expected a mapping, got {type(record).__name__}",
                source_type=source_type.value,
            )

        record_id = _text(record.get("id"))
        mapper = self._MAPPERS[source_type]
        mapped = mapper(self, record, record_id)

        raw_date = _first(record, *_DATE_FIELDS[source_type])
        if raw_date is None:
            day = self._clock.today()
            logger.debug("record_date_defaulted", extra={
                "source_type": source_type.value,
                "record_id": record_id,
                "date": day.isoformat(),
            })
        else:
            day = parse_business_date(raw_date, record_id=record_id)

        created_at = self._created_at(record, record_id)

        return LedgerEntry(
            id=f"{source_type.value}-{record_id or _content_hash(record)}",
            date=day,
            created_at=created_at,
            description=mapped.description,
            direction=mapped.direction,
            category=mapped.category,
            amount=mapped.amount,
            payment_method=_text(_first(record, *_METHOD_FIELDS))
            or self._default_payment_method,
            subcategory=mapped.subcategory,
            reference=_text(_first(record, *_REFERENCE_FIELDS)),
            related_party_name=mapped.related_party_name,
            source_record_id=record_id,
            source_type=source_type,
            memo=mapped.memo,
            account_id=_text(_first(record, *_ACCOUNT_FIELDS)),
        )

    # -----------------------------------------------------------------
    # Batch
    # -----------------------------------------------------------------

    @traced_engine("normalizer", "1.0", fingerprint_fields=("source_type", "source_name"))
    def normalize_batch(
        self,
        records: Iterable[Mapping[str, Any]],
        source_type: SourceType | str,
        source_name: str | None = None,
    ) -> NormalizationResult:
        """
        Normalize every record of one source, dropping the bad ones.

        Postconditions:
            - ``len(entries) + len(skipped)`` equals the number of records.
            - Entries keep the input order.
        Raises:
            UnknownSourceTypeError: if ``source_type`` has no mapping.
        """
        source_type = coerce_source_type(source_type)
        name = source_name or source_type.value

        entries: list[LedgerEntry] = []
        skipped: list[SkippedRecord] = []

        for record in records:
            try:
                entries.append(self.normalize(record, source_type))
            except RecordError as exc:
                record_id = exc.record_id
                if record_id is None and isinstance(record, Mapping):
                    record_id = _text(record.get("id"))
                logger.warning("record_skipped", extra={
                    "source_name": name,
                    "source_type": source_type.value,
                    "record_id": record_id,
                    "error_code": exc.code,
                    "reason": str(exc),
                })
                skipped.append(SkippedRecord(
                    source_name=name,
                    record_id=record_id,
                    code=exc.code,
                    reason=str(exc),
                ))

        logger.info("source_normalized", extra={
            "source_name": name,
            "source_type": source_type.value,
            "entry_count": len(entries),
            "skipped_count": len(skipped),
        })

        return NormalizationResult(entries=tuple(entries), skipped=tuple(skipped))

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------

    def _created_at(self, record: Mapping[str, Any], record_id: str | None):
        raw = _first(record, "created_at")
        if raw is None:
            return self._clock.now()
        try:
            return parse_timestamp(raw, record_id=record_id)
        except MalformedDateError:
            # Only a tie-breaker; fall back rather than drop the record.
            logger.warning("record_created_at_unparseable", extra={
                "record_id": record_id,
                "created_at": str(raw),
            })
            return self._clock.now()

    @staticmethod
    def _amount(
        record: Mapping[str, Any],
        record_id: str | None,
        source_type: SourceType,
        *fields: str,
    ) -> Decimal:
        raw = _first(record, *fields)
        return require_amount(
            raw,
            field=fields[0],
            record_id=record_id,
            source_type=source_type.value,
        )

    # -----------------------------------------------------------------
    # Per-source mappings
    # -----------------------------------------------------------------

    def _map_payment(self, record: Mapping[str, Any], record_id: str | None) -> _Mapped:
        customer = (
            _text(record.get("customer_name"))
            or _nested_name(record, "invoices", "customer_name")
            or _nested_name(record, "customer", "name")
        )
        return _Mapped(
            direction=Direction.INCOME,
            category=EntryCategory.PAYMENT,
            amount=self._amount(record, record_id, SourceType.PAYMENT, "amount"),
            description=f"Payment from {customer or 'Customer'}",
            related_party_name=customer,
            memo=_text(record.get("description")),
        )

    def _map_investment(self, record: Mapping[str, Any], record_id: str | None) -> _Mapped:
        investor = _text(_first(record, "investor_name", "partner_name")) or _nested_name(
            record, "partners", "name"
        )
        default = f"Investment from {investor}" if investor else "Partner Investment"
        return _Mapped(
            direction=Direction.INCOME,
            category=EntryCategory.INVESTMENT,
            amount=self._amount(record, record_id, SourceType.INVESTMENT, "amount"),
            description=_text(record.get("description")) or default,
            related_party_name=investor,
            subcategory=_text(record.get("investment_type")),
        )

    def _map_withdrawal(self, record: Mapping[str, Any], record_id: str | None) -> _Mapped:
        partner = _text(record.get("partner_name")) or _nested_name(record, "partners", "name")
        return _Mapped(
            direction=Direction.EXPENSE,
            category=EntryCategory.WITHDRAWAL,
            amount=self._amount(record, record_id, SourceType.WITHDRAWAL, "amount"),
            description=_text(record.get("description")) or "Partner Withdrawal",
            related_party_name=partner,
            subcategory=_text(_first(record, "withdrawal_type", "category")),
        )

    def _map_liability_payment(
        self, record: Mapping[str, Any], record_id: str | None
    ) -> _Mapped:
        principal = coerce_amount(record.get("principal_amount"))
        interest = coerce_amount(record.get("interest_amount"))
        if principal is not None and interest is not None:
            amount = require_amount(
                principal + interest,
                field="principal_amount",
                record_id=record_id,
                source_type=SourceType.LIABILITY_PAYMENT.value,
            )
        else:
            amount = self._amount(
                record,
                record_id,
                SourceType.LIABILITY_PAYMENT,
                "total_amount",
                "payment_amount",
                "amount",
            )
        return _Mapped(
            direction=Direction.EXPENSE,
            category=EntryCategory.LIABILITY_PAYMENT,
            amount=amount,
            description=_text(record.get("description")) or "Loan Repayment",
            related_party_name=_text(_first(record, "lender_name", "liability_name")),
            subcategory=_text(record.get("liability_type")),
        )

    def _map_vendor_payment(
        self, record: Mapping[str, Any], record_id: str | None
    ) -> _Mapped:
        vendor = _text(_first(record, "vendor_name", "supplier_name")) or _nested_name(
            record, "vendors", "name"
        )
        default = f"Vendor Payment - {vendor}" if vendor else "Vendor Payment"
        return _Mapped(
            direction=Direction.EXPENSE,
            category=EntryCategory.VENDOR_PAYMENT,
            amount=self._amount(record, record_id, SourceType.VENDOR_PAYMENT, "amount"),
            description=_text(record.get("description")) or default,
            related_party_name=vendor,
        )

    def _map_expense(self, record: Mapping[str, Any], record_id: str | None) -> _Mapped:
        expense_category = _text(record.get("category"))
        return _Mapped(
            direction=Direction.EXPENSE,
            category=EntryCategory.EXPENSE,
            amount=self._amount(record, record_id, SourceType.EXPENSE, "amount"),
            description=_text(record.get("description"))
            or f"{expense_category or 'General'} Expense",
            related_party_name=_text(_first(record, "vendor_name", "entity_type")),
            subcategory=expense_category,
        )

    def _map_loan_disbursement(
        self, record: Mapping[str, Any], record_id: str | None
    ) -> _Mapped:
        lender = _text(record.get("lender_name"))
        return _Mapped(
            direction=Direction.INCOME,
            category=EntryCategory.LOAN_SETUP,
            amount=self._amount(
                record, record_id, SourceType.LOAN_DISBURSEMENT, "original_amount", "amount"
            ),
            description=_text(record.get("description")) or f"Loan from {lender or 'Lender'}",
            related_party_name=lender,
            subcategory=_text(record.get("loan_type")),
        )

    def _map_bank_transaction(
        self, record: Mapping[str, Any], record_id: str | None
    ) -> _Mapped:
        amount = self._amount(record, record_id, SourceType.BANK_TRANSACTION, "amount")

        tx_type = (_text(record.get("type")) or "").lower()
        if tx_type in _INFLOW_TYPES:
            direction = Direction.INCOME
        elif tx_type in _OUTFLOW_TYPES:
            direction = Direction.EXPENSE
        else:
            raise ValidationError(
                "type",
                f"expected deposit or withdrawal, got {record.get('type')!r}",
                record_id=record_id,
                source_type=SourceType.BANK_TRANSACTION.value,
            )

        description = _text(record.get("description")) or "Bank Transaction"
        return _Mapped(
            direction=direction,
            category=self._bank_category(record, description, direction),
            amount=amount,
            description=description,
            related_party_name=_text(record.get("party_name")),
            subcategory=_text(record.get("source_type")),
        )

    @staticmethod
    def _bank_category(
        record: Mapping[str, Any],
        description: str,
        direction: Direction,
    ) -> EntryCategory:
        source = (_text(record.get("source_type")) or "").lower()
        if source in _BANK_SOURCE_CATEGORIES:
            return _BANK_SOURCE_CATEGORIES[source]

        for patterns, category in _BANK_DESCRIPTION_PATTERNS:
            if any(p in description for p in patterns):
                return category

        if direction == Direction.INCOME:
            return EntryCategory.PAYMENT
        return EntryCategory.EXPENSE

    _MAPPERS = {
        SourceType.PAYMENT: _map_payment,
        SourceType.INVESTMENT: _map_investment,
        SourceType.WITHDRAWAL: _map_withdrawal,
        SourceType.LIABILITY_PAYMENT: _map_liability_payment,
        SourceType.VENDOR_PAYMENT: _map_vendor_payment,
        SourceType.EXPENSE: _map_expense,
        SourceType.LOAN_DISBURSEMENT: _map_loan_disbursement,
        SourceType.BANK_TRANSACTION: _map_bank_transaction,
    }
