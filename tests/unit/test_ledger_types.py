"""
Unit tests for the ledger value types.

Covers LedgerEntry coercion and validation, DateRange bounds and the
AggregationResult convenience properties.
"""

from dataclasses import FrozenInstanceError
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from ledger_kernel.domain.ledger_types import (
    AggregationResult,
    CancellationToken,
    DateRange,
    Direction,
    EntryCategory,
    LedgerEntry,
    SkippedRecord,
    SourceFetch,
    SourceType,
)
from ledger_kernel.exceptions import (
    FetchCancelledError,
    MalformedDateError,
    SourceFetchError,
    ValidationError,
)


def _entry(**overrides):
    fields = dict(
        id="expense-e1",
        date="2024-03-02",
        created_at="2024-03-02T15:00:00Z",
        description="Office Expense",
        direction="expense",
        category="expense",
        amount="80.50",
    )
    fields.update(overrides)
    return LedgerEntry(**fields)


class TestLedgerEntry:
    """Construction-time coercion."""

    def test_raw_values_coerced(self):
        entry = _entry()

        assert entry.date == date(2024, 3, 2)
        assert entry.created_at == datetime(2024, 3, 2, 15, 0, tzinfo=timezone.utc)
        assert entry.amount == Decimal("80.50")
        assert entry.direction == Direction.EXPENSE
        assert entry.category == EntryCategory.EXPENSE
        assert entry.payment_method == "cash"

    def test_signed_amount(self):
        assert _entry().signed_amount == Decimal("-80.50")
        assert _entry(direction=Direction.INCOME, category="payment").signed_amount == Decimal("80.50")

    def test_dedup_key_ignores_id_and_method(self):
        a = _entry(id="expense-e1", payment_method="upi")
        b = _entry(id="bank_transaction-b7", payment_method="cash")

        assert a.dedup_key == b.dedup_key

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            _entry(amount="-1")

    def test_malformed_date_rejected(self):
        with pytest.raises(MalformedDateError):
            _entry(date="March 2nd")

    def test_unknown_category_rejected(self):
        with pytest.raises(ValueError):
            _entry(category="gift")

    def test_frozen(self):
        entry = _entry()

        with pytest.raises(FrozenInstanceError):
            entry.amount = Decimal("1")


class TestDateRange:
    """Inclusive calendar-day windows."""

    def test_contains_inclusive(self):
        window = DateRange(date(2024, 3, 1), date(2024, 3, 31))

        assert window.contains(date(2024, 3, 1))
        assert window.contains(date(2024, 3, 31))
        assert not window.contains(date(2024, 2, 29))
        assert not window.contains(date(2024, 4, 1))

    def test_all_is_unbounded(self):
        assert DateRange.all().is_unbounded
        assert DateRange.all().contains(date(1900, 1, 1))

    def test_parse(self):
        assert DateRange.parse("01/03/2024", "all") == DateRange(date(2024, 3, 1), None)
        assert DateRange.parse("ALL", "2024-03-31") == DateRange(None, date(2024, 3, 31))
        assert DateRange.parse(None, None).is_unbounded

    def test_parse_malformed(self):
        with pytest.raises(MalformedDateError) as exc_info:
            DateRange.parse("2024-03-01", "end of month")

        assert exc_info.value.field == "to"

    def test_reversed_rejected(self):
        with pytest.raises(ValueError):
            DateRange(date(2024, 3, 2), date(2024, 3, 1))


class TestSourceFetch:
    def test_name_defaults_to_source_type(self):
        fetch = SourceFetch("payment", lambda: [])

        assert fetch.source_type == SourceType.PAYMENT
        assert fetch.name == "payment"

    def test_unknown_source_type(self):
        with pytest.raises(ValueError):
            SourceFetch("invoices", lambda: [])

    def test_run_without_token(self):
        fetch = SourceFetch(SourceType.EXPENSE, lambda: ({"id": "e1"},))

        assert fetch.run() == [{"id": "e1"}]

    def test_run_passes_token_to_fetch_that_declares_it(self):
        seen = []

        def fetch(cancel_token=None):
            seen.append(cancel_token)
            return [{"id": "e1"}]

        token = CancellationToken()
        SourceFetch(SourceType.EXPENSE, fetch).run(token)

        assert seen == [token]

    def test_run_keeps_zero_argument_fetch_working_with_token(self):
        fetch = SourceFetch(SourceType.EXPENSE, lambda: [{"id": "e1"}])

        assert fetch.run(CancellationToken()) == [{"id": "e1"}]

    def test_run_stops_between_records_once_cancelled(self):
        token = CancellationToken()
        produced = []

        def rows():
            for n in range(1, 4):
                produced.append(n)
                if n == 2:
                    token.cancel()
                yield {"id": f"e{n}"}

        with pytest.raises(FetchCancelledError) as exc_info:
            SourceFetch(SourceType.EXPENSE, rows, name="expenses").run(token)

        assert produced == [1, 2]
        assert exc_info.value.source_name == "expenses"
        assert exc_info.value.code == "FETCH_CANCELLED"

    def test_run_never_calls_fetch_when_already_cancelled(self):
        calls = []
        token = CancellationToken()
        token.cancel()

        with pytest.raises(FetchCancelledError):
            SourceFetch(SourceType.EXPENSE, lambda: calls.append(1) or []).run(token)

        assert calls == []


class TestAggregationResult:
    def test_warnings(self):
        assert not AggregationResult().has_warnings
        assert AggregationResult(
            skipped_records=(SkippedRecord("expense", "e1", "VALIDATION_ERROR", "bad"),)
        ).has_warnings

    def test_failed_source_names(self):
        result = AggregationResult(
            failed_sources=(SourceFetchError("bank", "timed out"), SourceFetchError("loans", "x")),
        )

        assert result.failed_source_names == ("bank", "loans")
        assert result.has_warnings
