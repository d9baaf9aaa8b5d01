"""
Pytest fixtures for the ledger engine test suite.

Provides:
- Structured logging configured for the session, plus a log capture fixture
- A deterministic clock
- Builders for raw source records and ledger entries
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.ledger_types import (
    Direction,
    EntryCategory,
    LedgerEntry,
    SourceType,
)
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_engines.normalizer import TransactionNormalizer

AS_OF = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            aggregator.aggregate(sources)
            logs = captured_logs()
            assert any(r["message"] == "aggregation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock and engines
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(AS_OF)


@pytest.fixture
def normalizer(clock) -> TransactionNormalizer:
    return TransactionNormalizer(clock=clock)


# =============================================================================
# Builders
# =============================================================================


def make_entry(
    entry_id: str = "payment-1",
    day: date | str = date(2024, 3, 1),
    amount: Decimal | str = "100",
    direction: Direction = Direction.INCOME,
    category: EntryCategory = EntryCategory.PAYMENT,
    description: str = "Payment from Asha Traders",
    created_at: datetime | str = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc),
    **kwargs,
) -> LedgerEntry:
    """Build a LedgerEntry with sensible defaults."""
    return LedgerEntry(
        id=entry_id,
        date=day,
        created_at=created_at,
        description=description,
        direction=direction,
        category=category,
        amount=Decimal(str(amount)),
        **kwargs,
    )


@pytest.fixture
def entry_factory():
    return make_entry


@pytest.fixture
def sample_records() -> dict[SourceType, list[dict]]:
    """One small batch per source type, as upstream APIs return them."""
    return {
        SourceType.PAYMENT: [
            {"id": "p1", "payment_date": "2024-03-01", "amount": "500",
             "customer_name": "Asha Traders", "payment_method": "upi",
             "created_at": "2024-03-01T10:00:00Z"},
            {"id": "p2", "payment_date": "02/03/2024", "amount": 250,
             "invoices": {"customer_name": "Ravi Stores"},
             "created_at": "2024-03-02T09:00:00Z"},
        ],
        SourceType.BANK_TRANSACTION: [
            {"id": "b1", "date": "2024-03-01", "type": "deposit", "amount": "500",
             "description": "Payment from Asha Traders", "source_type": "sales_payment",
             "payment_method": "upi", "created_at": "2024-03-01T10:05:00Z"},
            {"id": "b2", "date": "2024-03-03", "type": "withdrawal", "amount": "1,200",
             "description": "Vendor Payment - Steel Co", "created_at": "2024-03-03T11:00:00Z"},
        ],
        SourceType.EXPENSE: [
            {"id": "e1", "date": "2024-03-02", "amount": "80.50", "category": "Office",
             "created_at": "2024-03-02T15:00:00Z"},
        ],
        SourceType.INVESTMENT: [
            {"id": "i1", "investment_date": "2024-03-04", "amount": "10000",
             "partner_name": "Meera", "created_at": "2024-03-04T08:00:00Z"},
        ],
    }
