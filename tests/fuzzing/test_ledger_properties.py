"""
Property-based tests for the ledger engines.

Properties checked over generated feeds:
- Dedup is idempotent and never grows the feed
- Ascending and descending sorts are reverses of each other (no full ties)
- Backward running balances round-trip to the current balance
- Payment status never regresses as more is paid or waived
- Waiver allocation always sums to the waived amount
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from ledger_engines.chrono import ChronoSorter
from ledger_engines.dedup import Deduplicator
from ledger_engines.payment_status import PaymentStatusResolver
from ledger_engines.running_balance import RunningBalanceCalculator
from ledger_engines.waive_off import WaiveOffPlanner
from ledger_kernel.domain.ledger_types import (
    Direction,
    EntryCategory,
    LedgerEntry,
    PaymentStatus,
    SortOrder,
)

_BASE_DAY = date(2024, 1, 1)
_BASE_TS = datetime(2024, 1, 1, tzinfo=timezone.utc)

amounts = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("1000000"), places=2, allow_nan=False
)

_RANK = {PaymentStatus.UNPAID: 0, PaymentStatus.PARTIAL: 1, PaymentStatus.PAID: 2}


@st.composite
def entries(draw, max_size=30):
    count = draw(st.integers(min_value=0, max_value=max_size))
    result = []
    for i in range(count):
        direction = draw(st.sampled_from(list(Direction)))
        category = EntryCategory.PAYMENT if direction == Direction.INCOME else EntryCategory.EXPENSE
        result.append(LedgerEntry(
            id=f"gen-{i}",
            date=_BASE_DAY + timedelta(days=draw(st.integers(0, 20))),
            # unique creation time per entry so there are no full ties
            created_at=_BASE_TS + timedelta(seconds=i),
            description=draw(st.sampled_from(["Payment from A", "Payment from B", "Rent Expense"])),
            direction=direction,
            category=category,
            amount=draw(st.sampled_from([Decimal("10"), Decimal("25.50"), Decimal("100")])),
        ))
    return result


class TestDedupProperties:
    @given(feed=entries())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_idempotent(self, feed):
        dedup = Deduplicator()
        once = dedup.dedupe(feed)

        assert dedup.dedupe(once) == once
        assert len(once) <= len(feed)
        assert len({e.dedup_key for e in once}) == len(once)


class TestSortProperties:
    @given(feed=entries())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_directions_mirror(self, feed):
        sorter = ChronoSorter()

        ascending = sorter.sort(feed, SortOrder.ASCENDING)
        descending = sorter.sort(feed, SortOrder.DESCENDING)

        assert descending == list(reversed(ascending))
        assert [e.date for e in ascending] == sorted(e.date for e in feed)


class TestRunningBalanceProperties:
    @given(feed=entries(), current=amounts)
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_round_trip(self, feed, current):
        calc = RunningBalanceCalculator()
        newest_first = ChronoSorter().sort(feed, SortOrder.DESCENDING)

        view = calc.compute_running_balances(current, newest_first)

        net = sum((e.signed_amount for e in feed), Decimal("0"))
        assert view.opening_balance + net == current
        forward = calc.compute_forward_balances(view.opening_balance, list(reversed(newest_first)))
        assert forward.current_balance == current


class TestPaymentStatusProperties:
    @given(due=amounts, paid=amounts, extra=amounts, waived=amounts)
    @settings(max_examples=200)
    def test_paying_more_never_regresses(self, due, paid, extra, waived):
        resolver = PaymentStatusResolver()

        before = resolver.resolve(due, paid, waived)
        after = resolver.resolve(due, paid + extra, waived)

        assert _RANK[after.status] >= _RANK[before.status]
        assert after.balance_due <= before.balance_due
        assert after.balance_due >= 0

    @given(due=amounts, paid=amounts, waived=amounts, extra_waived=amounts)
    @settings(max_examples=200)
    def test_waiving_more_never_regresses(self, due, paid, waived, extra_waived):
        resolver = PaymentStatusResolver()

        before = resolver.resolve(due, paid, waived)
        after = resolver.resolve(due, paid, waived + extra_waived)

        assert _RANK[after.status] >= _RANK[before.status]
        assert after.balance_due <= before.balance_due
        assert after.total_paid == before.total_paid


class TestWaiverAllocationProperties:
    @given(
        amount=st.decimals(min_value=Decimal("0.01"), max_value=Decimal("100000"), places=2),
        totals=st.lists(
            st.decimals(min_value=Decimal("0"), max_value=Decimal("50000"), places=2),
            min_size=1,
            max_size=12,
        ),
    )
    @settings(max_examples=200)
    def test_allocation_sums_to_amount(self, amount, totals):
        invoices = [(f"INV-{i}", t) for i, t in enumerate(totals)]

        allocations = WaiveOffPlanner().allocate(amount, invoices)

        if any(t > 0 for t in totals):
            assert sum(a.amount for a in allocations) == amount
            assert all(a.amount >= 0 for a in allocations)
        else:
            assert allocations == ()
