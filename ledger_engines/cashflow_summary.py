"""
Module: ledger_engines.cashflow_summary
Responsibility:
    Roll a cashflow feed up into the figures a day sheet or cashflow screen
    shows: inflow and outflow totals, operating / investing / financing
    activity, totals per category and per payment method, and a daily
    series with a running balance.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``net_cash_flow == total_inflows - total_outflows``.
    - Activity class nets sum to ``net_cash_flow``.
    - Daily series is in ascending day order and its last running balance
      equals ``opening_balance + net_cash_flow``.

Failure modes:
    - None for well-formed LedgerEntry input.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from ledger_kernel.domain.amounts import ZERO, require_amount
from ledger_kernel.domain.ledger_types import (
    ActivityClass,
    EntryCategory,
    LedgerEntry,
)
from ledger_kernel.logging_config import get_logger
from ledger_engines.tracer import traced_engine

logger = get_logger("engines.cashflow_summary")

CAPEX_SUBCATEGORIES = frozenset({"CAPEX", "Capital Expenditure"})

_FINANCING_CATEGORIES = frozenset({
    EntryCategory.INVESTMENT,
    EntryCategory.WITHDRAWAL,
    EntryCategory.LIABILITY_PAYMENT,
    EntryCategory.LOAN_SETUP,
})


def classify_activity(entry: LedgerEntry) -> ActivityClass:
    """Cash-flow statement section an entry belongs to."""
    if entry.category in _FINANCING_CATEGORIES:
        return ActivityClass.FINANCING
    if entry.category == EntryCategory.EXPENSE and entry.subcategory in CAPEX_SUBCATEGORIES:
        return ActivityClass.INVESTING
    return ActivityClass.OPERATING


@dataclass(frozen=True)
class ActivityTotals:
    receipts: Decimal = ZERO
    payments: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.receipts - self.payments


@dataclass(frozen=True)
class DailyCashflow:
    """One day of the series.  ``running_balance`` is the closing balance."""

    day: date
    inflows: Decimal
    outflows: Decimal
    running_balance: Decimal

    @property
    def net(self) -> Decimal:
        return self.inflows - self.outflows


@dataclass(frozen=True)
class CashflowSummary:
    opening_balance: Decimal = ZERO
    total_inflows: Decimal = ZERO
    total_outflows: Decimal = ZERO
    entry_count: int = 0
    by_activity: dict[ActivityClass, ActivityTotals] = field(default_factory=dict)
    by_category: dict[EntryCategory, Decimal] = field(default_factory=dict)
    by_payment_method: dict[str, Decimal] = field(default_factory=dict)
    daily: tuple[DailyCashflow, ...] = ()

    @property
    def net_cash_flow(self) -> Decimal:
        return self.total_inflows - self.total_outflows

    @property
    def closing_balance(self) -> Decimal:
        return self.opening_balance + self.net_cash_flow

    def activity(self, activity: ActivityClass) -> ActivityTotals:
        return self.by_activity.get(activity, ActivityTotals())


class CashflowSummarizer:
    """Aggregate a cashflow feed into summary figures."""

    @traced_engine("cashflow_summary", "1.0", fingerprint_fields=("opening_balance",))
    def summarize(
        self,
        entries: Iterable[LedgerEntry],
        opening_balance: Decimal = ZERO,
    ) -> CashflowSummary:
        opening = require_amount(
            opening_balance, field="opening_balance", allow_negative=True
        )

        inflows = outflows = ZERO
        count = 0
        receipts: dict[ActivityClass, Decimal] = defaultdict(lambda: ZERO)
        payments: dict[ActivityClass, Decimal] = defaultdict(lambda: ZERO)
        by_category: dict[EntryCategory, Decimal] = defaultdict(lambda: ZERO)
        by_method: dict[str, Decimal] = defaultdict(lambda: ZERO)
        day_in: dict[date, Decimal] = defaultdict(lambda: ZERO)
        day_out: dict[date, Decimal] = defaultdict(lambda: ZERO)

        for entry in entries:
            count += 1
            activity = classify_activity(entry)
            by_category[entry.category] += entry.amount
            by_method[entry.payment_method] += entry.amount
            if entry.is_income:
                inflows += entry.amount
                receipts[activity] += entry.amount
                day_in[entry.date] += entry.amount
            else:
                outflows += entry.amount
                payments[activity] += entry.amount
                day_out[entry.date] += entry.amount

        daily: list[DailyCashflow] = []
        balance = opening
        for day in sorted(set(day_in) | set(day_out)):
            balance = balance + day_in[day] - day_out[day]
            daily.append(DailyCashflow(day, day_in[day], day_out[day], balance))

        summary = CashflowSummary(
            opening_balance=opening,
            total_inflows=inflows,
            total_outflows=outflows,
            entry_count=count,
            by_activity={
                activity: ActivityTotals(receipts[activity], payments[activity])
                for activity in ActivityClass
            },
            by_category=dict(by_category),
            by_payment_method=dict(by_method),
            daily=tuple(daily),
        )

        logger.info("cashflow_summarized", extra={
            "entry_count": count,
            "total_inflows": str(inflows),
            "total_outflows": str(outflows),
            "day_count": len(daily),
        })
        return summary
