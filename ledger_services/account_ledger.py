"""
ledger_services.account_ledger -- Account statement and day sheet views.

Responsibility:
    Compose the aggregator with the running-balance and summary engines to
    answer the two questions an account screen asks: "what happened, and
    what was the balance after each movement?" (``ledger_for``) and "what
    moved on this day?" (``day_sheet``).

Architecture position:
    Services -- imperative shell over ledger_engines.

Failure modes:
    - Source failures and skipped records are passed through in the
      returned AggregationResult; they never raise.
    - ValidationError for a non-numeric balance.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from ledger_engines.cashflow_summary import CashflowSummarizer, CashflowSummary
from ledger_engines.running_balance import RunningBalanceCalculator
from ledger_kernel.domain.ledger_types import (
    AccountLedgerView,
    AggregationResult,
    CancellationToken,
    DateRange,
    SortOrder,
    SourceFetch,
)
from ledger_kernel.logging_config import get_logger
from ledger_services.cashflow_aggregator import CashflowAggregator

logger = get_logger("services.account_ledger")


def _for_account(result: AggregationResult, account_id: str | None) -> AggregationResult:
    if account_id is None:
        return result
    return replace(
        result,
        entries=tuple(e for e in result.entries if e.account_id == account_id),
    )


@dataclass(frozen=True)
class DaySheet:
    """One day's movements with opening and closing balances."""

    day: date
    view: AccountLedgerView
    summary: CashflowSummary
    result: AggregationResult

    @property
    def opening_balance(self) -> Decimal:
        return self.summary.opening_balance

    @property
    def closing_balance(self) -> Decimal:
        return self.summary.closing_balance


class AccountLedgerService:
    """
    Account-level projections over the unified cashflow feed.

    Contract:
        Every call re-aggregates; nothing is cached or persisted.
    """

    def __init__(
        self,
        aggregator: CashflowAggregator,
        calculator: RunningBalanceCalculator | None = None,
        summarizer: CashflowSummarizer | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._calculator = calculator or RunningBalanceCalculator()
        self._summarizer = summarizer or CashflowSummarizer()

    def ledger_for(
        self,
        current_balance: Decimal,
        sources: Sequence[SourceFetch],
        date_range: DateRange | None = None,
        *,
        account_id: str | None = None,
        timeout: float | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> tuple[AccountLedgerView, AggregationResult]:
        """
        Newest-first history with the balance before and after each entry.

        ``current_balance`` is the account balance today, after every entry
        on record.  Entries newer than the window's end are fetched and
        unwound too, then dropped, so the view's ``current_balance`` is the
        balance at the end of the window.  The returned result holds only
        the entries inside the window.

        With ``account_id``, only entries booked to that account (through a
        ``bank_account_id`` or ``account_id`` field) are kept; entries with
        no account are left out.
        """
        window = date_range if date_range is not None else self._aggregator.config.date_range
        result = self._aggregator.aggregate(
            sources,
            DateRange(window.start, None),
            SortOrder.DESCENDING,
            timeout=timeout,
            cancel_token=cancel_token,
        )
        result = _for_account(result, account_id)
        view = self._calculator.compute_running_balances(current_balance, result.entries)

        if window.end is not None:
            lines = tuple(ln for ln in view.lines if ln.entry.date <= window.end)
            unwound = view.entry_count - len(lines)
            view = AccountLedgerView(
                current_balance=lines[0].balance_after if lines else view.opening_balance,
                lines=lines,
            )
            result = replace(result, entries=tuple(ln.entry for ln in lines))
            logger.debug("later_entries_unwound", extra={
                "entry_count": unwound,
                "window_end": window.end,
            })

        logger.info("account_ledger_built", extra={
            "account_id": account_id,
            "entry_count": view.entry_count,
            "current_balance": str(current_balance),
            "window_closing_balance": str(view.current_balance),
            "opening_balance": str(view.opening_balance),
            "failed_source_count": len(result.failed_sources),
        })
        return view, result

    def day_sheet(
        self,
        opening_balance: Decimal,
        sources: Sequence[SourceFetch],
        day: date,
        *,
        account_id: str | None = None,
        timeout: float | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> DaySheet:
        """
        Movements of one calendar day walked forward from its opening balance.

        ``account_id`` narrows the day to one account as in ``ledger_for``.
        """
        result = self._aggregator.aggregate(
            sources,
            DateRange(day, day),
            SortOrder.ASCENDING,
            timeout=timeout,
            cancel_token=cancel_token,
        )
        result = _for_account(result, account_id)
        view = self._calculator.compute_forward_balances(opening_balance, result.entries)
        summary = self._summarizer.summarize(result.entries, opening_balance)
        logger.info("day_sheet_built", extra={
            "day": day.isoformat(),
            "entry_count": view.entry_count,
            "closing_balance": str(summary.closing_balance),
        })
        return DaySheet(day=day, view=view, summary=summary, result=result)
