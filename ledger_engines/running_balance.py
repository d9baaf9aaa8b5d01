"""
Module: ledger_engines.running_balance
Responsibility:
    Derive the account balance immediately before and after every
    historical entry, starting from the known current balance and walking
    backward through newest-first entries.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``lines[0].balance_after == current_balance``.
    - ``lines[i].balance_before == lines[i + 1].balance_after``.
    - Applying an entry's direction to its ``balance_before`` reproduces its
      ``balance_after``.
    - Input must be newest-first by calendar date.

Failure modes:
    - OrderingError if an entry is dated after the entry preceding it.

Usage:
    from ledger_engines.running_balance import RunningBalanceCalculator

    view = RunningBalanceCalculator().compute_running_balances(
        Decimal("5000"), newest_first_entries,
    )
    view.lines[0].balance_after  # Decimal("5000")
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from ledger_kernel.domain.amounts import require_amount
from ledger_kernel.domain.ledger_types import (
    AccountLedgerView,
    BalancedEntry,
    LedgerEntry,
)
from ledger_kernel.exceptions import OrderingError
from ledger_kernel.logging_config import get_logger
from ledger_engines.tracer import traced_engine

logger = get_logger("engines.running_balance")


class RunningBalanceCalculator:
    """
    Historical balances for one account.

    Contract:
        Income raises the balance and expense lowers it, so walking back in
        time an income entry is subtracted and an expense entry added.
    Non-goals:
        - Does not sort.  Oldest-first input must be reversed by the caller
          (or use ``compute_forward_balances``).
    """

    @traced_engine("running_balance", "1.0", fingerprint_fields=("current_balance",))
    def compute_running_balances(
        self,
        current_balance: Decimal,
        entries_newest_first: Sequence[LedgerEntry],
    ) -> AccountLedgerView:
        current_balance = require_amount(
            current_balance, field="current_balance", allow_negative=True
        )
        self._check_newest_first(entries_newest_first)

        lines: list[BalancedEntry] = []
        balance_after = current_balance
        for entry in entries_newest_first:
            balance_before = balance_after - entry.signed_amount
            lines.append(BalancedEntry(entry, balance_before, balance_after))
            balance_after = balance_before

        logger.debug("running_balances_computed", extra={
            "entry_count": len(lines),
            "current_balance": str(current_balance),
            "opening_balance": str(balance_after),
        })
        return AccountLedgerView(current_balance=current_balance, lines=tuple(lines))

    @traced_engine("running_balance_forward", "1.0", fingerprint_fields=("opening_balance",))
    def compute_forward_balances(
        self,
        opening_balance: Decimal,
        entries_oldest_first: Sequence[LedgerEntry],
    ) -> AccountLedgerView:
        """
        Walk forward from a known opening balance (day-sheet style).

        Returns the same newest-first view as ``compute_running_balances``;
        its ``current_balance`` is the closing balance.
        """
        balance = require_amount(
            opening_balance, field="opening_balance", allow_negative=True
        )
        lines: list[BalancedEntry] = []
        for entry in entries_oldest_first:
            after = balance + entry.signed_amount
            lines.append(BalancedEntry(entry, balance, after))
            balance = after

        lines.reverse()
        return AccountLedgerView(current_balance=balance, lines=tuple(lines))

    @staticmethod
    def _check_newest_first(entries: Sequence[LedgerEntry]) -> None:
        for position in range(1, len(entries)):
            previous, current = entries[position - 1].date, entries[position].date
            if current > previous:
                logger.warning("running_balance_order_violation", extra={
                    "position": position,
                    "previous_date": previous.isoformat(),
                    "current_date": current.isoformat(),
                })
                raise OrderingError(position, previous.isoformat(), current.isoformat())
