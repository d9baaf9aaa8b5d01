"""
Module: ledger_engines.payment_status
Responsibility:
    Single source of truth for whether an obligation (sales order, invoice,
    liability) is paid, partially paid or unpaid, counting waivers toward
    settlement.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Waivers count toward settlement: ``effective_paid = paid + waived``.
    - ``balance_due = max(0, total_due - effective_paid)``.
    - Monotone: raising paid or waived never moves the status backward
      (Unpaid < Partial < Paid).
    - ``total_due <= 0`` is always Paid.

Failure modes:
    - ValidationError for a negative or non-numeric paid or waived amount,
      or a non-numeric amount due.

Usage:
    from ledger_engines.payment_status import PaymentStatusResolver

    status = PaymentStatusResolver().resolve(
        total_due=Decimal("1000"),
        total_paid=Decimal("0"),
        total_waived=Decimal("1000"),
    )
    status.status  # PaymentStatus.PAID
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from ledger_kernel.domain.amounts import ZERO, require_amount
from ledger_kernel.domain.ledger_types import ObligationStatus, PaymentStatus
from ledger_kernel.logging_config import get_logger
from ledger_engines.tracer import traced_engine

logger = get_logger("engines.payment_status")


@dataclass(frozen=True)
class StatusSummary:
    """Counts and totals over a set of obligation statuses."""

    paid_count: int = 0
    partial_count: int = 0
    unpaid_count: int = 0
    total_due: Decimal = ZERO
    total_paid: Decimal = ZERO
    total_waived: Decimal = ZERO
    total_balance_due: Decimal = ZERO

    @property
    def obligation_count(self) -> int:
        return self.paid_count + self.partial_count + self.unpaid_count


class PaymentStatusResolver:
    """
    Resolve obligation status from cumulative payments and waivers.

    Contract:
        Deterministic in its three inputs; no rounding is applied.
    Guarantees:
        - Returned ``ObligationStatus.balance_due >= 0``.
    """

    @traced_engine(
        "payment_status", "1.0",
        fingerprint_fields=("total_due", "total_paid", "total_waived"),
    )
    def resolve(
        self,
        total_due: Decimal,
        total_paid: Decimal,
        total_waived: Decimal = ZERO,
    ) -> ObligationStatus:
        due = require_amount(total_due, field="total_due", allow_negative=True)
        paid = require_amount(total_paid, field="total_paid")
        waived = require_amount(total_waived, field="total_waived")
        effective_paid = paid + waived

        if due <= ZERO:
            status = PaymentStatus.PAID
            balance_due = ZERO
        else:
            balance_due = max(ZERO, due - effective_paid)
            if effective_paid >= due:
                status = PaymentStatus.PAID
            elif paid > ZERO or waived > ZERO:
                status = PaymentStatus.PARTIAL
            else:
                status = PaymentStatus.UNPAID

        return ObligationStatus(
            total_due=due,
            total_paid=paid,
            total_waived=waived,
            effective_paid=effective_paid,
            balance_due=balance_due,
            status=status,
        )

    def resolve_from_payments(
        self,
        total_due: Decimal,
        payments: Iterable[Decimal],
        waivers: Iterable[Decimal] = (),
    ) -> ObligationStatus:
        """Resolve from individual payment and waiver amounts."""
        total_paid = sum(
            (require_amount(p, field="payment") for p in payments), ZERO
        )
        total_waived = sum(
            (require_amount(w, field="waiver") for w in waivers), ZERO
        )
        return self.resolve(total_due, total_paid, total_waived)

    def summarize(self, statuses: Iterable[ObligationStatus]) -> StatusSummary:
        counts = {status: 0 for status in PaymentStatus}
        due = paid = waived = balance = ZERO
        for item in statuses:
            counts[item.status] += 1
            due += item.total_due
            paid += item.total_paid
            waived += item.total_waived
            balance += item.balance_due

        summary = StatusSummary(
            paid_count=counts[PaymentStatus.PAID],
            partial_count=counts[PaymentStatus.PARTIAL],
            unpaid_count=counts[PaymentStatus.UNPAID],
            total_due=due,
            total_paid=paid,
            total_waived=waived,
            total_balance_due=balance,
        )
        logger.debug("obligation_statuses_summarized", extra={
            "obligation_count": summary.obligation_count,
            "total_balance_due": str(balance),
        })
        return summary
