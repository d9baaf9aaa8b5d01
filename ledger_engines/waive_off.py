"""
Module: ledger_engines.waive_off
Responsibility:
    Validate a proposed waive-off against what is still outstanding on an
    obligation and spread an accepted waiver across the obligation's
    invoices in proportion to their totals.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Settlement status is delegated to PaymentStatusResolver.

Invariants enforced:
    - A waiver is strictly positive and never exceeds
      ``total_due - total_paid - total_waived``.
    - Allocations are rounded to 2 decimal places (ROUND_HALF_UP) and sum
      exactly to the waived amount; the last invoice with a non-zero total
      absorbs the rounding remainder.
    - No allocation is negative.

Failure modes:
    - InvalidWaiveOffError when the amount is zero or negative.
    - WaiveOffExceedsOutstandingError when the amount is larger than the
      outstanding balance.
    - ValidationError for non-numeric or negative invoice totals.

Usage:
    from ledger_engines.waive_off import WaiveOffPlanner

    planner = WaiveOffPlanner()
    status = planner.check_waive_off(
        Decimal("1000"), Decimal("400"), Decimal("0"), Decimal("600"),
    )
    allocations = planner.allocate(
        Decimal("600"), {"INV-1": Decimal("700"), "INV-2": Decimal("300")},
    )
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from ledger_kernel.domain.amounts import ZERO, require_amount
from ledger_kernel.domain.ledger_types import ObligationStatus
from ledger_kernel.exceptions import (
    InvalidWaiveOffError,
    WaiveOffExceedsOutstandingError,
)
from ledger_kernel.logging_config import get_logger
from ledger_engines.payment_status import PaymentStatusResolver
from ledger_engines.tracer import traced_engine

logger = get_logger("engines.waive_off")

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class WaiverAllocation:
    """Portion of a waiver assigned to one invoice."""

    invoice_id: str
    amount: Decimal


class WaiveOffPlanner:
    """
    Waive-off validation and distribution.

    Contract:
        ``check_waive_off`` returns the status the obligation would have
        after the waiver; it records nothing.
    """

    def __init__(self, resolver: PaymentStatusResolver | None = None) -> None:
        self._resolver = resolver or PaymentStatusResolver()

    @traced_engine(
        "waive_off", "1.0",
        fingerprint_fields=("total_due", "total_paid", "total_waived", "amount"),
    )
    def check_waive_off(
        self,
        total_due: Decimal,
        total_paid: Decimal,
        total_waived: Decimal,
        amount: Decimal,
    ) -> ObligationStatus:
        waiver = require_amount(amount, field="amount", allow_negative=True)
        if waiver <= ZERO:
            raise InvalidWaiveOffError(str(waiver))

        due = require_amount(total_due, field="total_due", allow_negative=True)
        paid = require_amount(total_paid, field="total_paid")
        waived = require_amount(total_waived, field="total_waived")

        outstanding = max(ZERO, due - paid - waived)
        if waiver > outstanding:
            logger.warning("waive_off_rejected", extra={
                "amount": str(waiver),
                "outstanding": str(outstanding),
            })
            raise WaiveOffExceedsOutstandingError(str(waiver), str(outstanding))

        return self._resolver.resolve(due, paid, waived + waiver)

    @traced_engine("waive_off_allocation", "1.0", fingerprint_fields=("amount",))
    def allocate(
        self,
        amount: Decimal,
        invoice_totals: Mapping[str, Decimal] | Iterable[tuple[str, Decimal]],
    ) -> tuple[WaiverAllocation, ...]:
        """
        Split ``amount`` across invoices proportionally to their totals.

        Invoices with a zero total receive nothing and are omitted.  When
        every total is zero the result is empty.
        """
        waiver = require_amount(amount, field="amount", allow_negative=True)
        if waiver <= ZERO:
            raise InvalidWaiveOffError(str(waiver))

        pairs = invoice_totals.items() if isinstance(invoice_totals, Mapping) else invoice_totals
        invoices = [
            (str(invoice_id), require_amount(total, field="invoice_total", record_id=str(invoice_id)))
            for invoice_id, total in pairs
        ]
        invoices = [(inv, total) for inv, total in invoices if total > ZERO]
        if not invoices:
            return ()

        grand_total = sum((total for _, total in invoices), ZERO)
        remaining = waiver
        allocations: list[WaiverAllocation] = []
        for invoice_id, total in invoices[:-1]:
            share = (waiver * total / grand_total).quantize(_CENT, rounding=ROUND_HALF_UP)
            share = min(share, remaining)
            allocations.append(WaiverAllocation(invoice_id, share))
            remaining -= share

        allocations.append(WaiverAllocation(invoices[-1][0], remaining))

        logger.info("waive_off_allocated", extra={
            "amount": str(waiver),
            "invoice_count": len(allocations),
        })
        return tuple(allocations)
