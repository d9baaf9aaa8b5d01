"""
Amounts -- Decimal coercion for monetary values from untyped records.

Upstream records arrive as JSON, CSV text or database rows, so an amount
may be a Decimal, an int, a float, a numeric string with thousands
separators or a rupee-prefixed string.  Everything is converted to
``Decimal`` here; floats go through ``str`` so that ``0.1`` stays ``0.1``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from ledger_kernel.exceptions import ValidationError

ZERO = Decimal("0")

_STRIP_CHARS = ("\u20b9", ",", " ", "\u00a0")


def coerce_amount(value: object) -> Decimal | None:
    """
    Best-effort conversion of a raw amount to Decimal.

    Returns None when the value is absent, empty or not a finite number.
    Booleans are rejected (``True`` is not an amount).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        for ch in _STRIP_CHARS:
            text = text.replace(ch, "")
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None

    if not result.is_finite():
        return None
    return result


def require_amount(
    value: object,
    field: str = "amount",
    record_id: str | None = None,
    source_type: str | None = None,
    allow_negative: bool = False,
) -> Decimal:
    """
    Coerce ``value`` to Decimal or raise.

    Raises:
        ValidationError: if the value is absent, unparseable, or negative
            while ``allow_negative`` is False.
    """
    amount = coerce_amount(value)
    if amount is None:
        raise ValidationError(
            field,
            f"missing or not a number ({value!r})",
            record_id=record_id,
            source_type=source_type,
        )
    if amount < ZERO and not allow_negative:
        raise ValidationError(
            field,
            f"must not be negative ({amount})",
            record_id=record_id,
            source_type=source_type,
        )
    return amount
