"""
Dates -- Business-date and timestamp normalization.

Responsibility:
    Turn the heterogeneous date representations found in upstream records
    into comparable values: ``date`` for business dates and timezone-aware
    UTC ``datetime`` for creation timestamps.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    - Raw date strings are never compared; every representation is parsed
      to a calendar date first.
    - Supported business-date formats are ISO ``YYYY-MM-DD`` (optionally
      followed by a time part) and ``DD/MM/YYYY``.
    - Naive timestamps are interpreted as UTC.

Failure modes:
    - MalformedDateError for any value in neither supported format, or
      naming an impossible calendar day (e.g. 2024-02-30).
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone

from ledger_kernel.exceptions import MalformedDateError

_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$")
_DMY_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def parse_business_date(
    value: object,
    field: str = "date",
    record_id: str | None = None,
) -> date:
    """
    Parse a business date from a date, datetime or string.

    Preconditions:
        - ``value`` is a ``date``, a ``datetime`` or a string in ISO
          ``YYYY-MM-DD[Thh:mm...]`` or ``DD/MM/YYYY`` form.
    Postconditions:
        - Returns the calendar date the value names.  For ISO datetime
          strings the literal date part is used (no timezone shift).
    Raises:
        MalformedDateError: if the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise MalformedDateError(value, field=field, record_id=record_id)

    text = value.strip()
    match = _ISO_DATE.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
    else:
        match = _DMY_DATE.match(text)
        if not match:
            raise MalformedDateError(value, field=field, record_id=record_id)
        day, month, year = (int(g) for g in match.groups())

    try:
        return date(year, month, day)
    except ValueError as exc:
        raise MalformedDateError(value, field=field, record_id=record_id) from exc


def parse_timestamp(
    value: object,
    field: str = "created_at",
    record_id: str | None = None,
) -> datetime:
    """
    Parse a creation timestamp into a timezone-aware UTC datetime.

    Accepts ``datetime`` (naive treated as UTC), ``date`` (midnight UTC) and
    strings in ISO 8601 form or any business-date form accepted by
    ``parse_business_date``.

    Raises:
        MalformedDateError: if the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str):
        raise MalformedDateError(value, field=field, record_id=record_id)

    text = value.strip()
    try:
        return to_utc(datetime.fromisoformat(text))
    except ValueError:
        pass
    day = parse_business_date(text, field=field, record_id=record_id)
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive is assumed UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
