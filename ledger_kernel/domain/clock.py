"""
Clock -- the injected "as-of" time of a ledger run.

Responsibility:
    The normalizer fills a missing transaction date with ``today()`` and a
    missing creation timestamp with ``now()``.  Both come from a Clock handed
    in by the caller so a run can be replayed with identical output.

Architecture position:
    Kernel > Domain.  SystemClock is the only place the engine reads the
    wall clock.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta, timezone


class Clock(ABC):
    """Source of the current instant; ``now()`` is always timezone-aware."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock pinned to one instant, for tests and replays.

    Accepts a datetime, or a plain date (pinned to noon UTC so that
    ``today()`` never shifts under a timezone conversion).  Naive datetimes
    are taken as UTC.  Time only moves through ``advance()``.
    """

    DEFAULT = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __init__(self, as_of: datetime | date | None = None):
        self._now = self._pin(as_of) if as_of is not None else self.DEFAULT

    @staticmethod
    def _pin(value: datetime | date) -> datetime:
        if not isinstance(value, datetime):
            return datetime.combine(value, time(12), tzinfo=timezone.utc)
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def now(self) -> datetime:
        return self._now

    def advance(self, *, days: int = 0, seconds: float = 0) -> datetime:
        """Move the pinned instant forward and return it."""
        self._now += timedelta(days=days, seconds=seconds)
        return self._now
