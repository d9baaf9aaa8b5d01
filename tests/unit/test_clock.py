"""Unit tests for the injected as-of clock."""

from datetime import date, datetime, timedelta, timezone

from ledger_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:

    def test_pinned_instant_does_not_move(self):
        as_of = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)
        clock = DeterministicClock(as_of)

        assert clock.now() == as_of
        assert clock.now() == as_of
        assert clock.today() == date(2024, 3, 15)

    def test_plain_date_pinned_to_noon_utc(self):
        clock = DeterministicClock(date(2024, 2, 29))

        assert clock.now() == datetime(2024, 2, 29, 12, tzinfo=timezone.utc)
        assert clock.today() == date(2024, 2, 29)

    def test_naive_datetime_taken_as_utc(self):
        clock = DeterministicClock(datetime(2024, 1, 5, 8, 0))

        assert clock.now().tzinfo is timezone.utc

    def test_default_instant(self):
        assert DeterministicClock().now() == DeterministicClock.DEFAULT

    def test_advance_across_month_end(self):
        clock = DeterministicClock(date(2024, 1, 31))

        moved = clock.advance(days=1, seconds=30)

        assert moved == clock.now()
        assert clock.today() == date(2024, 2, 1)
        assert clock.now() - datetime(2024, 2, 1, 12, tzinfo=timezone.utc) == timedelta(seconds=30)


def test_system_clock_is_aware():
    assert SystemClock().now().tzinfo is not None
