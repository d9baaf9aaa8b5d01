"""
Unit tests for business-date and timestamp parsing.

Both supported formats must yield comparable calendar dates; anything else
raises MalformedDateError rather than being compared as a string.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from ledger_kernel.domain.dates import parse_business_date, parse_timestamp, to_utc
from ledger_kernel.exceptions import MalformedDateError


class TestParseBusinessDate:
    """ISO and DD/MM/YYYY inputs."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("2024-03-05", date(2024, 3, 5)),
            ("2024-3-5", date(2024, 3, 5)),
            (" 2024-03-05 ", date(2024, 3, 5)),
            ("2024-03-05T23:30:00+05:30", date(2024, 3, 5)),
            ("2024-03-05 08:00:00", date(2024, 3, 5)),
            ("05/03/2024", date(2024, 3, 5)),
            ("5/3/2024", date(2024, 3, 5)),
            ("29/02/2024", date(2024, 2, 29)),
        ],
    )
    def test_supported_formats(self, raw, expected):
        assert parse_business_date(raw) == expected

    def test_date_and_datetime_pass_through(self):
        assert parse_business_date(date(2024, 1, 2)) == date(2024, 1, 2)
        assert parse_business_date(datetime(2024, 1, 2, 18, 0)) == date(2024, 1, 2)

    def test_day_first_not_month_first(self):
        assert parse_business_date("02/01/2024") < parse_business_date("2024-01-15")

    @pytest.mark.parametrize(
        "raw",
        ["", "yesterday", "2024/03/05", "03-05-2024", "01-2024", "2024-02-30", "31/04/2024", "12345"],
    )
    def test_malformed(self, raw):
        with pytest.raises(MalformedDateError) as exc_info:
            parse_business_date(raw, field="payment_date", record_id="p9")

        assert exc_info.value.field == "payment_date"
        assert exc_info.value.record_id == "p9"
        assert exc_info.value.code == "MALFORMED_DATE"

    @pytest.mark.parametrize("raw", [None, 20240305, 1.5])
    def test_non_string_rejected(self, raw):
        with pytest.raises(MalformedDateError):
            parse_business_date(raw)


class TestParseTimestamp:
    """Creation timestamps normalized to aware UTC."""

    def test_zulu_string(self):
        assert parse_timestamp("2024-03-01T10:00:00Z") == datetime(
            2024, 3, 1, 10, 0, tzinfo=timezone.utc
        )

    def test_offset_converted_to_utc(self):
        ts = parse_timestamp("2024-03-01T10:00:00+05:30")

        assert ts == datetime(2024, 3, 1, 4, 30, tzinfo=timezone.utc)
        assert ts.tzinfo == timezone.utc

    def test_naive_assumed_utc(self):
        assert parse_timestamp(datetime(2024, 3, 1, 9)).tzinfo == timezone.utc

    def test_business_date_string_is_midnight(self):
        assert parse_timestamp("01/03/2024") == datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_date_is_midnight(self):
        assert parse_timestamp(date(2024, 3, 1)) == datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_malformed(self):
        with pytest.raises(MalformedDateError) as exc_info:
            parse_timestamp("not a time")

        assert exc_info.value.field == "created_at"


class TestToUtc:
    def test_aware_converted(self):
        ist = timezone(timedelta(hours=5, minutes=30))

        assert to_utc(datetime(2024, 1, 1, 5, 30, tzinfo=ist)) == datetime(
            2024, 1, 1, 0, 0, tzinfo=timezone.utc
        )
