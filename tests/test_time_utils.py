from datetime import date, datetime, timedelta

import pytest

from time_tracking_app.utils import InvalidDateInput, format_clock, format_relative_time, parse_day, parse_timestamp


def test_format_relative_time_minutes():
    now = datetime(2025, 10, 2, 12, 0, 0)
    timestamp = now - timedelta(minutes=30)
    assert format_relative_time(timestamp, now=now) == "30 minutes ago"


def test_format_relative_time_just_now():
    now = datetime(2025, 10, 2, 12, 0, 0)
    timestamp = now - timedelta(seconds=10)
    assert format_relative_time(timestamp, now=now) == "just now"


def test_parse_timestamp_accepts_space_separated_values():
    assert parse_timestamp("2025-03-10 09:30") == datetime(2025, 3, 10, 9, 30)
    assert format_clock(parse_timestamp("2025-03-10T17:05:09")) == "17:05:09"

    with pytest.raises(InvalidDateInput):
        parse_timestamp("tomorrow morning")


def test_parse_day():
    assert parse_day("2025-03-10") == date(2025, 3, 10)
    assert parse_day(None, default=date(2025, 1, 1)) == date(2025, 1, 1)

    with pytest.raises(InvalidDateInput):
        parse_day("03/10/2025")
