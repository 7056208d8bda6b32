from __future__ import annotations

from datetime import datetime, timezone

import pytest

from message_store.timefmt import (
    format_date,
    format_time,
    now_in,
    resolve_timezone,
    to_epoch_millis,
)


def test_date_pattern_is_zero_padded():
    dt = datetime(2023, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert format_date(dt) == "01/02/2023"


@pytest.mark.parametrize(
    "hour, minute, expected",
    [(0, 0, "12:00AM"), (9, 5, "09:05AM"), (12, 30, "12:30PM"), (23, 59, "11:59PM")],
)
def test_time_pattern_is_twelve_hour(hour: int, minute: int, expected: str):
    dt = datetime(2023, 6, 1, hour, minute, tzinfo=timezone.utc)
    assert format_time(dt) == expected


def test_time_is_not_the_date():
    dt = datetime(2023, 6, 1, 15, 45, tzinfo=timezone.utc)
    assert format_time(dt) != format_date(dt)


def test_epoch_millis():
    assert to_epoch_millis(datetime(1970, 1, 1, tzinfo=timezone.utc)) == 0
    assert to_epoch_millis(datetime(1970, 1, 1, 0, 0, 1, 500000, tzinfo=timezone.utc)) == 1500


def test_formatting_follows_zone():
    tz = resolve_timezone("America/New_York")
    dt = datetime(2024, 1, 1, 3, 30, tzinfo=timezone.utc).astimezone(tz)
    assert format_date(dt) == "12/31/2023"
    assert format_time(dt) == "10:30PM"


def test_resolve_timezone_defaults_and_errors():
    assert resolve_timezone(None) is None
    assert resolve_timezone("") is None
    with pytest.raises(ValueError):
        resolve_timezone("Not/A_Zone")


def test_now_in_is_aware():
    assert now_in().tzinfo is not None
    assert now_in(timezone.utc).utcoffset().total_seconds() == 0
