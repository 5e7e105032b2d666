from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from assistant.core.timezones import ensure_utc, is_valid_timezone, local_date, local_hhmm, resolve_timezone


def test_timezone_validation_and_fallback() -> None:
    assert is_valid_timezone("Asia/Kolkata") is True
    assert is_valid_timezone("Mars/Olympus") is False
    assert is_valid_timezone(None) is False
    assert resolve_timezone("Mars/Olympus") == ZoneInfo("UTC")
    assert resolve_timezone(None, fallback="Europe/Berlin") == ZoneInfo("Europe/Berlin")


def test_naive_values_are_read_as_utc() -> None:
    naive = datetime(2026, 10, 19, 3, 30)

    assert ensure_utc(naive) == datetime(2026, 10, 19, 3, 30, tzinfo=timezone.utc)


def test_local_clock_and_date() -> None:
    tz = ZoneInfo("Asia/Kolkata")
    instant = datetime(2026, 10, 19, 20, 0, tzinfo=timezone.utc)

    assert local_hhmm(instant, tz) == "01:30"
    assert local_date(instant, tz) == date(2026, 10, 20)
