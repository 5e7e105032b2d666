from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def is_valid_timezone(name: str | None) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def resolve_timezone(name: str | None, fallback: str = "UTC") -> ZoneInfo:
    return ZoneInfo(name) if is_valid_timezone(name) else ZoneInfo(fallback)


def ensure_utc(value: datetime) -> datetime:
    # Some backends hand back naive values for timestamptz columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_hhmm(now: datetime, tz: ZoneInfo) -> str:
    return ensure_utc(now).astimezone(tz).strftime("%H:%M")


def local_date(instant: datetime, tz: ZoneInfo) -> date:
    return ensure_utc(instant).astimezone(tz).date()


def format_local(instant: datetime, tz: ZoneInfo) -> str:
    return ensure_utc(instant).astimezone(tz).strftime("%a, %b %d %I:%M %p")


def format_local_short(instant: datetime, tz: ZoneInfo) -> str:
    return ensure_utc(instant).astimezone(tz).strftime("%b %d %I:%M %p")
