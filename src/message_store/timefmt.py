"""Date/time helpers used to stamp messages."""
from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DATE_FORMAT = "%m/%d/%Y"  # MM/dd/yyyy
TIME_FORMAT = "%I:%M%p"   # hh:mma


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """Return a tzinfo for an IANA name, or None for the process default zone."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown time zone: {name!r}") from e


def now_in(tz: Optional[tzinfo] = None) -> datetime:
    # astimezone() with no argument attaches the local zone
    if tz is None:
        return datetime.now().astimezone()
    return datetime.now(tz)


def to_epoch_millis(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def format_date(dt: datetime) -> str:
    return dt.strftime(DATE_FORMAT)


def format_time(dt: datetime) -> str:
    return dt.strftime(TIME_FORMAT)
