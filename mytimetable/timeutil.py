"""
Date and time helpers shared by the parser, the builder and the projector.

All "local" values are in the school's timezone (Australia/Sydney unless the
settings say otherwise). Day keys are ISO strings 'YYYY-MM-DD'.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

DEFAULT_TZ = "Australia/Sydney"


def get_zone(tz: str | ZoneInfo | None = None) -> ZoneInfo:
    if isinstance(tz, ZoneInfo):
        return tz
    return ZoneInfo(tz or DEFAULT_TZ)


def to_local(dt_utc: datetime, tz: str | ZoneInfo | None = None) -> datetime:
    # naive datetimes are treated as UTC
    if dt_utc.tzinfo is None:
        dt_utc = dt_utc.replace(tzinfo=timezone.utc)
    return dt_utc.astimezone(get_zone(tz))


def minutes_since_midnight(dt_local: datetime) -> int:
    return dt_local.hour * 60 + dt_local.minute


def parse_day_key(day_key: str | date) -> date:
    """
    Convert 'YYYY-MM-DD' to a date. Raises ValueError for invalid input.
    """
    if isinstance(day_key, datetime):
        return day_key.date()
    if isinstance(day_key, date):
        return day_key
    return date.fromisoformat(day_key.strip())


def is_weekend(d: date) -> bool:
    return d.weekday() >= 5


def monday_of(d: date) -> date:
    return d - timedelta(days=d.weekday())


def local_instant(d: date, minutes: int, tz: str | ZoneInfo | None = None) -> datetime:
    """
    Interpret minutes-since-midnight on a local date and return the UTC instant.

    Minutes past 24h roll onto the following day.
    """
    zone = get_zone(tz)
    local = datetime.combine(d, time(0, 0), tzinfo=zone) + timedelta(minutes=minutes)
    return local.astimezone(timezone.utc)
