"""Date/time helpers shared by the evaluators, gate and scheduler."""

import math
from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and normalize aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def user_zone(name: str | None, fallback: str = "UTC") -> ZoneInfo:
    """Resolve a user's timezone, falling back when unset or unknown."""
    try:
        return ZoneInfo(name) if name else ZoneInfo(fallback)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(fallback)


def calendar_days_until(now: datetime, target: datetime, tz: ZoneInfo) -> int:
    """Whole calendar days between two instants as seen in the user's timezone."""
    return (as_utc(target).astimezone(tz).date() - as_utc(now).astimezone(tz).date()).days


def hours_until(now: datetime, target: datetime) -> float:
    return (as_utc(target) - as_utc(now)).total_seconds() / 3600


def minutes_until(now: datetime, target: datetime) -> int:
    """Whole minutes until target, floored; negative when target is in the past."""
    return math.floor((as_utc(target) - as_utc(now)).total_seconds() / 60)


def local_day_bounds(instant: datetime, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Local midnight to the next local midnight around instant, in UTC."""
    day = as_utc(instant).astimezone(tz).date()
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def format_time(value: datetime, tz: ZoneInfo) -> str:
    """Render a local clock time like '2:30 PM'."""
    local = as_utc(value).astimezone(tz)
    return local.strftime("%I:%M %p").lstrip("0")

