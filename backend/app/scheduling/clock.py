from __future__ import annotations

import logging
import re
from datetime import date, datetime, time as dt_time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.config import DEFAULT_TIMEZONE


MINUTES_PER_DAY = 24 * 60
HHMM_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

logger = logging.getLogger("bookings.scheduling")


def parse_hhmm(text: str, allow_end_of_day: bool = False) -> int:
    """Convert a 24-hour "HH:MM" label into minutes since midnight.

    "24:00" is only accepted when ``allow_end_of_day`` is set, for closing times.
    """
    cleaned = (text or "").strip()
    if allow_end_of_day and cleaned == "24:00":
        return MINUTES_PER_DAY

    match = HHMM_PATTERN.match(cleaned)
    if match is None:
        raise ValueError(f"Invalid time '{text}', expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_minutes(minutes: int) -> str:
    if minutes < 0 or minutes > MINUTES_PER_DAY:
        raise ValueError(f"Minute offset out of range: {minutes}")
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def resolve_timezone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; falling back to UTC.", name)
        return ZoneInfo("UTC")


def utc_now(now: datetime | None = None) -> datetime:
    value = now or datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def business_today(timezone_name: str | None, now: datetime | None = None) -> date:
    return utc_now(now).astimezone(resolve_timezone(timezone_name)).date()


def local_start(on_date: date, start_minute: int, timezone_name: str | None) -> datetime:
    hour, minute = divmod(start_minute, 60)
    return datetime.combine(
        on_date,
        dt_time(hour=hour, minute=minute),
        tzinfo=resolve_timezone(timezone_name),
    )


def hours_until_start(
    on_date: date,
    start_minute: int,
    timezone_name: str | None,
    now: datetime | None = None,
) -> float:
    # Subtract in UTC; aware datetimes sharing a tzinfo subtract as wall time.
    start_utc = local_start(on_date, start_minute, timezone_name).astimezone(timezone.utc)
    return (start_utc - utc_now(now)).total_seconds() / 3600
