"""Date keys and calendar arithmetic for DayStreak.

A date key is a local calendar date formatted ``YYYY-MM-DD``. Weekday
indices are Monday-first (0 = Monday .. 6 = Sunday) everywhere.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo


def parse_date_key(date_key: str) -> date:
    """Parse a YYYY-MM-DD key. Raises ValueError if malformed."""
    if not isinstance(date_key, str) or len(date_key) != 10:
        raise ValueError(f"Invalid date key: {date_key!r}")
    return date.fromisoformat(date_key)


def today_key(tz: ZoneInfo | None = None) -> str:
    """Get today's date key in the given timezone (UTC by default)."""
    return datetime.now(tz or ZoneInfo("UTC")).date().isoformat()


def now_iso(tz: ZoneInfo | None = None) -> str:
    """Current timestamp used for completedAt."""
    return datetime.now(tz or ZoneInfo("UTC")).isoformat(timespec="seconds")


def day_of_week(date_key: str) -> int:
    return parse_date_key(date_key).weekday()


def shift_day(date_key: str, days: int) -> str:
    return (parse_date_key(date_key) + timedelta(days=days)).isoformat()


def is_consecutive_day(a: str, b: str) -> bool:
    """True when the two keys are exactly one calendar day apart (either order)."""
    return abs((parse_date_key(a) - parse_date_key(b)).days) == 1


def week_days(today: str, offset: int = 0) -> list[str]:
    """The seven date keys of the Monday-first week containing *today*,
    shifted by *offset* weeks."""
    d = parse_date_key(today)
    monday = d - timedelta(days=d.weekday()) + timedelta(weeks=offset)
    return [(monday + timedelta(days=i)).isoformat() for i in range(7)]


def date_prefix_matches(timestamp: str | None, date_key: str) -> bool:
    """Whether an ISO timestamp's date portion equals *date_key*."""
    if not timestamp or not isinstance(timestamp, str):
        return False
    return timestamp[:10] == date_key
