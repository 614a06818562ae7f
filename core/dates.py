"""Boundary parsing for dates, times of day, weekdays and durations.

Every public entry point of the engine funnels caller input through these
helpers so that malformed values fail fast here with a ValueError, never
deep inside rule evaluation.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")
_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw])\s*$", re.IGNORECASE)
_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}

WEEKDAY_NAMES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
MONTH_NAMES = (
    "jan", "feb", "mar", "apr", "may", "jun",
    "jul", "aug", "sep", "oct", "nov", "dec",
)


def parse_date(value: date | str) -> date:
    """Parse a strict ISO 'YYYY-MM-DD' date (date objects pass through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not _ISO_DATE_RE.match(text):
        raise ValueError(f"Invalid date: {value!r}. Expected 'YYYY-MM-DD'.")
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Invalid date: {value!r}. Expected 'YYYY-MM-DD'.")


def parse_time_of_day(value: time | str) -> time:
    """Parse 'HH:MM' or 'HH:MM:SS' into a time."""
    if isinstance(value, time):
        return value
    match = _TIME_RE.match(str(value or ""))
    if not match:
        raise ValueError(f"Invalid time of day: {value!r}. Expected 'HH:MM'.")

    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    if hour > 23 or minute > 59 or second > 59:
        raise ValueError(f"Invalid time of day: {value!r}. Expected 'HH:MM'.")
    return time(hour, minute, second)


def parse_weekday(value: int | str) -> int:
    """Parse a weekday name ('mon', 'Monday') or index (0=Monday) into 0..6."""
    if isinstance(value, int):
        if 0 <= value <= 6:
            return value
        raise ValueError(f"Invalid weekday index: {value!r}. Expected 0 (Mon) to 6 (Sun).")

    key = str(value).strip().lower()[:3]
    if key not in WEEKDAY_NAMES:
        raise ValueError(f"Invalid weekday: {value!r}.")
    return WEEKDAY_NAMES.index(key)


def parse_duration(value: str) -> timedelta:
    """Parse compact duration strings like '60s', '4h', '7d', '2w'."""
    match = _DURATION_RE.match(str(value or ""))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}. Expected '<int><s|m|h|d|w>'.")

    amount = int(match.group(1))
    unit = match.group(2).lower()
    return timedelta(seconds=amount * _UNIT_SECONDS[unit])


def date_range(start: date, end: date):
    """Yield every date from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
