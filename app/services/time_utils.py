"""
Wall-clock helpers for "HH:MM" strings.

All functions are pure and never raise on malformed input: anything that
cannot be parsed is either passed through unchanged or reported as None.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple


MINUTES_PER_DAY = 24 * 60


def parse_clock(hhmm: Optional[str]) -> Optional[Tuple[int, int]]:
    """
    Parse a 24-hour "HH:MM" string.

    Args:
        hhmm: Time string such as "09:30" or "23:05"

    Returns:
        (hour, minute) tuple, or None if the value is missing or malformed
    """
    if not hhmm or ":" not in hhmm:
        return None

    hour_part, _, minute_part = hhmm.strip().partition(":")
    try:
        hour = int(hour_part)
        minute = int(minute_part)
    except ValueError:
        return None

    if not (0 <= hour < 24 and 0 <= minute < 60):
        return None
    return hour, minute


def format_clock(hhmm: str, timezone_label: Optional[str] = None) -> str:
    """
    Format a 24-hour "HH:MM" string for display, e.g. "14:05" -> "2:05 PM".

    No timezone conversion happens here; the optional label is only appended.
    """
    if not hhmm or ":" not in hhmm:
        return hhmm

    hour_part, _, minute_part = hhmm.partition(":")
    try:
        hour = int(hour_part)
    except ValueError:
        return hhmm

    suffix = "PM" if hour >= 12 else "AM"
    display_hour = 12 if hour == 0 else hour - 12 if hour > 12 else hour
    formatted = f"{display_hour}:{minute_part} {suffix}"

    if timezone_label and timezone_label != "Local":
        formatted = f"{formatted} {timezone_label}"
    return formatted


def format_hour(hour: int) -> str:
    """Format a whole hour in 12-hour style, e.g. 20 -> "8:00 PM", 2 -> "2:00 AM"."""
    return format_clock(f"{hour:02d}:00")


def add_minutes(hhmm: str, delta: int) -> str:
    """
    Add minutes to a wall-clock time, wrapping at midnight.

    Args:
        hhmm: Time string in "HH:MM" format
        delta: Minutes to add (may be negative)

    Returns:
        New "HH:MM" string; the input unchanged if it cannot be parsed
    """
    parsed = parse_clock(hhmm)
    if parsed is None:
        return hhmm

    hour, minute = parsed
    total = (hour * 60 + minute + delta) % MINUTES_PER_DAY
    return f"{total // 60:02d}:{total % 60:02d}"


def combine(day: str, hhmm: Optional[str]) -> Optional[datetime]:
    """
    Build a naive datetime from an ISO date and a wall-clock time.

    The result is in the user's stated timezone; no conversion is applied.
    """
    parsed = parse_clock(hhmm)
    if parsed is None:
        return None
    try:
        base = date.fromisoformat(day)
    except (TypeError, ValueError):
        return None
    return datetime(base.year, base.month, base.day, parsed[0], parsed[1])


def minutes_between(start: datetime, end: datetime) -> int:
    """Signed whole minutes from start to end."""
    return int(round((end - start) / timedelta(minutes=1)))
