"""
Calendar-day helpers for Pause.

The lockout record is valid only for the local calendar day it was
written on. These helpers answer "same day?" and "how long until
midnight?" for the lockout screen.
"""

from datetime import datetime, timedelta


def start_of_day(moment: datetime) -> datetime:
    """Return local midnight at the start of moment's day."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def is_same_day(first: datetime, second: datetime) -> bool:
    """Check whether two local times fall on the same calendar day."""
    return first.date() == second.date()


def seconds_until_midnight(now: datetime) -> int:
    """
    Get whole seconds remaining until the next local midnight.

    Both ends are resolved to the UTC offset in force at that moment, so
    a daylight-saving change before midnight is counted (a full day is
    then 23 or 25 hours).

    Args:
        now: Current local time (naive) or any aware time.

    Returns:
        Seconds until midnight; exactly midnight returns a full day.
    """
    local_now = now.astimezone()
    midnight = start_of_day(local_now.replace(tzinfo=None)) + timedelta(days=1)
    return int((midnight.astimezone() - local_now).total_seconds())


def format_hms(seconds: int) -> str:
    """
    Format seconds as "HH:MM:SS".

    Negative values are clamped to zero.
    """
    seconds = max(0, int(seconds))
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"
