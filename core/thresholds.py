"""
Threshold evaluation for the usage limit.

Pure functions only. The controller calls classify() once after every
single-second increase of the elapsed time.
"""

from typing import NamedTuple

import config


class ThresholdResult(NamedTuple):
    """Outcome of classifying an elapsed value against the limit."""
    near_limit: bool
    exceeded: bool


def is_near_limit(elapsed: int, limit: int, lead: int = config.REMINDER_LEAD_SECONDS) -> bool:
    """
    Check whether elapsed sits exactly `lead` seconds before the limit.

    Edge-triggered: true for a single elapsed value, never for a range.
    Limits shorter than the lead never produce a reminder.

    Args:
        elapsed: Seconds used so far.
        limit: Configured limit in seconds.
        lead: How far ahead of the limit the reminder fires.

    Returns:
        True only when limit >= lead and elapsed == limit - lead.
    """
    return limit >= lead and elapsed == limit - lead


def is_exceeded(elapsed: int, limit: int) -> bool:
    """
    Check whether the limit has been reached.

    A non-positive limit can never be satisfied and never locks.
    """
    if limit <= 0:
        return False
    return elapsed >= limit


def classify(elapsed: int, limit: int, lead: int = config.REMINDER_LEAD_SECONDS) -> ThresholdResult:
    """
    Classify an elapsed value against the limit.

    Args:
        elapsed: Seconds used so far.
        limit: Configured limit in seconds.
        lead: Reminder lead time in seconds.

    Returns:
        ThresholdResult(near_limit, exceeded).
    """
    return ThresholdResult(
        near_limit=is_near_limit(elapsed, limit, lead),
        exceeded=is_exceeded(elapsed, limit),
    )
