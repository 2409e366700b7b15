"""
Domain time utilities (pure).

Centralized timestamp validation and calendar helpers.

Policy:
- Every stored timestamp is timezone-aware.
- "Today" and "this month" are evaluated in the timezone of the reference
  timestamp (`as_of`); record timestamps are converted into that zone before
  their calendar-date components are compared.
"""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Callable, Optional

Clock = Callable[[], datetime]


def require_aware_timestamp(name: str, value: datetime) -> None:
    """
    Enforces that timestamps carry an explicit offset.

    Naive timestamps are ambiguous for calendar-day comparisons and are rejected.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware")


def same_day(value: datetime, as_of: datetime) -> bool:
    """True if `value` falls on the calendar day of `as_of` (in `as_of`'s timezone)."""

    require_aware_timestamp("as_of", as_of)
    return value.astimezone(as_of.tzinfo).date() == as_of.date()


def same_month(value: datetime, as_of: datetime) -> bool:
    """True if `value` falls in the calendar month and year of `as_of`."""

    require_aware_timestamp("as_of", as_of)
    local = value.astimezone(as_of.tzinfo)
    return (local.year, local.month) == (as_of.year, as_of.month)


def system_clock(tz: Optional[tzinfo] = None) -> Clock:
    """
    Return a clock producing aware "now" timestamps.

    With no zone the host's local timezone is used.
    """

    def now() -> datetime:
        if tz is None:
            return datetime.now().astimezone()
        return datetime.now(tz)

    return now
