"""Attendance status derivation for check-in and check-out.

Times are "HH:MM" local time-of-day strings compared as minutes since
midnight. There is no wraparound: a slot ending at 02:00 is treated as
02:00 of the same day.
"""

from datetime import datetime
from typing import Optional

from staff_roster.models.roster import AttendanceStatus

DEFAULT_GRACE_MINUTES = 15


def parse_time_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    hours, minutes = value.split(":", 1)
    return int(hours) * 60 + int(minutes)


def now_hhmm(now: Optional[datetime] = None) -> str:
    """Current local time as "HH:MM"."""
    return (now or datetime.now()).strftime("%H:%M")


def _escalatable(current: Optional[str]) -> bool:
    # Manager classifications (absent, substituted, ...) are never overwritten
    return current in (None, AttendanceStatus.PRESENT.value)


def derive_check_in_status(
    planned_start: str,
    actual_start: str,
    current: Optional[str] = None,
    grace_minutes: int = DEFAULT_GRACE_MINUTES,
) -> Optional[str]:
    """Status after a check-in: late past the grace period, otherwise present."""
    if not _escalatable(current):
        return current
    diff = parse_time_to_minutes(actual_start) - parse_time_to_minutes(planned_start)
    if diff > grace_minutes:
        return AttendanceStatus.LATE.value
    return AttendanceStatus.PRESENT.value


def derive_check_out_status(
    planned_end: str,
    actual_end: str,
    current: Optional[str] = None,
    grace_minutes: int = DEFAULT_GRACE_MINUTES,
) -> Optional[str]:
    """Status after a check-out: left_early when leaving well before the planned end.

    Only a present (or unset) status is changed; e.g. a late arrival who also
    leaves early stays late.
    """
    if not _escalatable(current):
        return current
    diff = parse_time_to_minutes(planned_end) - parse_time_to_minutes(actual_end)
    if diff > grace_minutes:
        return AttendanceStatus.LEFT_EARLY.value
    return current
