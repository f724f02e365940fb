"""
Time window helpers shared by the resolver and the conflict detector.

All windows are half-open: ``[start, end)``.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from airtime.domain.library.models import Song

from .exceptions import InvalidTimeWindow
from .models import OneTimeBroadcast, RecurringSlot

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def day_of_week(value: date) -> int:
    """Day index with 0 = Sunday ... 6 = Saturday."""
    return value.isoweekday() % 7


def parse_time(time_str: str) -> time:
    """Parse "HH:MM" (or "HH:MM:SS") into a time.

    Raises:
        InvalidTimeWindow: If the string is not a valid time of day
    """
    try:
        parts = time_str.split(":")
        if len(parts) not in (2, 3):
            raise ValueError()
        hour, minute = int(parts[0]), int(parts[1])
        second = int(parts[2]) if len(parts) == 3 else 0
        return time(hour, minute, second)
    except (ValueError, AttributeError):
        raise InvalidTimeWindow(
            f"Invalid time format: '{time_str}'. Expected 'HH:MM' (e.g., '09:00')"
        )


def format_time(value: time) -> str:
    """Format a time as "HH:MM", keeping seconds only when present."""
    if value.second:
        return value.strftime("%H:%M:%S")
    return value.strftime("%H:%M")


def parse_date(date_str: str) -> date:
    """Parse "YYYY-MM-DD" into a date.

    Raises:
        InvalidTimeWindow: If the string is not a valid ISO date
    """
    try:
        return date.fromisoformat(date_str)
    except (TypeError, ValueError):
        raise InvalidTimeWindow(
            f"Invalid date format: '{date_str}'. Expected 'YYYY-MM-DD'"
        )


def time_in_range(start: time, end: time, check_time: time) -> bool:
    """Check if a time falls within ``[start, end)``.

    Examples:
        time_in_range(time(10, 0), time(10, 30), time(10, 0))      # True
        time_in_range(time(10, 0), time(10, 30), time(10, 29, 59)) # True
        time_in_range(time(10, 0), time(10, 30), time(10, 30))     # False
    """
    return start <= check_time < end


def validate_slot_window(day: int, start: time, end: time) -> None:
    """Reject slot windows the scheduler cannot evaluate.

    Raises:
        InvalidTimeWindow: If the day is out of range or start >= end
    """
    if not isinstance(day, int) or not 0 <= day <= 6:
        raise InvalidTimeWindow(f"day_of_week must be 0-6 (0 = Sunday), got {day!r}")
    if start >= end:
        raise InvalidTimeWindow(
            f"Slot start {format_time(start)} must be before end {format_time(end)}; "
            "slots cannot cross midnight"
        )


def slot_contains(slot: RecurringSlot, now: datetime) -> bool:
    """True if ``now`` falls inside the slot's weekly window."""
    return day_of_week(now) == slot.day_of_week and time_in_range(
        slot.start_time, slot.end_time, now.time()
    )


def slot_window_on(slot: RecurringSlot, day: date) -> Optional[tuple[datetime, datetime]]:
    """The slot's absolute window on ``day``, or None if it does not run that day."""
    if day_of_week(day) != slot.day_of_week:
        return None
    return datetime.combine(day, slot.start_time), datetime.combine(day, slot.end_time)


def broadcast_window(
    broadcast: OneTimeBroadcast, song: Song
) -> tuple[datetime, datetime]:
    """The broadcast's absolute window: start for the song's duration."""
    start = broadcast.starts_at
    return start, start + timedelta(seconds=song.duration)

