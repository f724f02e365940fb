"""Clock abstractions used by the scheduler.

The scheduler never reads the wall clock directly; it asks an injected
clock. Tests drive a :class:`FixedClock` to arbitrary instants.
"""

from datetime import datetime, timedelta
from threading import Lock
from typing import Optional, Protocol, runtime_checkable
from zoneinfo import ZoneInfo


@runtime_checkable
class Clock(Protocol):
    """Protocol implemented by clock providers."""

    def now(self) -> datetime:
        """Return the current station wall-clock time (naive, station-local)."""


class SystemClock:
    """Wall clock, optionally pinned to a station timezone.

    Returned datetimes are naive and expressed in station-local time, which is
    how slot and broadcast times are stored.
    """

    def __init__(self, timezone: Optional[str] = None) -> None:
        self._tz = ZoneInfo(timezone) if timezone else None

    def now(self) -> datetime:
        if self._tz is None:
            return datetime.now()
        return datetime.now(self._tz).replace(tzinfo=None)


class FixedClock:
    """Deterministic clock for tests.

    Time only moves when :meth:`set` or :meth:`advance` is called.
    """

    def __init__(self, start: datetime) -> None:
        self._current = start
        self._lock = Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._current

    def set(self, when: datetime) -> None:
        with self._lock:
            self._current = when

    def advance(self, seconds: float) -> datetime:
        """Advance the clock by ``seconds`` (must be non-negative)."""
        if seconds < 0:
            raise ValueError("seconds must be non-negative")
        with self._lock:
            self._current += timedelta(seconds=seconds)
            return self._current
