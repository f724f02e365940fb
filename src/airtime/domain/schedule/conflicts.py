"""
Conflict detection for scheduled events.

Checks a new or edited event against the existing ones before it is saved.
The result is advisory data: the admin surface decides whether to save
anyway. Severity is BLOCKING when one window duplicates or fully contains the
other, WARNING for a partial overlap.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from airtime.domain.library.models import Song

from .models import OneTimeBroadcast, RecurringSlot, ScheduledEvent
from .windows import broadcast_window, day_of_week


class Severity(str, Enum):
    """How serious an overlap is."""

    WARNING = "warning"
    BLOCKING = "blocking"


_SEVERITY_RANK = {Severity.WARNING: 1, Severity.BLOCKING: 2}


@dataclass(frozen=True)
class Conflict:
    """One existing event that overlaps the candidate."""

    event: ScheduledEvent
    severity: Severity


@dataclass(frozen=True)
class ConflictReport:
    """All overlaps found for a candidate event."""

    candidate_id: str
    conflicts: tuple[Conflict, ...] = ()

    @property
    def severity(self) -> Optional[Severity]:
        """The worst severity among the conflicts, or None when clear."""
        if not self.conflicts:
            return None
        return max((c.severity for c in self.conflicts), key=_SEVERITY_RANK.__getitem__)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def is_blocking(self) -> bool:
        return self.severity == Severity.BLOCKING


def check_conflict(
    candidate: ScheduledEvent,
    existing: Iterable[ScheduledEvent],
    songs: Optional[Mapping[str, Song]] = None,
) -> ConflictReport:
    """Report existing events whose windows overlap the candidate's.

    Args:
        candidate: Event about to be created or updated
        existing: Events already scheduled; the candidate's own ID is skipped,
            as are inactive slots and consumed broadcasts
        songs: Songs by ID, used for broadcast window lengths; a broadcast
            whose song is unknown has an empty window

    Returns:
        ConflictReport, conflicts ordered by event ID
    """
    songs = songs or {}
    conflicts: list[Conflict] = []

    for other in existing:
        if other.id == candidate.id:
            continue
        if isinstance(other, RecurringSlot) and not other.active:
            continue
        if isinstance(other, OneTimeBroadcast) and other.consumed:
            continue

        severity = _compare(candidate, other, songs)
        if severity is not None:
            conflicts.append(Conflict(event=other, severity=severity))

    conflicts.sort(key=lambda c: c.event.id)
    return ConflictReport(candidate_id=candidate.id, conflicts=tuple(conflicts))


def _compare(
    a: ScheduledEvent, b: ScheduledEvent, songs: Mapping[str, Song]
) -> Optional[Severity]:
    if isinstance(a, RecurringSlot) and isinstance(b, RecurringSlot):
        if a.day_of_week != b.day_of_week:
            return None
        return _classify(a.start_time, a.end_time, b.start_time, b.end_time)

    if isinstance(a, OneTimeBroadcast) and isinstance(b, OneTimeBroadcast):
        a_window = _broadcast_window(a, songs)
        b_window = _broadcast_window(b, songs)
        if a_window is None or b_window is None:
            return None
        return _classify(*a_window, *b_window)

    if isinstance(a, OneTimeBroadcast):
        return _broadcast_vs_slot(a, b, songs)
    return _broadcast_vs_slot(b, a, songs)


def _broadcast_window(
    broadcast: OneTimeBroadcast, songs: Mapping[str, Song]
) -> Optional[tuple[datetime, datetime]]:
    song = songs.get(broadcast.song_id) if broadcast.song_id else None
    if song is None:
        return None
    return broadcast_window(broadcast, song)


def _broadcast_vs_slot(
    broadcast: OneTimeBroadcast, slot: RecurringSlot, songs: Mapping[str, Song]
) -> Optional[Severity]:
    window = _broadcast_window(broadcast, songs)
    if window is None:
        return None
    start, end = window

    worst: Optional[Severity] = None
    day = start.date()
    # A broadcast may run past midnight into the next day's slots
    while datetime.combine(day, datetime.min.time()) < end:
        if day_of_week(day) == slot.day_of_week:
            day_start = datetime.combine(day, datetime.min.time())
            clipped = (max(start, day_start), min(end, day_start + timedelta(days=1)))
            slot_window = (
                datetime.combine(day, slot.start_time),
                datetime.combine(day, slot.end_time),
            )
            severity = _classify(*clipped, *slot_window)
            if severity is not None and (
                worst is None or _SEVERITY_RANK[severity] > _SEVERITY_RANK[worst]
            ):
                worst = severity
        day += timedelta(days=1)
    return worst


def _classify(a_start: Any, a_end: Any, b_start: Any, b_end: Any) -> Optional[Severity]:
    """Severity of the overlap between two half-open windows, None if disjoint."""
    if a_start >= a_end or b_start >= b_end:
        return None
    if not (a_start < b_end and b_start < a_end):
        return None
    a_contains_b = a_start <= b_start and b_end <= a_end
    b_contains_a = b_start <= a_start and a_end <= b_end
    if a_contains_b or b_contains_a:
        return Severity.BLOCKING
    return Severity.WARNING
