"""
Day preview for the weekly grid.

Splits a calendar day into contiguous ranges and labels each with what the
resolver would pick there. The queue is shown at playlist level because the
cursor position at a future instant is not known in advance.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Mapping, Optional

from airtime.domain.library.models import Song
from airtime.domain.playlists.models import PlaylistContent

from .models import OneTimeBroadcast, PlayBroadcast, PlayRecurring, RecurringSlot
from .resolver import resolve
from .windows import broadcast_window, slot_window_on


@dataclass(frozen=True)
class PreviewEntry:
    """One contiguous range of the day and what plays during it."""

    start: datetime
    end: datetime
    kind: str  # "broadcast", "recurring", "queue" or "idle"
    summary: str


def preview_day(
    day: date,
    recurring_slots: Iterable[RecurringSlot],
    broadcasts: Iterable[OneTimeBroadcast],
    songs: Mapping[str, Song],
    playlists: Mapping[str, PlaylistContent],
    queue: Optional[PlaylistContent] = None,
) -> list[PreviewEntry]:
    """Build the day's schedule as contiguous, non-overlapping entries.

    Args:
        day: Calendar day to preview
        recurring_slots: Slots to consider
        broadcasts: Broadcasts to consider
        songs: Songs by ID
        playlists: Playlist contents by ID, for playlist slots
        queue: Playlist the standing queue would play, if any

    Returns:
        Entries ordered by start, covering midnight to midnight
    """
    slots = list(recurring_slots)
    broadcasts = list(broadcasts)
    day_start = datetime.combine(day, time.min)
    day_end = day_start + timedelta(days=1)

    boundaries = {day_start, day_end}
    for slot in slots:
        window = slot_window_on(slot, day) if slot.active else None
        if window:
            boundaries.update(window)
    for broadcast in broadcasts:
        song = songs.get(broadcast.song_id) if broadcast.song_id else None
        if song is None:
            continue
        start, end = broadcast_window(broadcast, song)
        for instant in (start, end):
            if day_start < instant < day_end:
                boundaries.add(instant)

    instants = sorted(boundaries)
    entries: list[PreviewEntry] = []
    for start, end in zip(instants, instants[1:]):
        kind, summary = _describe_at(start, slots, broadcasts, songs, playlists, queue)
        if entries and entries[-1].kind == kind and entries[-1].summary == summary:
            entries[-1] = PreviewEntry(entries[-1].start, end, kind, summary)
        else:
            entries.append(PreviewEntry(start, end, kind, summary))
    return entries


def _describe_at(
    instant: datetime,
    slots: list[RecurringSlot],
    broadcasts: list[OneTimeBroadcast],
    songs: Mapping[str, Song],
    playlists: Mapping[str, PlaylistContent],
    queue: Optional[PlaylistContent],
) -> tuple[str, str]:
    directive = resolve(instant, slots, broadcasts, None, songs, playlists).directive

    if isinstance(directive, PlayBroadcast):
        return "broadcast", f"{directive.broadcast.title}: {directive.song.display_name}"
    if isinstance(directive, PlayRecurring):
        if directive.playlist is not None:
            return "recurring", f"{directive.slot.title} (playlist {directive.playlist.name})"
        return "recurring", f"{directive.slot.title}: {directive.song.display_name}"

    if queue is not None and queue.items:
        return "queue", f"Queue: {queue.playlist.name}"
    return "idle", "Idle"
