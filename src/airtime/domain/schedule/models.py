"""
Schedule domain models.

Contains the time-triggered events (recurring weekly slots and one-time
broadcasts) and the directives the resolver produces from them.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Optional, Union, assert_never

from airtime.domain.library.models import Song
from airtime.domain.playlists.models import Playlist, PlaylistItem


@dataclass(frozen=True)
class RecurringSlot:
    """A weekly time window that overrides the playlist queue.

    The slot plays either a single song or a playlist. Slots never cross
    midnight: ``start_time < end_time`` on the same day.
    """

    id: str
    title: str
    day_of_week: int  # 0 = Sunday ... 6 = Saturday
    start_time: time
    end_time: time
    active: bool = True
    song_id: Optional[str] = None
    playlist_id: Optional[str] = None


@dataclass(frozen=True)
class OneTimeBroadcast:
    """A single dated broadcast of one song.

    The window runs from ``date + start_time`` for the song's duration and
    may run past midnight.
    """

    id: str
    title: str
    date: date
    start_time: time
    song_id: Optional[str]
    description: Optional[str] = None
    consumed: bool = False

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.start_time)


ScheduledEvent = Union[RecurringSlot, OneTimeBroadcast]


class OverrideKind(str, Enum):
    """Which kind of event is overriding the queue."""

    BROADCAST = "broadcast"
    RECURRING = "recurring"


# === Directives ===


@dataclass(frozen=True)
class PlayBroadcast:
    """Play a one-time broadcast's song, ``offset_seconds`` into it."""

    broadcast: OneTimeBroadcast
    song: Song
    offset_seconds: float = 0.0


@dataclass(frozen=True)
class PlayRecurring:
    """Play a recurring slot's content.

    For playlist slots, ``song`` is the item that falls at ``now`` when the
    playlist is laid end to end from the slot start, and ``offset_seconds``
    is the position inside that song.
    """

    slot: RecurringSlot
    song: Song
    playlist: Optional[Playlist] = None
    offset_seconds: float = 0.0


@dataclass(frozen=True)
class ResumePlaylist:
    """Play the standing queue at the cursor's position."""

    playlist: Playlist
    position: int
    item: PlaylistItem
    song: Song


@dataclass(frozen=True)
class Idle:
    """Nothing to play. ``degraded`` flags that the store could not be read."""

    reason: str = ""
    degraded: bool = False


SchedulingDirective = Union[PlayBroadcast, PlayRecurring, ResumePlaylist, Idle]


def is_override(directive: SchedulingDirective) -> bool:
    """True for directives that interrupt the queue."""
    return isinstance(directive, (PlayBroadcast, PlayRecurring))


def override_kind(directive: SchedulingDirective) -> Optional[OverrideKind]:
    """The override kind of a directive, or None for queue/idle directives."""
    if isinstance(directive, PlayBroadcast):
        return OverrideKind.BROADCAST
    if isinstance(directive, PlayRecurring):
        return OverrideKind.RECURRING
    return None


def directive_key(directive: SchedulingDirective) -> tuple:
    """Identity of a directive, ignoring the moving playback offset.

    Two directives with the same key describe the same thing playing, so no
    change needs to be pushed to the playback layer.
    """
    match directive:
        case PlayBroadcast(broadcast=broadcast, song=song):
            return ("broadcast", broadcast.id, song.id)
        case PlayRecurring(slot=slot, song=song):
            return ("recurring", slot.id, song.id)
        case ResumePlaylist(playlist=playlist, position=position, song=song):
            return ("queue", playlist.id, position, song.id)
        case Idle(degraded=degraded):
            return ("idle", degraded)
        case _:
            assert_never(directive)


def describe_directive(directive: SchedulingDirective) -> str:
    """One-line human readable summary of a directive."""
    match directive:
        case PlayBroadcast(broadcast=broadcast, song=song):
            return f"Broadcast '{broadcast.title}': {song.display_name}"
        case PlayRecurring(slot=slot, song=song, playlist=playlist):
            if playlist is not None:
                return f"Recurring '{slot.title}': {playlist.name} ({song.display_name})"
            return f"Recurring '{slot.title}': {song.display_name}"
        case ResumePlaylist(playlist=playlist, position=position, song=song):
            return f"Queue '{playlist.name}' #{position}: {song.display_name}"
        case Idle(reason=reason, degraded=degraded):
            label = "Idle (degraded)" if degraded else "Idle"
            return f"{label}: {reason}" if reason else label
        case _:
            assert_never(directive)
