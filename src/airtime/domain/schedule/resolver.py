"""
Precedence resolution: what should be playing right now.

Given an instant and the station's events, picks exactly one directive:

1. a one-time broadcast whose window contains ``now``
2. an active recurring slot whose weekly window contains ``now``
3. the standing playlist queue at the cursor
4. Idle

An event whose song or playlist is gone is skipped and reported as a
DanglingReferenceError; resolution falls through to the next candidate.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping, Optional

from loguru import logger

from airtime.domain.library.models import Song
from airtime.domain.playlists.models import Playlist, PlaylistContent, PlaylistItem

from .exceptions import DanglingReferenceError, EmptyPlaylistError, SchedulingError
from .models import (
    Idle,
    OneTimeBroadcast,
    PlayBroadcast,
    PlayRecurring,
    RecurringSlot,
    ResumePlaylist,
    SchedulingDirective,
)
from .windows import broadcast_window, slot_contains


@dataclass(frozen=True)
class QueueState:
    """The standing queue as the resolver sees it: playlist plus cursor item."""

    playlist: Playlist
    item: Optional[PlaylistItem]


@dataclass(frozen=True)
class Resolution:
    """Resolver output: one directive plus the recoverable errors met on the way."""

    directive: SchedulingDirective
    errors: tuple[SchedulingError, ...] = ()

    @property
    def dangling(self) -> list[DanglingReferenceError]:
        return [e for e in self.errors if isinstance(e, DanglingReferenceError)]


def resolve(
    now: datetime,
    recurring_slots: Iterable[RecurringSlot],
    broadcasts: Iterable[OneTimeBroadcast],
    queue: Optional[QueueState],
    songs: Mapping[str, Song],
    playlists: Mapping[str, PlaylistContent],
) -> Resolution:
    """Resolve the single authoritative directive for ``now``.

    Args:
        now: Station-local wall-clock instant
        recurring_slots: Candidate slots (inactive ones are ignored)
        broadcasts: Candidate broadcasts (consumed ones are ignored)
        queue: Standing queue state, or None when no playlist is available
        songs: Songs by ID; a missing entry is a dangling reference
        playlists: Playlist contents by ID, for slots that play a playlist

    Returns:
        Resolution whose directive is never None
    """
    errors: list[SchedulingError] = []

    directive = _resolve_broadcast(now, broadcasts, songs, errors)
    if directive is None:
        directive = _resolve_recurring(now, recurring_slots, songs, playlists, errors)
    if directive is None:
        directive = _resolve_queue(queue, songs, errors)

    return Resolution(directive=directive, errors=tuple(errors))


def _resolve_broadcast(
    now: datetime,
    broadcasts: Iterable[OneTimeBroadcast],
    songs: Mapping[str, Song],
    errors: list[SchedulingError],
) -> Optional[PlayBroadcast]:
    matches: list[tuple[OneTimeBroadcast, Song]] = []

    for broadcast in broadcasts:
        if broadcast.consumed:
            continue

        song = songs.get(broadcast.song_id) if broadcast.song_id else None
        if song is None:
            # Without a song there is no window; report once its start has passed
            if broadcast.starts_at <= now:
                errors.append(
                    DanglingReferenceError(
                        "broadcast", broadcast.id, "song", broadcast.song_id
                    )
                )
            continue

        start, end = broadcast_window(broadcast, song)
        if start <= now < end:
            matches.append((broadcast, song))

    if not matches:
        return None

    matches.sort(key=lambda match: match[0].id)
    if len(matches) > 1:
        logger.warning(
            f"Overlapping broadcasts at {now.isoformat()}: "
            f"{[b.id for b, _ in matches]}, using {matches[0][0].id}"
        )

    broadcast, song = matches[0]
    offset = (now - broadcast.starts_at).total_seconds()
    return PlayBroadcast(broadcast=broadcast, song=song, offset_seconds=offset)


def _resolve_recurring(
    now: datetime,
    recurring_slots: Iterable[RecurringSlot],
    songs: Mapping[str, Song],
    playlists: Mapping[str, PlaylistContent],
    errors: list[SchedulingError],
) -> Optional[PlayRecurring]:
    matching = sorted(
        (slot for slot in recurring_slots if slot.active and slot_contains(slot, now)),
        key=lambda slot: slot.id,
    )

    for slot in matching:
        elapsed = (now - datetime.combine(now.date(), slot.start_time)).total_seconds()

        if slot.playlist_id is not None:
            content = playlists.get(slot.playlist_id)
            if content is None:
                errors.append(
                    DanglingReferenceError("slot", slot.id, "playlist", slot.playlist_id)
                )
                continue
            picked = pick_playlist_song(content, songs, elapsed)
            if picked is None:
                errors.append(
                    DanglingReferenceError("slot", slot.id, "playlist", slot.playlist_id)
                )
                continue
            song, offset = picked
            return PlayRecurring(
                slot=slot, song=song, playlist=content.playlist, offset_seconds=offset
            )

        song = songs.get(slot.song_id) if slot.song_id else None
        if song is None:
            errors.append(DanglingReferenceError("slot", slot.id, "song", slot.song_id))
            continue
        return PlayRecurring(slot=slot, song=song, offset_seconds=elapsed)

    return None


def _resolve_queue(
    queue: Optional[QueueState],
    songs: Mapping[str, Song],
    errors: list[SchedulingError],
) -> SchedulingDirective:
    if queue is None:
        return Idle(reason="no playlist available")

    if queue.item is None:
        errors.append(EmptyPlaylistError(queue.playlist.id))
        return Idle(reason=f"playlist '{queue.playlist.name}' is empty")

    song = songs.get(queue.item.song_id)
    if song is None:
        errors.append(
            DanglingReferenceError(
                "playlist_item", queue.item.id, "song", queue.item.song_id
            )
        )
        return Idle(reason=f"playlist '{queue.playlist.name}' has a missing song")

    return ResumePlaylist(
        playlist=queue.playlist,
        position=queue.item.position,
        item=queue.item,
        song=song,
    )


def pick_playlist_song(
    content: PlaylistContent,
    songs: Mapping[str, Song],
    elapsed_seconds: float,
) -> Optional[tuple[Song, float]]:
    """Find the song playing ``elapsed_seconds`` into a looping playlist.

    The playlist is laid end to end from the slot start and loops; songs
    missing from ``songs`` are skipped.

    Returns:
        (song, offset within song), or None if nothing playable
    """
    tracks = [
        songs[item.song_id]
        for item in sorted(content.items, key=lambda item: item.position)
        if item.song_id in songs
    ]
    total = sum(song.duration for song in tracks)
    if total <= 0:
        return None

    position_in_loop = elapsed_seconds % total
    accumulated = 0.0
    for song in tracks:
        if accumulated + song.duration > position_in_loop:
            return song, position_in_loop - accumulated
        accumulated += song.duration

    # Float rounding at the loop boundary
    return tracks[0], 0.0
