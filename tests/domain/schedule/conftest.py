"""Fixtures for scheduler-level tests."""

import time as time_module
from dataclasses import replace
from datetime import date, time
from typing import Any, Optional

import pytest

from airtime.domain.library.models import Song
from airtime.domain.playlists.models import Playlist, PlaylistItem
from airtime.domain.schedule.models import OneTimeBroadcast, RecurringSlot


class InMemoryStore:
    """EntityStore held in dicts, with knobs for slow or failing reads."""

    def __init__(self) -> None:
        self.songs: dict[str, Song] = {}
        self.playlists: dict[str, Playlist] = {}
        self.items: dict[str, list[PlaylistItem]] = {}
        self.slots: dict[str, RecurringSlot] = {}
        self.broadcasts: dict[str, OneTimeBroadcast] = {}
        self.saved_state: Optional[dict[str, Any]] = None
        self._version = 0

        self.delay = 0.0
        self.error: Optional[Exception] = None
        self.playlist_reads = 0
        self.bump_during_reads = 0

    # === Setup helpers ===

    def bump(self) -> None:
        self._version += 1

    def add_song(self, song_id: str, duration: int = 180) -> Song:
        song = Song(id=song_id, title=song_id.title(), media_ref=f"/m/{song_id}.mp3", duration=duration)
        self.songs[song_id] = song
        self.bump()
        return song

    def add_playlist(
        self, playlist_id: str, name: str, song_ids: list[str], active: bool = True
    ) -> Playlist:
        playlist = Playlist(id=playlist_id, name=name, active=active)
        self.playlists[playlist_id] = playlist
        self.items[playlist_id] = [
            PlaylistItem(id=f"{playlist_id}-{pos}", playlist_id=playlist_id, song_id=sid, position=pos)
            for pos, sid in enumerate(song_ids)
        ]
        self.bump()
        return playlist

    def add_slot(
        self,
        slot_id: str,
        day: int,
        start: time,
        end: time,
        song_id: Optional[str] = None,
        playlist_id: Optional[str] = None,
    ) -> RecurringSlot:
        slot = RecurringSlot(
            id=slot_id,
            title=f"Slot {slot_id}",
            day_of_week=day,
            start_time=start,
            end_time=end,
            song_id=song_id,
            playlist_id=playlist_id,
        )
        self.slots[slot_id] = slot
        self.bump()
        return slot

    def add_broadcast(
        self, broadcast_id: str, on: date, start: time, song_id: Optional[str]
    ) -> OneTimeBroadcast:
        broadcast = OneTimeBroadcast(
            id=broadcast_id,
            title=f"Broadcast {broadcast_id}",
            date=on,
            start_time=start,
            song_id=song_id,
        )
        self.broadcasts[broadcast_id] = broadcast
        self.bump()
        return broadcast

    def delete_song(self, song_id: str) -> None:
        """Mirror the SQL store: null event references, drop playlist items."""
        self.songs.pop(song_id, None)
        for slot_id, slot in list(self.slots.items()):
            if slot.song_id == song_id:
                self.slots[slot_id] = replace(slot, song_id=None)
        for broadcast_id, broadcast in list(self.broadcasts.items()):
            if broadcast.song_id == song_id:
                self.broadcasts[broadcast_id] = replace(broadcast, song_id=None)
        for playlist_id, items in self.items.items():
            self.items[playlist_id] = [item for item in items if item.song_id != song_id]
        self.bump()

    def _io(self) -> None:
        if self.delay:
            time_module.sleep(self.delay)
        if self.error is not None:
            raise self.error

    # === EntityStore ===

    def version(self) -> int:
        self._io()
        return self._version

    def list_active_playlists(self) -> list[Playlist]:
        self._io()
        self.playlist_reads += 1
        if self.bump_during_reads > 0:
            self.bump_during_reads -= 1
            self.bump()
        return [p for p in self.playlists.values() if p.active]

    def get_playlist(self, playlist_id: str) -> Optional[Playlist]:
        self._io()
        return self.playlists.get(playlist_id)

    def list_playlist_items(self, playlist_id: str) -> list[PlaylistItem]:
        self._io()
        return sorted(self.items.get(playlist_id, []), key=lambda item: item.position)

    def list_active_recurring_slots(self) -> list[RecurringSlot]:
        self._io()
        return [s for s in self.slots.values() if s.active]

    def list_pending_broadcasts(self, from_date: date) -> list[OneTimeBroadcast]:
        self._io()
        return [
            b for b in self.broadcasts.values() if not b.consumed and b.date >= from_date
        ]

    def get_song(self, song_id: str) -> Optional[Song]:
        self._io()
        return self.songs.get(song_id)

    def mark_broadcast_consumed(self, broadcast_id: str) -> bool:
        broadcast = self.broadcasts.get(broadcast_id)
        if broadcast is None or broadcast.consumed:
            return False
        self.broadcasts[broadcast_id] = replace(broadcast, consumed=True)
        self.bump()
        return True

    def load_playback_state(self) -> Optional[dict[str, Any]]:
        self._io()
        return self.saved_state

    def save_playback_state(self, state: dict[str, Any]) -> None:
        self.saved_state = state


@pytest.fixture
def store() -> InMemoryStore:
    """Morning Praise queue, a Monday 09:00-09:15 slot and spare songs."""
    store = InMemoryStore()
    for song_id in ["a", "b", "c"]:
        store.add_song(song_id)
    store.add_song("x", duration=900)
    store.add_song("y", duration=600)
    store.add_playlist("praise", "Morning Praise", ["a", "b", "c"])
    store.add_slot("prayer", 1, time(9, 0), time(9, 15), song_id="x")
    return store
