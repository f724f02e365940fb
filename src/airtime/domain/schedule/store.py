"""
Entity store access for the scheduler.

The scheduler only talks to the store through the EntityStore protocol, so
tests can hand it anything that answers these calls. SqlEntityStore is the
production implementation on top of the SQLite/PostgreSQL adapter.
"""

import json
from datetime import date
from typing import Any, Optional, Protocol

from loguru import logger

from airtime.core.db_adapter import get_store_connection, read_store_version
from airtime.domain.library import songs as song_crud
from airtime.domain.library.models import Song
from airtime.domain.playlists import crud as playlist_crud
from airtime.domain.playlists.models import Playlist, PlaylistItem

from . import events
from .models import OneTimeBroadcast, RecurringSlot


class EntityStore(Protocol):
    """Read contract the scheduler needs, plus its few writes."""

    def version(self) -> int: ...
    def list_active_playlists(self) -> list[Playlist]: ...
    def get_playlist(self, playlist_id: str) -> Optional[Playlist]: ...
    def list_playlist_items(self, playlist_id: str) -> list[PlaylistItem]: ...
    def list_active_recurring_slots(self) -> list[RecurringSlot]: ...
    def list_pending_broadcasts(self, from_date: date) -> list[OneTimeBroadcast]: ...
    def get_song(self, song_id: str) -> Optional[Song]: ...
    def mark_broadcast_consumed(self, broadcast_id: str) -> bool: ...
    def load_playback_state(self) -> Optional[dict[str, Any]]: ...
    def save_playback_state(self, state: dict[str, Any]) -> None: ...


class SqlEntityStore:
    """EntityStore backed by the configured database."""

    def version(self) -> int:
        with get_store_connection() as conn:
            return read_store_version(conn)

    def list_active_playlists(self) -> list[Playlist]:
        return playlist_crud.get_all_playlists(active_only=True)

    def get_playlist(self, playlist_id: str) -> Optional[Playlist]:
        return playlist_crud.get_playlist(playlist_id)

    def list_playlist_items(self, playlist_id: str) -> list[PlaylistItem]:
        return playlist_crud.get_playlist_items(playlist_id)

    def list_active_recurring_slots(self) -> list[RecurringSlot]:
        return events.get_recurring_slots(active_only=True)

    def list_pending_broadcasts(self, from_date: date) -> list[OneTimeBroadcast]:
        return events.get_broadcasts(from_date=from_date, include_consumed=False)

    def get_song(self, song_id: str) -> Optional[Song]:
        return song_crud.get_song(song_id)

    def mark_broadcast_consumed(self, broadcast_id: str) -> bool:
        return events.mark_broadcast_consumed(broadcast_id)

    def load_playback_state(self) -> Optional[dict[str, Any]]:
        with get_store_connection() as conn:
            row = conn.execute("SELECT state FROM playback_state WHERE id = 1").fetchone()
        if not row:
            return None
        try:
            return json.loads(row["state"])
        except json.JSONDecodeError:
            logger.warning("Stored playback state is corrupt, starting fresh")
            return None

    def save_playback_state(self, state: dict[str, Any]) -> None:
        with get_store_connection() as conn:
            conn.execute(
                """
                INSERT INTO playback_state (id, state, updated_at)
                VALUES (1, ?, CURRENT_TIMESTAMP)
                ON CONFLICT (id) DO UPDATE
                SET state = excluded.state, updated_at = CURRENT_TIMESTAMP
                """,
                (json.dumps(state),),
            )
            conn.commit()
        logger.debug("Saved playback state")
