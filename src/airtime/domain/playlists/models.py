"""
Playlist domain models.

A playlist is an ordered queue of songs. Items are ordered by ``position``,
which is unique within a playlist but not necessarily contiguous.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Playlist:
    """Represents a playlist the station can queue."""

    id: str
    name: str
    description: Optional[str] = None
    active: bool = True
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class PlaylistItem:
    """A song placed at a position in a playlist."""

    id: str
    playlist_id: str
    song_id: str
    position: int


@dataclass(frozen=True)
class PlaylistContent:
    """A playlist together with its items in queue order."""

    playlist: Playlist
    items: tuple[PlaylistItem, ...] = ()


def sort_items(items: list[PlaylistItem]) -> list[PlaylistItem]:
    """Return items in queue order (position ascending)."""
    return sorted(items, key=lambda item: item.position)
