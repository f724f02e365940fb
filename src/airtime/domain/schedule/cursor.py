"""
Playlist cursor.

Remembers, per playlist, which item the standing queue is on. The cursor
follows an item by id so reordering a playlist does not change what plays
next; if the item disappears it falls forward to the next remaining
position, wrapping to the first item.
"""

from dataclasses import dataclass
from typing import Any, Optional

from airtime.domain.playlists.models import PlaylistItem, sort_items


@dataclass(frozen=True)
class CursorMark:
    """Where the cursor sits in one playlist."""

    position: int
    item_id: Optional[str] = None


class PlaylistCursor:
    """Per-playlist queue positions.

    Only the scheduler advances the cursor, and only while the queue is
    playing; overrides leave it untouched.
    """

    def __init__(self) -> None:
        self._marks: dict[str, CursorMark] = {}

    def current(self, playlist_id: str, items: list[PlaylistItem]) -> Optional[PlaylistItem]:
        """The item the queue is on, or None if the playlist is empty."""
        ordered = sort_items(items)
        if not ordered:
            return None

        item = self._locate(self._marks.get(playlist_id), ordered)
        self._marks[playlist_id] = CursorMark(item.position, item.id)
        return item

    def advance(self, playlist_id: str, items: list[PlaylistItem]) -> Optional[int]:
        """Move to the next item, wrapping past the last one.

        Returns:
            The new position, or None if the playlist is empty
        """
        ordered = sort_items(items)
        current = self.current(playlist_id, ordered)
        if current is None:
            return None

        index = next(i for i, item in enumerate(ordered) if item.id == current.id)
        next_item = ordered[(index + 1) % len(ordered)]
        self._marks[playlist_id] = CursorMark(next_item.position, next_item.id)
        return next_item.position

    def seek(self, playlist_id: str, position: int, item_id: Optional[str] = None) -> None:
        """Place the cursor at a position (and optionally a specific item)."""
        self._marks[playlist_id] = CursorMark(position, item_id)

    def position(self, playlist_id: str) -> Optional[int]:
        """Last known position in a playlist, or None if never visited."""
        mark = self._marks.get(playlist_id)
        return mark.position if mark else None

    def mark(self, playlist_id: str) -> Optional[CursorMark]:
        return self._marks.get(playlist_id)

    def forget(self, playlist_id: str) -> None:
        self._marks.pop(playlist_id, None)

    def to_dict(self) -> dict[str, Any]:
        return {
            playlist_id: {"position": mark.position, "item_id": mark.item_id}
            for playlist_id, mark in self._marks.items()
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlaylistCursor":
        cursor = cls()
        for playlist_id, mark in (data or {}).items():
            cursor.seek(playlist_id, int(mark["position"]), mark.get("item_id"))
        return cursor

    @staticmethod
    def _locate(mark: Optional[CursorMark], ordered: list[PlaylistItem]) -> PlaylistItem:
        if mark is None:
            return ordered[0]

        if mark.item_id is not None:
            for item in ordered:
                if item.id == mark.item_id:
                    return item

        # Item gone (or never pinned): next remaining at or after the position
        for item in ordered:
            if item.position >= mark.position:
                return item
        return ordered[0]
