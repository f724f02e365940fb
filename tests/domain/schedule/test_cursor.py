"""Tests for the playlist cursor."""

from airtime.domain.playlists.models import PlaylistItem
from airtime.domain.schedule.cursor import PlaylistCursor


def make_items(*positions: int, playlist_id: str = "p1") -> list[PlaylistItem]:
    return [
        PlaylistItem(id=f"item-{pos}", playlist_id=playlist_id, song_id=f"song-{pos}", position=pos)
        for pos in positions
    ]


class TestEmptyPlaylist:
    """An empty playlist has no current item and cannot advance."""

    def test_current_is_none(self) -> None:
        assert PlaylistCursor().current("p1", []) is None

    def test_advance_is_none(self) -> None:
        assert PlaylistCursor().advance("p1", []) is None


class TestAdvance:
    """Tests for advancing through a playlist."""

    def test_starts_at_first_item(self) -> None:
        cursor = PlaylistCursor()
        assert cursor.current("p1", make_items(0, 1, 2)).position == 0

    def test_full_cycle_returns_to_start(self) -> None:
        """Advancing n times on an n-item playlist visits every item once."""
        items = make_items(0, 1, 2, 3)
        cursor = PlaylistCursor()
        start = cursor.current("p1", items).position

        visited = [cursor.advance("p1", items) for _ in range(len(items))]

        assert visited == [1, 2, 3, 0]
        assert visited[-1] == start

    def test_wraps_past_last_item(self) -> None:
        items = make_items(0, 1)
        cursor = PlaylistCursor()
        cursor.seek("p1", 1)

        assert cursor.advance("p1", items) == 0

    def test_non_contiguous_positions(self) -> None:
        items = make_items(0, 5, 9)
        cursor = PlaylistCursor()

        assert cursor.advance("p1", items) == 5
        assert cursor.advance("p1", items) == 9
        assert cursor.advance("p1", items) == 0

    def test_playlists_are_independent(self) -> None:
        cursor = PlaylistCursor()
        cursor.advance("p1", make_items(0, 1, 2))

        assert cursor.position("p1") == 1
        assert cursor.position("p2") is None


class TestItemRemoval:
    """The cursor falls forward when its item disappears."""

    def test_moves_to_next_remaining_item(self) -> None:
        cursor = PlaylistCursor()
        items = make_items(0, 1, 2)
        cursor.seek("p1", 1, "item-1")

        remaining = [item for item in items if item.id != "item-1"]

        assert cursor.current("p1", remaining).id == "item-2"

    def test_moves_to_next_after_compaction(self) -> None:
        cursor = PlaylistCursor()
        cursor.seek("p1", 1, "item-1")
        compacted = [
            PlaylistItem(id="item-0", playlist_id="p1", song_id="song-0", position=0),
            PlaylistItem(id="item-2", playlist_id="p1", song_id="song-2", position=1),
        ]

        assert cursor.current("p1", compacted).id == "item-2"

    def test_wraps_when_last_item_removed(self) -> None:
        cursor = PlaylistCursor()
        cursor.seek("p1", 2, "item-2")

        assert cursor.current("p1", make_items(0, 1)).id == "item-0"

    def test_follows_item_after_reorder(self) -> None:
        cursor = PlaylistCursor()
        cursor.seek("p1", 1, "item-1")
        reordered = [
            PlaylistItem(id="item-1", playlist_id="p1", song_id="song-1", position=0),
            PlaylistItem(id="item-0", playlist_id="p1", song_id="song-0", position=1),
        ]

        current = cursor.current("p1", reordered)

        assert current.id == "item-1"
        assert cursor.position("p1") == 0


class TestSerialization:
    """Cursor marks survive a save/restore."""

    def test_restored_cursor_points_at_same_item(self) -> None:
        cursor = PlaylistCursor()
        cursor.seek("p1", 2, "item-2")

        restored = PlaylistCursor.from_dict(cursor.to_dict())

        assert restored.current("p1", make_items(0, 1, 2)).id == "item-2"

    def test_forget(self) -> None:
        cursor = PlaylistCursor()
        cursor.seek("p1", 2)
        cursor.forget("p1")

        assert cursor.mark("p1") is None
