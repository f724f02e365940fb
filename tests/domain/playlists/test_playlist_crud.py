"""Tests for playlist CRUD and item ordering."""

import pytest

from airtime.domain.library.songs import create_song
from airtime.domain.playlists.crud import (
    add_song_to_playlist,
    create_playlist,
    delete_playlist,
    get_all_playlists,
    get_playlist,
    get_playlist_by_name,
    get_playlist_items,
    remove_song_from_playlist,
    rename_playlist,
    reorder_playlist_item,
    set_playlist_active,
)
from airtime.domain.schedule.events import add_recurring_slot, get_recurring_slot


@pytest.fixture
def library(test_db):
    """Four songs in the library."""
    return [create_song(f"Track {n}", f"/m/{n}.mp3", 120) for n in range(4)]


@pytest.fixture
def filled_playlist(library):
    playlist = create_playlist("Morning Praise", description="Weekday mornings")
    for song in library:
        add_song_to_playlist(playlist.id, song.id)
    return playlist


def song_order(playlist_id: str) -> list[str]:
    return [item.song_id for item in get_playlist_items(playlist_id)]


class TestPlaylists:
    """Tests for playlist rows."""

    def test_create_and_get(self, test_db) -> None:
        playlist = create_playlist("Gospel Hour")

        fetched = get_playlist(playlist.id)

        assert fetched.name == "Gospel Hour"
        assert fetched.active is True
        assert get_playlist_by_name("Gospel Hour").id == playlist.id

    def test_empty_name_rejected(self, test_db) -> None:
        with pytest.raises(ValueError):
            create_playlist("")

    def test_active_only_filter(self, test_db) -> None:
        keep = create_playlist("Keep")
        hidden = create_playlist("Hidden")
        set_playlist_active(hidden.id, False)

        assert [p.id for p in get_all_playlists(active_only=True)] == [keep.id]
        assert len(get_all_playlists()) == 2

    def test_rename(self, test_db) -> None:
        playlist = create_playlist("Old")

        assert rename_playlist(playlist.id, "New")
        assert get_playlist(playlist.id).name == "New"

    def test_delete_cascades_items_and_nulls_slots(self, filled_playlist) -> None:
        slot = add_recurring_slot("Praise block", 1, "09:00", "10:00", playlist_id=filled_playlist.id)

        assert delete_playlist(filled_playlist.id)

        assert get_playlist(filled_playlist.id) is None
        assert get_playlist_items(filled_playlist.id) == []
        assert get_recurring_slot(slot.id).playlist_id is None

    def test_delete_missing(self, test_db) -> None:
        assert delete_playlist("nope") is False


class TestItems:
    """Tests for adding, removing and reordering items."""

    def test_items_append_in_order(self, filled_playlist, library) -> None:
        items = get_playlist_items(filled_playlist.id)

        assert [item.position for item in items] == [0, 1, 2, 3]
        assert [item.song_id for item in items] == [song.id for song in library]

    def test_duplicate_song_rejected(self, filled_playlist, library) -> None:
        with pytest.raises(ValueError, match="already"):
            add_song_to_playlist(filled_playlist.id, library[0].id)

    def test_unknown_song_rejected(self, filled_playlist) -> None:
        with pytest.raises(ValueError, match="not found"):
            add_song_to_playlist(filled_playlist.id, "missing")

    def test_remove_compacts_positions(self, filled_playlist, library) -> None:
        assert remove_song_from_playlist(filled_playlist.id, library[1].id)

        items = get_playlist_items(filled_playlist.id)
        assert [item.position for item in items] == [0, 1, 2]
        assert library[1].id not in [item.song_id for item in items]

    def test_remove_missing(self, filled_playlist) -> None:
        assert remove_song_from_playlist(filled_playlist.id, "missing") is False

    def test_reorder_moves_item(self, filled_playlist, library) -> None:
        assert reorder_playlist_item(filled_playlist.id, 3, 0)

        assert song_order(filled_playlist.id) == [
            library[3].id,
            library[0].id,
            library[1].id,
            library[2].id,
        ]
        positions = [item.position for item in get_playlist_items(filled_playlist.id)]
        assert positions == [0, 1, 2, 3]

    def test_reorder_keeps_item_ids(self, filled_playlist) -> None:
        before = {item.song_id: item.id for item in get_playlist_items(filled_playlist.id)}

        reorder_playlist_item(filled_playlist.id, 0, 2)

        after = {item.song_id: item.id for item in get_playlist_items(filled_playlist.id)}
        assert before == after

    def test_reorder_out_of_range(self, filled_playlist) -> None:
        assert reorder_playlist_item(filled_playlist.id, 0, 9) is False
