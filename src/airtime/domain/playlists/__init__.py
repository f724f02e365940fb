"""Playlists domain - ordered playlists that make up the standing queue.

This domain handles:
- Playlist CRUD operations (create, delete, rename, activate)
- Playlist items with unique, compacted positions
- Reordering items inside a playlist
"""

# Models
from .models import Playlist, PlaylistContent, PlaylistItem, sort_items

# CRUD operations
from .crud import (
    add_song_to_playlist,
    compact_positions,
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

__all__ = [
    # Models
    "Playlist",
    "PlaylistItem",
    "PlaylistContent",
    "sort_items",
    # CRUD
    "create_playlist",
    "get_playlist",
    "get_playlist_by_name",
    "get_all_playlists",
    "set_playlist_active",
    "rename_playlist",
    "delete_playlist",
    # Items
    "get_playlist_items",
    "add_song_to_playlist",
    "remove_song_from_playlist",
    "reorder_playlist_item",
    "compact_positions",
]
