"""
Playlist CRUD operations.

Playlists own their items: deleting a playlist deletes its items. Recurring
slots that referenced a deleted playlist keep their window and lose the
reference.
"""

from datetime import datetime
from typing import Any, Optional

from loguru import logger

from airtime.core.db_adapter import bump_store_version, generate_id, get_store_connection

from .models import Playlist, PlaylistItem


def _parse_datetime(val: Any) -> Optional[datetime]:
    """Parse datetime from either string (SQLite) or datetime object (PostgreSQL)."""
    if val is None or isinstance(val, datetime):
        return val
    return datetime.fromisoformat(val)


def _row_to_playlist(row: dict[str, Any]) -> Playlist:
    """Convert database row to Playlist dataclass."""
    return Playlist(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        active=bool(row["active"]),
        created_at=_parse_datetime(row["created_at"]),
    )


def _row_to_item(row: dict[str, Any]) -> PlaylistItem:
    """Convert database row to PlaylistItem dataclass."""
    return PlaylistItem(
        id=row["id"],
        playlist_id=row["playlist_id"],
        song_id=row["song_id"],
        position=int(row["position"]),
    )


def create_playlist(
    name: str,
    description: Optional[str] = None,
    active: bool = True,
) -> Playlist:
    """Create a new playlist.

    Args:
        name: Playlist name
        description: Optional description
        active: Whether the playlist can be queued by the scheduler

    Returns:
        The created Playlist

    Raises:
        ValueError: If name is empty
    """
    if not name or not name.strip():
        raise ValueError("Playlist name cannot be empty")

    playlist = Playlist(
        id=generate_id(),
        name=name.strip(),
        description=description,
        active=active,
        created_at=datetime.now(),
    )

    with get_store_connection() as conn:
        conn.execute(
            """
            INSERT INTO playlists (id, name, description, active, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                playlist.id,
                playlist.name,
                playlist.description,
                playlist.active,
                playlist.created_at.isoformat(),
            ),
        )
        bump_store_version(conn)
        conn.commit()

    logger.info(f"Created playlist '{playlist.name}' with id {playlist.id}")
    return playlist


def get_playlist(playlist_id: str) -> Optional[Playlist]:
    """Get a playlist by ID."""
    with get_store_connection() as conn:
        row = conn.execute(
            "SELECT * FROM playlists WHERE id = ?", (playlist_id,)
        ).fetchone()
        return _row_to_playlist(dict(row)) if row else None


def get_playlist_by_name(name: str) -> Optional[Playlist]:
    """Get the oldest playlist with the given name."""
    with get_store_connection() as conn:
        row = conn.execute(
            "SELECT * FROM playlists WHERE name = ? ORDER BY created_at, id LIMIT 1",
            (name,),
        ).fetchone()
        return _row_to_playlist(dict(row)) if row else None


def get_all_playlists(active_only: bool = False) -> list[Playlist]:
    """Get playlists in creation order.

    Args:
        active_only: Only return playlists flagged active

    Returns:
        List of playlists, oldest first
    """
    query = "SELECT * FROM playlists"
    if active_only:
        query += " WHERE active = ?"
        params: tuple = (True,)
    else:
        params = ()
    query += " ORDER BY created_at, id"

    with get_store_connection() as conn:
        cursor = conn.execute(query, params)
        return [_row_to_playlist(dict(row)) for row in cursor.fetchall()]


def set_playlist_active(playlist_id: str, active: bool) -> bool:
    """Enable or disable a playlist for queueing.

    Returns:
        True if updated, False if playlist not found
    """
    with get_store_connection() as conn:
        cursor = conn.execute(
            "UPDATE playlists SET active = ? WHERE id = ?", (active, playlist_id)
        )
        updated = cursor.rowcount > 0
        if updated:
            bump_store_version(conn)
        conn.commit()

    if updated:
        logger.info(f"Playlist {playlist_id} active={active}")
    return updated


def rename_playlist(playlist_id: str, new_name: str) -> bool:
    """Rename a playlist.

    Raises:
        ValueError: If the new name is empty
    """
    if not new_name or not new_name.strip():
        raise ValueError("Playlist name cannot be empty")

    with get_store_connection() as conn:
        cursor = conn.execute(
            "UPDATE playlists SET name = ? WHERE id = ?",
            (new_name.strip(), playlist_id),
        )
        updated = cursor.rowcount > 0
        if updated:
            bump_store_version(conn)
        conn.commit()

    if updated:
        logger.info(f"Renamed playlist {playlist_id} to '{new_name.strip()}'")
    return updated


def delete_playlist(playlist_id: str) -> bool:
    """Delete a playlist and its items.

    Returns:
        True if deleted, False if playlist not found
    """
    with get_store_connection() as conn:
        cursor = conn.execute("DELETE FROM playlists WHERE id = ?", (playlist_id,))
        if cursor.rowcount == 0:
            conn.rollback()
            return False

        conn.execute("DELETE FROM playlist_items WHERE playlist_id = ?", (playlist_id,))
        conn.execute(
            "UPDATE recurring_slots SET playlist_id = NULL WHERE playlist_id = ?",
            (playlist_id,),
        )
        bump_store_version(conn)
        conn.commit()

    logger.info(f"Deleted playlist {playlist_id}")
    return True


def get_playlist_items(playlist_id: str) -> list[PlaylistItem]:
    """Get a playlist's items ordered by position."""
    with get_store_connection() as conn:
        cursor = conn.execute(
            "SELECT * FROM playlist_items WHERE playlist_id = ? ORDER BY position",
            (playlist_id,),
        )
        return [_row_to_item(dict(row)) for row in cursor.fetchall()]


def add_song_to_playlist(playlist_id: str, song_id: str) -> PlaylistItem:
    """Append a song to the end of a playlist.

    Args:
        playlist_id: Playlist ID
        song_id: Song ID

    Returns:
        The created PlaylistItem

    Raises:
        ValueError: If the playlist or song does not exist, or the song is
            already in the playlist
    """
    with get_store_connection() as conn:
        if not conn.execute(
            "SELECT id FROM playlists WHERE id = ?", (playlist_id,)
        ).fetchone():
            raise ValueError(f"Playlist {playlist_id} not found")
        if not conn.execute("SELECT id FROM songs WHERE id = ?", (song_id,)).fetchone():
            raise ValueError(f"Song {song_id} not found")
        if conn.execute(
            "SELECT id FROM playlist_items WHERE playlist_id = ? AND song_id = ?",
            (playlist_id, song_id),
        ).fetchone():
            raise ValueError(f"Song {song_id} is already in playlist {playlist_id}")

        # Next position (0 if playlist is empty, otherwise max + 1)
        next_position = conn.execute(
            """
            SELECT COALESCE(MAX(position) + 1, 0) AS next_position
            FROM playlist_items WHERE playlist_id = ?
            """,
            (playlist_id,),
        ).fetchone()["next_position"]

        item = PlaylistItem(
            id=generate_id(),
            playlist_id=playlist_id,
            song_id=song_id,
            position=int(next_position),
        )
        conn.execute(
            """
            INSERT INTO playlist_items (id, playlist_id, song_id, position)
            VALUES (?, ?, ?, ?)
            """,
            (item.id, item.playlist_id, item.song_id, item.position),
        )
        bump_store_version(conn)
        conn.commit()

    logger.info(f"Added song {song_id} to playlist {playlist_id} at {item.position}")
    return item


def remove_song_from_playlist(playlist_id: str, song_id: str) -> bool:
    """Remove a song from a playlist and compact the remaining positions.

    Returns:
        True if removed, False if the song was not in the playlist
    """
    with get_store_connection() as conn:
        cursor = conn.execute(
            "DELETE FROM playlist_items WHERE playlist_id = ? AND song_id = ?",
            (playlist_id, song_id),
        )
        if cursor.rowcount == 0:
            conn.rollback()
            return False

        compact_positions(conn, playlist_id)
        bump_store_version(conn)
        conn.commit()

    logger.info(f"Removed song {song_id} from playlist {playlist_id}")
    return True


def reorder_playlist_item(playlist_id: str, from_pos: int, to_pos: int) -> bool:
    """Move an item within a playlist.

    Args:
        playlist_id: Playlist ID
        from_pos: Current index in queue order (0-indexed)
        to_pos: Target index in queue order (0-indexed)

    Returns:
        True if reordered successfully, False if positions invalid
    """
    with get_store_connection() as conn:
        ids = [
            row["id"]
            for row in conn.execute(
                "SELECT id FROM playlist_items WHERE playlist_id = ? ORDER BY position",
                (playlist_id,),
            ).fetchall()
        ]
        if not (0 <= from_pos < len(ids) and 0 <= to_pos < len(ids)):
            return False

        moved = ids.pop(from_pos)
        ids.insert(to_pos, moved)
        try:
            _write_positions(conn, playlist_id, ids)
            bump_store_version(conn)
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    logger.info(f"Moved item {from_pos} -> {to_pos} in playlist {playlist_id}")
    return True


def compact_positions(conn: Any, playlist_id: str) -> None:
    """Rewrite a playlist's positions to 0..n-1 keeping their order.

    Runs inside the caller's transaction; the caller commits.
    """
    ids = [
        row["id"]
        for row in conn.execute(
            "SELECT id FROM playlist_items WHERE playlist_id = ? ORDER BY position",
            (playlist_id,),
        ).fetchall()
    ]
    _write_positions(conn, playlist_id, ids)


def _write_positions(conn: Any, playlist_id: str, ordered_ids: list[str]) -> None:
    """Assign positions 0..n-1 to items in the given order."""
    # Park every row on a negative position first so the UNIQUE
    # (playlist_id, position) constraint holds between single-row updates
    conn.execute(
        "UPDATE playlist_items SET position = -position - 1 WHERE playlist_id = ?",
        (playlist_id,),
    )
    for new_position, item_id in enumerate(ordered_ids):
        conn.execute(
            "UPDATE playlist_items SET position = ? WHERE id = ?",
            (new_position, item_id),
        )
