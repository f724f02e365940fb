"""
Song management for the library.

Deleting a song removes it from every playlist (playlist items cascade) and
nulls out the song reference on recurring slots and one-time broadcasts.
The scheduler reports those events as dangling until an operator repoints
them.
"""

from typing import Any, Optional

from loguru import logger

from airtime.core.db_adapter import bump_store_version, generate_id, get_store_connection

from .models import Song


def _row_to_song(row: dict[str, Any]) -> Song:
    """Convert database row to Song."""
    return Song(
        id=row["id"],
        title=row["title"],
        media_ref=row["media_ref"],
        duration=int(row["duration"] or 0),
        artist=row["artist"],
        album=row["album"],
    )


def create_song(
    title: str,
    media_ref: str,
    duration: int = 0,
    artist: Optional[str] = None,
    album: Optional[str] = None,
) -> Song:
    """Register a song in the library.

    Args:
        title: Song title
        media_ref: Opaque media handle (path or URL)
        duration: Length in whole seconds
        artist: Optional artist name
        album: Optional album name

    Returns:
        The created Song

    Raises:
        ValueError: If title or media_ref is empty or duration is negative
    """
    if not title or not title.strip():
        raise ValueError("Song title cannot be empty")
    if not media_ref:
        raise ValueError("Song media reference cannot be empty")
    if duration < 0:
        raise ValueError(f"Song duration must be >= 0, got {duration}")

    song = Song(
        id=generate_id(),
        title=title.strip(),
        media_ref=media_ref,
        duration=int(duration),
        artist=artist,
        album=album,
    )

    with get_store_connection() as conn:
        conn.execute(
            """
            INSERT INTO songs (id, title, artist, album, duration, media_ref)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (song.id, song.title, song.artist, song.album, song.duration, song.media_ref),
        )
        bump_store_version(conn)
        conn.commit()

    logger.info(f"Created song {song.id}: {song.display_name} ({song.duration}s)")
    return song


def get_song(song_id: str) -> Optional[Song]:
    """Get a song by ID.

    Args:
        song_id: Song ID

    Returns:
        Song or None if not found
    """
    with get_store_connection() as conn:
        row = conn.execute("SELECT * FROM songs WHERE id = ?", (song_id,)).fetchone()
        return _row_to_song(dict(row)) if row else None


def get_all_songs() -> list[Song]:
    """Get all songs ordered by title."""
    with get_store_connection() as conn:
        cursor = conn.execute("SELECT * FROM songs ORDER BY title, id")
        return [_row_to_song(dict(row)) for row in cursor.fetchall()]


def delete_song(song_id: str) -> bool:
    """Delete a song.

    Playlist items referencing the song are removed and the remaining items
    of each affected playlist are compacted. Events referencing the song keep
    their time window but lose their content reference.

    Args:
        song_id: Song ID

    Returns:
        True if deleted, False if song not found
    """
    with get_store_connection() as conn:
        affected_playlists = [
            row["playlist_id"]
            for row in conn.execute(
                "SELECT playlist_id FROM playlist_items WHERE song_id = ?",
                (song_id,),
            ).fetchall()
        ]
        orphaned_slots = conn.execute(
            "SELECT COUNT(*) AS n FROM recurring_slots WHERE song_id = ?",
            (song_id,),
        ).fetchone()["n"]
        orphaned_broadcasts = conn.execute(
            "SELECT COUNT(*) AS n FROM one_time_broadcasts WHERE song_id = ?",
            (song_id,),
        ).fetchone()["n"]

        cursor = conn.execute("DELETE FROM songs WHERE id = ?", (song_id,))
        if cursor.rowcount == 0:
            conn.rollback()
            return False

        # Explicit for backends that were created without FK actions
        conn.execute("DELETE FROM playlist_items WHERE song_id = ?", (song_id,))
        conn.execute(
            "UPDATE recurring_slots SET song_id = NULL WHERE song_id = ?", (song_id,)
        )
        conn.execute(
            "UPDATE one_time_broadcasts SET song_id = NULL WHERE song_id = ?",
            (song_id,),
        )

        from airtime.domain.playlists.crud import compact_positions

        for playlist_id in affected_playlists:
            compact_positions(conn, playlist_id)

        bump_store_version(conn)
        conn.commit()

    logger.info(
        f"Deleted song {song_id} (removed from {len(affected_playlists)} playlists, "
        f"orphaned {orphaned_slots} slots and {orphaned_broadcasts} broadcasts)"
    )
    return True
