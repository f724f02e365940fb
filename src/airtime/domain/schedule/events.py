"""
Event management for the schedule.

CRUD for recurring weekly slots and one-time broadcasts. Time windows are
validated here, before anything reaches the store; conflict checking is
advisory and lives in ``conflicts.py``.
"""

from datetime import date
from typing import Any, Optional

from loguru import logger

from airtime.core.db_adapter import bump_store_version, generate_id, get_store_connection

from .models import OneTimeBroadcast, RecurringSlot
from .windows import format_time, parse_date, parse_time, validate_slot_window


def _row_to_slot(row: dict[str, Any]) -> RecurringSlot:
    """Convert database row to RecurringSlot dataclass."""
    return RecurringSlot(
        id=row["id"],
        title=row["title"],
        day_of_week=int(row["day_of_week"]),
        start_time=parse_time(row["start_time"]),
        end_time=parse_time(row["end_time"]),
        active=bool(row["active"]),
        song_id=row["song_id"],
        playlist_id=row["playlist_id"],
    )


def _row_to_broadcast(row: dict[str, Any]) -> OneTimeBroadcast:
    """Convert database row to OneTimeBroadcast dataclass."""
    return OneTimeBroadcast(
        id=row["id"],
        title=row["title"],
        date=parse_date(str(row["scheduled_date"])),
        start_time=parse_time(row["start_time"]),
        song_id=row["song_id"],
        description=row["description"],
        consumed=bool(row["consumed"]),
    )


# === Candidate construction (validation without persistence) ===


def make_recurring_slot(
    title: str,
    day_of_week: int,
    start_time: str,
    end_time: str,
    song_id: Optional[str] = None,
    playlist_id: Optional[str] = None,
    active: bool = True,
    slot_id: Optional[str] = None,
) -> RecurringSlot:
    """Build and validate a recurring slot without saving it.

    Args:
        title: Slot title shown in the weekly grid
        day_of_week: 0 = Sunday ... 6 = Saturday
        start_time: Start in "HH:MM" format
        end_time: End in "HH:MM" format (exclusive, same day)
        song_id: Song to play during the slot
        playlist_id: Playlist to play during the slot
        active: Whether the slot is in effect
        slot_id: Existing ID when validating an edit

    Returns:
        The validated RecurringSlot

    Raises:
        InvalidTimeWindow: If the window is malformed
        ValueError: If the title is empty or not exactly one of song/playlist is set
    """
    if not title or not title.strip():
        raise ValueError("Slot title cannot be empty")
    if (song_id is None) == (playlist_id is None):
        raise ValueError("A slot must reference exactly one of song_id or playlist_id")

    start = parse_time(start_time)
    end = parse_time(end_time)
    validate_slot_window(day_of_week, start, end)

    return RecurringSlot(
        id=slot_id or generate_id(),
        title=title.strip(),
        day_of_week=day_of_week,
        start_time=start,
        end_time=end,
        active=active,
        song_id=song_id,
        playlist_id=playlist_id,
    )


def make_broadcast(
    title: str,
    scheduled_date: str,
    start_time: str,
    song_id: str,
    description: Optional[str] = None,
    broadcast_id: Optional[str] = None,
) -> OneTimeBroadcast:
    """Build and validate a one-time broadcast without saving it.

    Raises:
        InvalidTimeWindow: If the date or time is malformed
        ValueError: If the title or song is missing
    """
    if not title or not title.strip():
        raise ValueError("Broadcast title cannot be empty")
    if not song_id:
        raise ValueError("A broadcast must reference a song")

    return OneTimeBroadcast(
        id=broadcast_id or generate_id(),
        title=title.strip(),
        date=parse_date(scheduled_date),
        start_time=parse_time(start_time),
        song_id=song_id,
        description=description,
    )


def _require_exists(conn: Any, table: str, row_id: Optional[str], label: str) -> None:
    if row_id is None:
        return
    if not conn.execute(f"SELECT id FROM {table} WHERE id = ?", (row_id,)).fetchone():
        raise ValueError(f"{label} {row_id} not found")


# === Recurring slots ===


def add_recurring_slot(
    title: str,
    day_of_week: int,
    start_time: str,
    end_time: str,
    song_id: Optional[str] = None,
    playlist_id: Optional[str] = None,
    active: bool = True,
) -> RecurringSlot:
    """Add a recurring weekly slot.

    Returns:
        The created RecurringSlot

    Raises:
        InvalidTimeWindow: If the window is malformed
        ValueError: If the referenced song/playlist does not exist
    """
    slot = make_recurring_slot(
        title, day_of_week, start_time, end_time, song_id, playlist_id, active
    )

    with get_store_connection() as conn:
        _require_exists(conn, "songs", slot.song_id, "Song")
        _require_exists(conn, "playlists", slot.playlist_id, "Playlist")
        conn.execute(
            """
            INSERT INTO recurring_slots
                (id, title, day_of_week, start_time, end_time, active, song_id, playlist_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                slot.id,
                slot.title,
                slot.day_of_week,
                format_time(slot.start_time),
                format_time(slot.end_time),
                slot.active,
                slot.song_id,
                slot.playlist_id,
            ),
        )
        bump_store_version(conn)
        conn.commit()

    logger.info(
        f"Added recurring slot {slot.id} '{slot.title}': day {slot.day_of_week} "
        f"{format_time(slot.start_time)}-{format_time(slot.end_time)}"
    )
    return slot


def get_recurring_slot(slot_id: str) -> Optional[RecurringSlot]:
    """Get a recurring slot by ID."""
    with get_store_connection() as conn:
        row = conn.execute(
            "SELECT * FROM recurring_slots WHERE id = ?", (slot_id,)
        ).fetchone()
        return _row_to_slot(dict(row)) if row else None


def get_recurring_slots(active_only: bool = False) -> list[RecurringSlot]:
    """Get recurring slots ordered by day and start time."""
    query = "SELECT * FROM recurring_slots"
    params: tuple = ()
    if active_only:
        query += " WHERE active = ?"
        params = (True,)
    query += " ORDER BY day_of_week, start_time, id"

    with get_store_connection() as conn:
        cursor = conn.execute(query, params)
        return [_row_to_slot(dict(row)) for row in cursor.fetchall()]


def update_recurring_slot(
    slot_id: str,
    title: Optional[str] = None,
    day_of_week: Optional[int] = None,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    song_id: Optional[str] = None,
    playlist_id: Optional[str] = None,
    active: Optional[bool] = None,
) -> bool:
    """Update a recurring slot.

    Setting ``song_id`` clears ``playlist_id`` and vice versa.

    Returns:
        True if updated, False if slot not found

    Raises:
        InvalidTimeWindow: If the resulting window is malformed
        ValueError: If both song_id and playlist_id are given
    """
    if song_id is not None and playlist_id is not None:
        raise ValueError("A slot must reference exactly one of song_id or playlist_id")

    existing = get_recurring_slot(slot_id)
    if existing is None:
        return False

    new_song_id, new_playlist_id = existing.song_id, existing.playlist_id
    if song_id is not None:
        new_song_id, new_playlist_id = song_id, None
    elif playlist_id is not None:
        new_song_id, new_playlist_id = None, playlist_id

    # Re-validate the merged slot as a whole
    updated = make_recurring_slot(
        title=title if title is not None else existing.title,
        day_of_week=day_of_week if day_of_week is not None else existing.day_of_week,
        start_time=start_time or format_time(existing.start_time),
        end_time=end_time or format_time(existing.end_time),
        song_id=new_song_id,
        playlist_id=new_playlist_id,
        active=active if active is not None else existing.active,
        slot_id=slot_id,
    )

    with get_store_connection() as conn:
        _require_exists(conn, "songs", updated.song_id, "Song")
        _require_exists(conn, "playlists", updated.playlist_id, "Playlist")
        cursor = conn.execute(
            """
            UPDATE recurring_slots
            SET title = ?, day_of_week = ?, start_time = ?, end_time = ?,
                active = ?, song_id = ?, playlist_id = ?
            WHERE id = ?
            """,
            (
                updated.title,
                updated.day_of_week,
                format_time(updated.start_time),
                format_time(updated.end_time),
                updated.active,
                updated.song_id,
                updated.playlist_id,
                slot_id,
            ),
        )
        changed = cursor.rowcount > 0
        if changed:
            bump_store_version(conn)
        conn.commit()

    if changed:
        logger.info(f"Updated recurring slot {slot_id}")
    return changed


def set_slot_active(slot_id: str, active: bool) -> bool:
    """Activate or deactivate a recurring slot."""
    with get_store_connection() as conn:
        cursor = conn.execute(
            "UPDATE recurring_slots SET active = ? WHERE id = ?", (active, slot_id)
        )
        changed = cursor.rowcount > 0
        if changed:
            bump_store_version(conn)
        conn.commit()

    if changed:
        logger.info(f"Recurring slot {slot_id} active={active}")
    return changed


def delete_recurring_slot(slot_id: str) -> bool:
    """Delete a recurring slot.

    Returns:
        True if deleted, False if slot not found
    """
    with get_store_connection() as conn:
        cursor = conn.execute("DELETE FROM recurring_slots WHERE id = ?", (slot_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            bump_store_version(conn)
        conn.commit()

    if deleted:
        logger.info(f"Deleted recurring slot {slot_id}")
    return deleted


# === One-time broadcasts ===


def add_broadcast(
    title: str,
    scheduled_date: str,
    start_time: str,
    song_id: str,
    description: Optional[str] = None,
) -> OneTimeBroadcast:
    """Schedule a one-time broadcast.

    Args:
        title: Broadcast title
        scheduled_date: Date in "YYYY-MM-DD" format
        start_time: Start in "HH:MM" format
        song_id: Song to broadcast; its duration sets the window length
        description: Optional description

    Returns:
        The created OneTimeBroadcast

    Raises:
        InvalidTimeWindow: If the date or time is malformed
        ValueError: If the song does not exist
    """
    broadcast = make_broadcast(title, scheduled_date, start_time, song_id, description)

    with get_store_connection() as conn:
        _require_exists(conn, "songs", broadcast.song_id, "Song")
        conn.execute(
            """
            INSERT INTO one_time_broadcasts
                (id, title, description, scheduled_date, start_time, song_id, consumed)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                broadcast.id,
                broadcast.title,
                broadcast.description,
                broadcast.date.isoformat(),
                format_time(broadcast.start_time),
                broadcast.song_id,
                False,
            ),
        )
        bump_store_version(conn)
        conn.commit()

    logger.info(
        f"Scheduled broadcast {broadcast.id} '{broadcast.title}' at "
        f"{broadcast.date.isoformat()} {format_time(broadcast.start_time)}"
    )
    return broadcast


def get_broadcast(broadcast_id: str) -> Optional[OneTimeBroadcast]:
    """Get a broadcast by ID."""
    with get_store_connection() as conn:
        row = conn.execute(
            "SELECT * FROM one_time_broadcasts WHERE id = ?", (broadcast_id,)
        ).fetchone()
        return _row_to_broadcast(dict(row)) if row else None


def get_broadcasts(
    from_date: Optional[date] = None,
    include_consumed: bool = True,
) -> list[OneTimeBroadcast]:
    """Get broadcasts ordered by date and start time.

    Args:
        from_date: Only broadcasts on or after this date
        include_consumed: Include broadcasts that have already fired
    """
    clauses: list[str] = []
    params: list[Any] = []
    if from_date is not None:
        clauses.append("scheduled_date >= ?")
        params.append(from_date.isoformat())
    if not include_consumed:
        clauses.append("consumed = ?")
        params.append(False)

    query = "SELECT * FROM one_time_broadcasts"
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += " ORDER BY scheduled_date, start_time, id"

    with get_store_connection() as conn:
        cursor = conn.execute(query, tuple(params))
        return [_row_to_broadcast(dict(row)) for row in cursor.fetchall()]


def update_broadcast(
    broadcast_id: str,
    title: Optional[str] = None,
    scheduled_date: Optional[str] = None,
    start_time: Optional[str] = None,
    song_id: Optional[str] = None,
    description: Optional[str] = None,
) -> bool:
    """Update a broadcast. Rescheduling clears its consumed flag.

    Returns:
        True if updated, False if broadcast not found

    Raises:
        InvalidTimeWindow: If the date or time is malformed
        ValueError: If the song does not exist
    """
    existing = get_broadcast(broadcast_id)
    if existing is None:
        return False

    updated = make_broadcast(
        title=title if title is not None else existing.title,
        scheduled_date=scheduled_date or existing.date.isoformat(),
        start_time=start_time or format_time(existing.start_time),
        song_id=song_id or existing.song_id,
        description=description if description is not None else existing.description,
        broadcast_id=broadcast_id,
    )
    rescheduled = (
        updated.date != existing.date or updated.start_time != existing.start_time
    )
    consumed = False if rescheduled else existing.consumed

    with get_store_connection() as conn:
        _require_exists(conn, "songs", updated.song_id, "Song")
        cursor = conn.execute(
            """
            UPDATE one_time_broadcasts
            SET title = ?, description = ?, scheduled_date = ?, start_time = ?,
                song_id = ?, consumed = ?
            WHERE id = ?
            """,
            (
                updated.title,
                updated.description,
                updated.date.isoformat(),
                format_time(updated.start_time),
                updated.song_id,
                consumed,
                broadcast_id,
            ),
        )
        changed = cursor.rowcount > 0
        if changed:
            bump_store_version(conn)
        conn.commit()

    if changed:
        logger.info(f"Updated broadcast {broadcast_id}")
    return changed


def delete_broadcast(broadcast_id: str) -> bool:
    """Delete a broadcast, whether or not it has fired.

    Returns:
        True if deleted, False if broadcast not found
    """
    with get_store_connection() as conn:
        cursor = conn.execute(
            "DELETE FROM one_time_broadcasts WHERE id = ?", (broadcast_id,)
        )
        deleted = cursor.rowcount > 0
        if deleted:
            bump_store_version(conn)
        conn.commit()

    if deleted:
        logger.info(f"Deleted broadcast {broadcast_id}")
    return deleted


def mark_broadcast_consumed(broadcast_id: str) -> bool:
    """Mark a broadcast as fired so the resolver no longer considers it.

    Returns:
        True if the flag changed, False if not found or already consumed
    """
    with get_store_connection() as conn:
        cursor = conn.execute(
            "UPDATE one_time_broadcasts SET consumed = ? WHERE id = ? AND consumed = ?",
            (True, broadcast_id, False),
        )
        changed = cursor.rowcount > 0
        if changed:
            bump_store_version(conn)
        conn.commit()

    if changed:
        logger.info(f"Broadcast {broadcast_id} consumed")
    return changed


def purge_consumed_broadcasts(before: date) -> int:
    """Delete consumed broadcasts dated before ``before``.

    Consumed broadcasts stay in history until an operator purges them.

    Returns:
        Number of broadcasts deleted
    """
    with get_store_connection() as conn:
        cursor = conn.execute(
            "DELETE FROM one_time_broadcasts WHERE consumed = ? AND scheduled_date < ?",
            (True, before.isoformat()),
        )
        purged = cursor.rowcount
        if purged > 0:
            bump_store_version(conn)
        conn.commit()

    if purged > 0:
        logger.info(f"Purged {purged} consumed broadcasts before {before.isoformat()}")
    return purged
