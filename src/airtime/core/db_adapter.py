"""
Database adapter that supports both SQLite and PostgreSQL.

Uses DATABASE_URL environment variable to determine which backend to use:
- If DATABASE_URL starts with "postgres://", use PostgreSQL
- Otherwise, use SQLite (default behavior)
"""

import os
import sqlite3
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Protocol, Union

from loguru import logger


class CursorProtocol(Protocol):
    """Protocol for database cursor."""

    def execute(self, query: str, params: tuple = ()) -> "CursorProtocol": ...
    def fetchone(self) -> Optional[dict[str, Any]]: ...
    def fetchall(self) -> list[dict[str, Any]]: ...
    @property
    def rowcount(self) -> int: ...
    def close(self) -> None: ...


class ConnectionProtocol(Protocol):
    """Protocol for database connection."""

    def execute(self, query: str, params: tuple = ()) -> CursorProtocol: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
    def close(self) -> None: ...


def get_database_url() -> Optional[str]:
    """Get DATABASE_URL from environment."""
    return os.environ.get("DATABASE_URL")


def is_postgres() -> bool:
    """Check if using PostgreSQL."""
    url = get_database_url()
    return url is not None and url.startswith(("postgres://", "postgresql://"))


def _convert_query_placeholders(query: str) -> str:
    """Convert SQLite ? placeholders to PostgreSQL %s placeholders."""
    # Simple conversion - doesn't handle ? inside strings
    return query.replace("?", "%s")


class PostgresCursor:
    """Wrapper around psycopg2 cursor to provide dict-like row access."""

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        self._columns: Optional[list[str]] = None

    def execute(self, query: str, params: tuple = ()) -> "PostgresCursor":
        pg_query = _convert_query_placeholders(query)
        self._cursor.execute(pg_query, params)
        if self._cursor.description:
            self._columns = [desc[0] for desc in self._cursor.description]
        return self

    def fetchone(self) -> Optional[dict[str, Any]]:
        row = self._cursor.fetchone()
        if row is None or self._columns is None:
            return None
        return dict(zip(self._columns, row))

    def fetchall(self) -> list[dict[str, Any]]:
        rows = self._cursor.fetchall()
        if not self._columns:
            return []
        return [dict(zip(self._columns, row)) for row in rows]

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    def close(self) -> None:
        self._cursor.close()


class PostgresConnection:
    """Wrapper around psycopg2 connection."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    def execute(self, query: str, params: tuple = ()) -> PostgresCursor:
        cursor = PostgresCursor(self._conn.cursor())
        cursor.execute(query, params)
        return cursor

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()


@contextmanager
def get_store_connection() -> Iterator[Union[sqlite3.Connection, PostgresConnection]]:
    """
    Get a database connection for the entity store.

    Uses DATABASE_URL if set (PostgreSQL), otherwise falls back to SQLite.
    """
    if is_postgres():
        import psycopg2

        logger.debug("Connecting to PostgreSQL")
        conn = psycopg2.connect(get_database_url())
        wrapped = PostgresConnection(conn)
        try:
            yield wrapped
        finally:
            wrapped.close()
    else:
        from .database import get_db_connection

        with get_db_connection() as conn:
            yield conn


def generate_id() -> str:
    """Generate a new primary key for store rows."""
    return uuid.uuid4().hex


def bump_store_version(conn: Union[sqlite3.Connection, PostgresConnection]) -> None:
    """Increment the store version inside the caller's transaction.

    Every mutation calls this before committing so snapshot readers can detect
    that the data moved underneath them.
    """
    conn.execute("UPDATE store_version SET version = version + 1 WHERE id = 1")


def read_store_version(conn: Union[sqlite3.Connection, PostgresConnection]) -> int:
    """Read the current store version."""
    row = conn.execute("SELECT version FROM store_version WHERE id = 1").fetchone()
    return int(row["version"]) if row else 0


def init_schema() -> None:
    """Initialize the schema for whichever backend is configured."""
    if not is_postgres():
        from .database import init_database

        init_database()
        return

    import psycopg2

    logger.info("Initializing PostgreSQL schema...")

    conn = psycopg2.connect(get_database_url())
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS songs (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            artist TEXT,
            album TEXT,
            duration INTEGER NOT NULL DEFAULT 0 CHECK (duration >= 0),
            media_ref TEXT NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS playlists (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT,
            active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS playlist_items (
            id TEXT PRIMARY KEY,
            playlist_id TEXT NOT NULL REFERENCES playlists(id) ON DELETE CASCADE,
            song_id TEXT NOT NULL REFERENCES songs(id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            UNIQUE (playlist_id, song_id),
            UNIQUE (playlist_id, position)
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS recurring_slots (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            day_of_week INTEGER NOT NULL CHECK (day_of_week BETWEEN 0 AND 6),
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            active BOOLEAN NOT NULL DEFAULT TRUE,
            song_id TEXT REFERENCES songs(id) ON DELETE SET NULL,
            playlist_id TEXT REFERENCES playlists(id) ON DELETE SET NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS one_time_broadcasts (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT,
            scheduled_date TEXT NOT NULL,
            start_time TEXT NOT NULL,
            song_id TEXT REFERENCES songs(id) ON DELETE SET NULL,
            consumed BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS playback_state (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            state TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS store_version (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            version INTEGER NOT NULL
        )
    """)
    cursor.execute("""
        INSERT INTO store_version (id, version)
        VALUES (1, 0)
        ON CONFLICT (id) DO NOTHING
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_playlist_items_playlist ON playlist_items(playlist_id, position)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_recurring_slots_day ON recurring_slots(day_of_week, start_time)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_broadcasts_date ON one_time_broadcasts(scheduled_date, start_time)")

    conn.commit()
    cursor.close()
    conn.close()

    logger.info("PostgreSQL schema initialized")
