"""
SQLite database operations for Airtime Scheduler
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger

from .config import get_data_dir

# Database schema version for migrations
SCHEMA_VERSION = 2

_database_path_override: Optional[Path] = None


def set_database_path(path: Optional[Path]) -> None:
    """Point the SQLite backend at a specific file (None restores the default)."""
    global _database_path_override
    _database_path_override = path


def get_database_path() -> Path:
    """Get the path to the SQLite database file."""
    if _database_path_override is not None:
        return _database_path_override
    return get_data_dir() / "airtime.db"


@contextmanager
def get_db_connection() -> Iterator[sqlite3.Connection]:
    """Get a database connection with proper cleanup and concurrency support."""
    db_path = get_database_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=30.0)
    conn.row_factory = sqlite3.Row  # Enable dict-like access

    # WAL lets the scheduler read while the admin surface writes
    conn.execute("PRAGMA journal_mode=WAL")
    # ON DELETE CASCADE / SET NULL only fire with foreign keys enabled
    conn.execute("PRAGMA foreign_keys=ON")

    try:
        yield conn
    finally:
        conn.close()


def migrate_database(conn: sqlite3.Connection, current_version: int) -> None:
    """Migrate database from current_version to latest schema."""
    if current_version < 1:
        conn.execute("""
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

        conn.execute("""
            CREATE TABLE IF NOT EXISTS playlists (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                active BOOLEAN NOT NULL DEFAULT 1,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS playlist_items (
                id TEXT PRIMARY KEY,
                playlist_id TEXT NOT NULL,
                song_id TEXT NOT NULL,
                position INTEGER NOT NULL,
                FOREIGN KEY (playlist_id) REFERENCES playlists (id) ON DELETE CASCADE,
                FOREIGN KEY (song_id) REFERENCES songs (id) ON DELETE CASCADE,
                UNIQUE (playlist_id, song_id),
                UNIQUE (playlist_id, position)
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS recurring_slots (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                day_of_week INTEGER NOT NULL CHECK (day_of_week BETWEEN 0 AND 6), -- 0 = Sunday
                start_time TEXT NOT NULL, -- 'HH:MM'
                end_time TEXT NOT NULL,   -- 'HH:MM'
                active BOOLEAN NOT NULL DEFAULT 1,
                song_id TEXT,
                playlist_id TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (song_id) REFERENCES songs (id) ON DELETE SET NULL,
                FOREIGN KEY (playlist_id) REFERENCES playlists (id) ON DELETE SET NULL
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS one_time_broadcasts (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                description TEXT,
                scheduled_date TEXT NOT NULL, -- 'YYYY-MM-DD'
                start_time TEXT NOT NULL,     -- 'HH:MM'
                song_id TEXT,
                consumed BOOLEAN NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (song_id) REFERENCES songs (id) ON DELETE SET NULL
            )
        """)

        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_playlist_items_playlist ON playlist_items (playlist_id, position)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_recurring_slots_day ON recurring_slots (day_of_week, start_time)"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_broadcasts_date ON one_time_broadcasts (scheduled_date, start_time)"
        )

        conn.commit()

    if current_version < 2:
        # v2: playback state persistence and optimistic-read versioning
        conn.execute("""
            CREATE TABLE IF NOT EXISTS playback_state (
                id INTEGER PRIMARY KEY CHECK (id = 1), -- Ensure only one row
                state TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS store_version (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                version INTEGER NOT NULL
            )
        """)
        conn.execute(
            "INSERT OR IGNORE INTO store_version (id, version) VALUES (1, 0)"
        )

        conn.commit()


def init_database() -> None:
    """Initialize the SQLite database and run any pending migrations."""
    with get_db_connection() as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            )
        """)
        row = conn.execute("SELECT MAX(version) AS version FROM schema_version").fetchone()
        current_version = row["version"] or 0

        if current_version < SCHEMA_VERSION:
            logger.info(
                f"Migrating database from v{current_version} to v{SCHEMA_VERSION}"
            )
            migrate_database(conn, current_version)
            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
