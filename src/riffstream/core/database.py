"""
SQLite database operations for riffstream
"""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger

from .config import get_data_dir


# Database schema version for migrations
SCHEMA_VERSION = 2


def get_database_path() -> Path:
    """Get the path to the SQLite database file.

    RIFFSTREAM_DB_PATH overrides the default location in the data directory.
    """
    override = os.environ.get("RIFFSTREAM_DB_PATH")
    if override:
        return Path(override).expanduser()
    return get_data_dir() / "riffstream.db"


@contextmanager
def get_db_connection(db_path: Optional[Path] = None) -> Iterator[sqlite3.Connection]:
    """Get a database connection with proper cleanup and concurrency support."""
    db_path = db_path or get_database_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=30.0)
    conn.row_factory = sqlite3.Row  # Enable dict-like access

    # WAL lets streaming reads proceed while an ingest writes
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    try:
        yield conn
    finally:
        conn.close()


def migrate_database(conn: sqlite3.Connection, current_version: int) -> None:
    """Migrate database from current_version to latest schema."""
    if current_version < 1:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS tracks (
                id TEXT PRIMARY KEY,
                artist_id TEXT NOT NULL,
                title TEXT NOT NULL,
                is_public INTEGER NOT NULL DEFAULT 1,
                duration_seconds INTEGER NOT NULL DEFAULT 0 CHECK (duration_seconds >= 0),
                file_path TEXT NOT NULL, -- original upload, relative to upload_dir
                file_path_low TEXT,
                file_path_medium TEXT,
                file_path_high TEXT,
                waveform TEXT NOT NULL DEFAULT '[]', -- JSON array of floats
                bitrate_kbps INTEGER,
                sample_rate_hz INTEGER,
                file_size_bytes INTEGER NOT NULL DEFAULT 0,
                play_count INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS play_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                track_id TEXT NOT NULL,
                duration_seconds REAL NOT NULL DEFAULT 0,
                completed INTEGER NOT NULL DEFAULT 0,
                played_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (track_id) REFERENCES tracks (id) ON DELETE CASCADE
            )
        """)

        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_tracks_artist_id ON tracks (artist_id)"
        )
        conn.commit()

    if current_version < 2:
        # Completion lookups: most recent open entry per (user, track)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_play_history_open
            ON play_history (user_id, track_id, completed, played_at)
        """)
        conn.commit()


def init_database(db_path: Optional[Path] = None) -> None:
    """Initialize the database with required tables."""
    with get_db_connection(db_path) as conn:
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
