"""
Play counting and listening history.

A counted play increments tracks.play_count and opens a play_history entry;
the client's completion call later closes it with the listened duration.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from riffstream.core.database import get_db_connection

from .debounce import PlayDebouncer


@dataclass(frozen=True)
class PlayHistoryEntry:
    """A single listening history entry."""

    id: int
    user_id: str
    track_id: str
    duration_seconds: float
    completed: bool
    played_at: str


class PlayTracker:
    """Records plays through a debouncer into the database."""

    def __init__(
        self,
        debouncer: PlayDebouncer,
        db_path: Optional[Path] = None,
        on_counted: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.debouncer = debouncer
        self.db_path = db_path
        self._on_counted = on_counted  # e.g. invalidate cached track metadata

    def record_play(self, track_id: str, user_id: str) -> bool:
        """Count a play unless one was counted for this pair recently.

        Returns:
            True if the play was counted
        """
        if not self.debouncer.should_count(track_id, user_id):
            logger.debug(f"Play debounced: track={track_id} user={user_id}")
            return False

        with get_db_connection(self.db_path) as conn:
            conn.execute(
                "UPDATE tracks SET play_count = play_count + 1 WHERE id = ?",
                (track_id,),
            )
            conn.execute(
                """
                INSERT INTO play_history (user_id, track_id, duration_seconds, completed)
                VALUES (?, ?, 0, 0)
                """,
                (user_id, track_id),
            )
            conn.commit()

        logger.debug(f"Play counted: track={track_id} user={user_id}")
        if self._on_counted:
            self._on_counted(track_id)
        return True

    def complete_play(self, track_id: str, user_id: str, duration_seconds: float) -> bool:
        """Close the most recent open history entry for (user, track).

        Returns:
            True if an entry was updated, False if none was open
        """
        duration = max(0.0, float(duration_seconds or 0))
        with get_db_connection(self.db_path) as conn:
            row = conn.execute(
                """
                SELECT id FROM play_history
                WHERE user_id = ? AND track_id = ? AND completed = 0
                ORDER BY played_at DESC, id DESC
                LIMIT 1
                """,
                (user_id, track_id),
            ).fetchone()
            if row is None:
                return False

            conn.execute(
                "UPDATE play_history SET duration_seconds = ?, completed = 1 WHERE id = ?",
                (duration, row["id"]),
            )
            conn.commit()
        return True

    def get_history(self, user_id: str, limit: int = 50) -> list[PlayHistoryEntry]:
        """Most recent history entries for a user."""
        with get_db_connection(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT id, user_id, track_id, duration_seconds, completed, played_at
                FROM play_history
                WHERE user_id = ?
                ORDER BY played_at DESC, id DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()

        return [
            PlayHistoryEntry(
                id=row["id"],
                user_id=row["user_id"],
                track_id=row["track_id"],
                duration_seconds=row["duration_seconds"],
                completed=bool(row["completed"]),
                played_at=row["played_at"],
            )
            for row in rows
        ]

    def get_play_count(self, track_id: str) -> int:
        with get_db_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT play_count FROM tracks WHERE id = ?", (track_id,)
            ).fetchone()
        return row["play_count"] if row else 0
