"""
Rendition store: the persistence boundary between ingest and streaming.

Paths are only recorded after their files are completely written, and all
tier columns of a track change together in a single statement.
"""

import json
import sqlite3
from pathlib import Path
from typing import Optional

from loguru import logger

from riffstream.core.database import get_db_connection

from .models import ProbeResult, Quality, Track


def _row_to_track(row: sqlite3.Row) -> Track:
    try:
        waveform = json.loads(row["waveform"] or "[]")
    except json.JSONDecodeError:
        logger.warning(f"Corrupt waveform JSON for track {row['id']}")
        waveform = []

    return Track(
        id=row["id"],
        artist_id=row["artist_id"],
        title=row["title"],
        file_path=row["file_path"],
        is_public=bool(row["is_public"]),
        duration_seconds=row["duration_seconds"] or 0,
        file_path_low=row["file_path_low"],
        file_path_medium=row["file_path_medium"],
        file_path_high=row["file_path_high"],
        waveform=waveform,
        bitrate_kbps=row["bitrate_kbps"],
        sample_rate_hz=row["sample_rate_hz"],
        file_size_bytes=row["file_size_bytes"] or 0,
        play_count=row["play_count"] or 0,
    )


class RenditionStore:
    """Track records with their original and rendition file paths."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self.db_path = db_path

    def create_track(
        self,
        track_id: str,
        artist_id: str,
        title: str,
        file_path: str,
        file_size_bytes: int,
        probe: ProbeResult,
        renditions: dict[str, str],
        waveform: list[float],
        is_public: bool = True,
    ) -> Track:
        """Insert a fully ingested track in one transaction."""
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO tracks (
                    id, artist_id, title, is_public, duration_seconds, file_path,
                    file_path_low, file_path_medium, file_path_high, waveform,
                    bitrate_kbps, sample_rate_hz, file_size_bytes
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    track_id,
                    artist_id,
                    title,
                    int(is_public),
                    max(0, probe.duration_seconds),
                    file_path,
                    renditions.get(Quality.LOW.value),
                    renditions.get(Quality.MEDIUM.value),
                    renditions.get(Quality.HIGH.value),
                    json.dumps(waveform),
                    probe.bitrate_kbps,
                    probe.sample_rate_hz,
                    file_size_bytes,
                ),
            )
            conn.commit()

        logger.info(
            f"Stored track {track_id} with renditions: {sorted(renditions) or 'none'}"
        )
        return Track(
            id=track_id,
            artist_id=artist_id,
            title=title,
            file_path=file_path,
            is_public=is_public,
            duration_seconds=max(0, probe.duration_seconds),
            file_path_low=renditions.get(Quality.LOW.value),
            file_path_medium=renditions.get(Quality.MEDIUM.value),
            file_path_high=renditions.get(Quality.HIGH.value),
            waveform=list(waveform),
            bitrate_kbps=probe.bitrate_kbps,
            sample_rate_hz=probe.sample_rate_hz,
            file_size_bytes=file_size_bytes,
        )

    def get_track(self, track_id: str) -> Optional[Track]:
        with get_db_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM tracks WHERE id = ?", (track_id,)
            ).fetchone()
        return _row_to_track(row) if row else None

    def swap_renditions(
        self, track_id: str, renditions: dict[str, str]
    ) -> Optional[dict[str, str]]:
        """Replace every tier path of a track at once.

        Tiers missing from `renditions` become NULL, so a track never shows a
        mix of paths from different ingest runs.

        Returns:
            The previous tier -> path mapping, or None if the track is gone
        """
        with get_db_connection(self.db_path) as conn:
            # BEGIN IMMEDIATE takes the write lock before reading the old paths
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute(
                    "SELECT * FROM tracks WHERE id = ?", (track_id,)
                ).fetchone()
                if row is None:
                    conn.rollback()
                    return None

                previous = _row_to_track(row).rendition_paths
                conn.execute(
                    """
                    UPDATE tracks
                    SET file_path_low = ?, file_path_medium = ?, file_path_high = ?,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE id = ?
                    """,
                    (
                        renditions.get(Quality.LOW.value),
                        renditions.get(Quality.MEDIUM.value),
                        renditions.get(Quality.HIGH.value),
                        track_id,
                    ),
                )
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise

        logger.info(f"Swapped renditions for track {track_id}: {sorted(renditions)}")
        return previous

    def update_waveform(self, track_id: str, waveform: list[float]) -> None:
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                "UPDATE tracks SET waveform = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (json.dumps(waveform), track_id),
            )
            conn.commit()

    def delete_track(self, track_id: str) -> Optional[Track]:
        """Remove a track record (play history cascades).

        Returns:
            The deleted track so its files can be removed, or None
        """
        with get_db_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM tracks WHERE id = ?", (track_id,)
            ).fetchone()
            if row is None:
                return None
            conn.execute("DELETE FROM tracks WHERE id = ?", (track_id,))
            conn.commit()

        return _row_to_track(row)
