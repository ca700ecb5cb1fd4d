"""
Media domain models.

Contains data structures for tracks, quality tiers and probe results.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import NamedTuple, Optional


class Quality(str, Enum):
    """Quality tier a listener can request."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    LOSSLESS = "lossless"  # The original upload


# Tiers produced by the transcoder, in ascending bitrate order
RENDITION_TIERS: tuple[Quality, ...] = (Quality.LOW, Quality.MEDIUM, Quality.HIGH)

DEFAULT_QUALITY = Quality.MEDIUM

# Extension -> MIME type for served audio
CONTENT_TYPES: dict[str, str] = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".flac": "audio/flac",
    ".aac": "audio/aac",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
}
DEFAULT_CONTENT_TYPE = "audio/mpeg"


def content_type_for(path: Path) -> str:
    """Pure function - deterministic MIME type from file extension."""
    return CONTENT_TYPES.get(path.suffix.lower(), DEFAULT_CONTENT_TYPE)


def parse_quality(value: Optional[str]) -> Quality:
    """Map a query-string value to a tier; missing or unknown means medium."""
    if not value:
        return DEFAULT_QUALITY
    try:
        return Quality(value.strip().lower())
    except ValueError:
        return DEFAULT_QUALITY


class ProbeResult(NamedTuple):
    """Technical metadata read from a source file."""

    duration_seconds: int = 0  # 0 = unknown
    bitrate_kbps: Optional[int] = None
    sample_rate_hz: Optional[int] = None


@dataclass(frozen=True)
class Track:
    """Media-relevant fields of a track record.

    Paths are relative to the upload directory. Any rendition path may be None
    when transcoding for that tier failed or has not run.
    """

    id: str
    artist_id: str
    title: str
    file_path: str  # Original upload, served as the lossless tier
    is_public: bool = True
    duration_seconds: int = 0
    file_path_low: Optional[str] = None
    file_path_medium: Optional[str] = None
    file_path_high: Optional[str] = None
    waveform: list[float] = field(default_factory=list)
    bitrate_kbps: Optional[int] = None
    sample_rate_hz: Optional[int] = None
    file_size_bytes: int = 0
    play_count: int = 0

    @property
    def rendition_paths(self) -> dict[str, str]:
        """Tier name -> path for the renditions that exist on the record."""
        paths = {
            Quality.LOW.value: self.file_path_low,
            Quality.MEDIUM.value: self.file_path_medium,
            Quality.HIGH.value: self.file_path_high,
        }
        return {tier: path for tier, path in paths.items() if path}

    def rendition_path(self, quality: Quality) -> Optional[str]:
        if quality is Quality.LOSSLESS:
            return self.file_path
        return self.rendition_paths.get(quality.value)

    def is_visible_to(self, user_id: Optional[str]) -> bool:
        return self.is_public or (user_id is not None and user_id == self.artist_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "artist_id": self.artist_id,
            "title": self.title,
            "file_path": self.file_path,
            "is_public": self.is_public,
            "duration_seconds": self.duration_seconds,
            "file_path_low": self.file_path_low,
            "file_path_medium": self.file_path_medium,
            "file_path_high": self.file_path_high,
            "waveform": list(self.waveform),
            "bitrate_kbps": self.bitrate_kbps,
            "sample_rate_hz": self.sample_rate_hz,
            "file_size_bytes": self.file_size_bytes,
            "play_count": self.play_count,
        }
