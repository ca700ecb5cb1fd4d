from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from riffstream.domain.media.models import RENDITION_TIERS, Track


def available_qualities(track: Track) -> list[str]:
    """Tiers a listener gets without falling back, lowest first."""
    tiers = [t.value for t in RENDITION_TIERS if t.value in track.rendition_paths]
    return tiers + ["lossless"]


class TrackResponse(BaseModel):
    """Track as returned by the upload endpoints."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    artist_id: str
    title: str
    is_public: bool
    duration_seconds: int
    bitrate_kbps: Optional[int] = None
    sample_rate_hz: Optional[int] = None
    file_size_bytes: int
    play_count: int = 0
    available_qualities: list[str]  # Rendition tiers produced, plus "lossless"
    waveform: list[float] = []

    @classmethod
    def from_track(cls, track: Track) -> "TrackResponse":
        return cls(
            id=track.id,
            artist_id=track.artist_id,
            title=track.title,
            is_public=track.is_public,
            duration_seconds=track.duration_seconds,
            bitrate_kbps=track.bitrate_kbps,
            sample_rate_hz=track.sample_rate_hz,
            file_size_bytes=track.file_size_bytes,
            play_count=track.play_count,
            available_qualities=available_qualities(track),
            waveform=track.waveform,
        )


class CompletePlayRequest(BaseModel):
    """Listened duration reported when playback ends or quality changes."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    duration_seconds: float = 0

    @field_validator("duration_seconds", mode="before")
    @classmethod
    def coerce_duration(cls, value):
        """Clients send whatever their player reports; unusable values count as 0."""
        try:
            return max(0.0, float(value))
        except (TypeError, ValueError):
            return 0.0


class SuccessResponse(BaseModel):
    success: bool = True


class WaveformResponse(BaseModel):
    waveform: list[float]

    model_config = {"frozen": True}  # Immutable


class RetranscodeResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    track_id: str
    available_qualities: list[str]
