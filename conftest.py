"""Shared fixtures: an isolated config, database and upload directory."""

from pathlib import Path

import pytest

from riffstream.core.config import Config, StorageConfig
from riffstream.core.database import init_database
from riffstream.domain.media.models import ProbeResult
from riffstream.domain.media.renditions import RenditionStore


@pytest.fixture
def config(tmp_path: Path, monkeypatch) -> Config:
    """Config pointing every path into a temporary directory."""
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    cfg = Config()
    cfg.storage = StorageConfig(
        upload_dir=str(tmp_path / "uploads"),
        database_path=str(tmp_path / "riffstream.db"),
    )
    cfg.storage.audio_dir.mkdir(parents=True)
    init_database(cfg.storage.database_file)
    return cfg


@pytest.fixture
def store(config: Config) -> RenditionStore:
    return RenditionStore(config.storage.database_file)


@pytest.fixture
def make_track(config: Config, store: RenditionStore):
    """Write audio files under the upload dir and record a track for them.

    `renditions` maps tier -> file bytes; the original always gets `original`.
    """

    def _make(
        track_id: str = "track-1",
        artist_id: str = "artist-1",
        original: bytes = b"ORIGINAL" * 16,
        renditions: dict[str, bytes] | None = None,
        is_public: bool = True,
        waveform: list[float] | None = None,
    ):
        audio_dir = config.storage.audio_dir
        (audio_dir / f"{track_id}.flac").write_bytes(original)

        paths = {}
        for tier, data in (renditions or {}).items():
            (audio_dir / f"{track_id}_{tier}.mp3").write_bytes(data)
            paths[tier] = f"audio/{track_id}_{tier}.mp3"

        return store.create_track(
            track_id=track_id,
            artist_id=artist_id,
            title="Test Track",
            file_path=f"audio/{track_id}.flac",
            file_size_bytes=len(original),
            probe=ProbeResult(duration_seconds=180, bitrate_kbps=900, sample_rate_hz=44100),
            renditions=paths,
            waveform=waveform or [],
            is_public=is_public,
        )

    return _make
