"""
Upload ingest: store the original, derive metadata/waveform/renditions, record.

Every derivation step is best-effort. A track whose probe, waveform or
transcodes all failed is still created and streams from its original file.
"""

import uuid
from pathlib import Path
from typing import BinaryIO, Optional

from loguru import logger

from riffstream.core.config import Config
from riffstream.core.path_security import resolve_media_path

from .models import ProbeResult, Track
from .probe import probe_audio
from .renditions import RenditionStore
from .transcode import transcode_renditions
from .waveform import generate_waveform


COPY_BUFFER_SIZE = 1024 * 1024


class IngestError(Exception):
    """Upload cannot be ingested (bad format, empty, missing original)."""


class UploadTooLargeError(IngestError):
    """Upload exceeds the configured maximum size."""


def allowed_extension(filename: str, allowed_formats: list[str]) -> Optional[str]:
    """Pure function - lowercased extension with dot if allowed, else None."""
    suffix = Path(filename or "").suffix.lower()
    if suffix and suffix.lstrip(".") in allowed_formats:
        return suffix
    return None


def save_upload(stream: BinaryIO, filename: str, config: Config) -> Path:
    """Copy an uploaded stream into the audio directory under a fresh name.

    Raises:
        IngestError: Extension not allowed or upload empty
        UploadTooLargeError: More than storage.max_file_size bytes
    """
    ext = allowed_extension(filename, config.storage.allowed_formats)
    if ext is None:
        raise IngestError(
            f"Invalid audio format. Allowed: {', '.join(config.storage.allowed_formats)}"
        )

    audio_dir = config.storage.audio_dir
    audio_dir.mkdir(parents=True, exist_ok=True)
    destination = audio_dir / f"{uuid.uuid4().hex}{ext}"

    written = 0
    try:
        with open(destination, "wb") as out:
            while True:
                chunk = stream.read(COPY_BUFFER_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > config.storage.max_file_size:
                    raise UploadTooLargeError(
                        f"File too large (>{config.storage.max_file_size} bytes)"
                    )
                out.write(chunk)
    except BaseException:
        destination.unlink(missing_ok=True)
        raise

    if written == 0:
        destination.unlink(missing_ok=True)
        raise IngestError("No audio data provided")

    return destination


def ingest_upload(
    source: Path,
    artist_id: str,
    title: str,
    config: Config,
    store: RenditionStore,
    is_public: bool = True,
    duration_hint: Optional[float] = None,
) -> Track:
    """Run probe, waveform and transcoding for a stored upload and record it.

    Args:
        source: Original file, already inside the audio directory
        artist_id: Owning user
        title: Display title
        config: Application configuration
        store: Where the track record is written
        is_public: Visibility of the new track
        duration_hint: Client-side duration estimate in seconds

    Returns:
        The stored Track

    Raises:
        IngestError: Source missing or empty
    """
    upload_dir = Path(config.storage.upload_dir)
    if not source.is_file() or source.stat().st_size == 0:
        raise IngestError("Uploaded audio file is missing or empty")

    track_id = uuid.uuid4().hex
    file_size = source.stat().st_size
    relative_original = source.relative_to(upload_dir).as_posix()

    logger.info(f"Ingesting {source.name} for artist {artist_id} as track {track_id}")

    probe = _run_step("probe", lambda: probe_audio(str(source), duration_hint))
    if probe is None:
        probe = ProbeResult(duration_seconds=round(duration_hint or 0))

    waveform = _run_step(
        "waveform",
        lambda: generate_waveform(
            str(source), config.waveform.points, config.waveform.sample_rate
        ),
    ) or []

    renditions = _run_step(
        "transcode",
        lambda: transcode_renditions(
            source, source.parent, source.stem, config.transcode, upload_dir
        ),
    ) or {}

    # Recorded only after every step has finished
    return store.create_track(
        track_id=track_id,
        artist_id=artist_id,
        title=title,
        file_path=relative_original,
        file_size_bytes=file_size,
        probe=probe,
        renditions=renditions,
        waveform=waveform,
        is_public=is_public,
    )


def retranscode_track(
    track_id: str, config: Config, store: RenditionStore
) -> Optional[dict[str, str]]:
    """Re-encode a track's renditions from its original and swap them in.

    New files get a fresh stem, so in-flight reads of the old renditions are
    unaffected until the swap. Old files are removed afterwards; readers that
    already opened them keep a valid handle.

    Returns:
        The new tier -> path mapping, or None if the track does not exist

    Raises:
        IngestError: The original file is missing
    """
    upload_dir = Path(config.storage.upload_dir)
    track = store.get_track(track_id)
    if track is None:
        return None

    original = resolve_media_path(track.file_path, upload_dir)
    if original is None:
        raise IngestError(f"Original file missing for track {track_id}")

    base_name = f"{original.stem}_{uuid.uuid4().hex[:8]}"
    renditions = transcode_renditions(
        original, original.parent, base_name, config.transcode, upload_dir
    )

    previous = store.swap_renditions(track_id, renditions)
    if previous is None:
        # Track deleted while transcoding; the new files are orphans
        _remove_files(renditions.values(), upload_dir)
        return None

    stale = [p for p in previous.values() if p not in renditions.values()]
    _remove_files(stale, upload_dir)
    return renditions


def delete_track(track_id: str, config: Config, store: RenditionStore) -> Optional[Track]:
    """Delete a track record and every file it owns."""
    track = store.delete_track(track_id)
    if track is None:
        return None

    files = [track.file_path, *track.rendition_paths.values()]
    _remove_files(files, Path(config.storage.upload_dir))
    logger.info(f"Deleted track {track_id} and {len(files)} files")
    return track


def _run_step(name: str, step):
    """Run an ingest sub-step, logging and swallowing its failure."""
    try:
        return step()
    except Exception:
        logger.exception(f"Ingest step '{name}' failed")
        return None


def _remove_files(stored_paths, upload_dir: Path) -> None:
    for stored in stored_paths:
        path = resolve_media_path(stored, upload_dir)
        if path is None:
            continue
        try:
            path.unlink()
        except OSError as e:
            logger.warning(f"Could not remove {path}: {e}")
