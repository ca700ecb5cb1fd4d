"""Audio streaming with byte ranges and quality selection."""

import os
from concurrent.futures import Executor
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import Response, StreamingResponse
from loguru import logger

from riffstream.core.cache import TTLCache, track_meta_key
from riffstream.core.config import Config
from riffstream.domain.media.models import Track, content_type_for, parse_quality
from riffstream.domain.media.renditions import RenditionStore
from riffstream.domain.media.transcode import resolve_quality_path
from riffstream.domain.plays.history import PlayTracker

from ..auth import Principal, get_optional_principal
from ..deps import (
    get_config,
    get_play_executor,
    get_play_tracker,
    get_store,
    get_track_cache,
)
from ..ranges import RangeNotSatisfiable, is_playback_start, parse_range_header
from ..schemas import CompletePlayRequest, SuccessResponse, WaveformResponse

router = APIRouter()

READ_SIZE = 64 * 1024


def load_track(track_id: str, store: RenditionStore, cache: TTLCache) -> Optional[Track]:
    """Track metadata, cache first; a miss reads the store and fills the cache."""
    key = track_meta_key(track_id)
    track = cache.get(key)
    if track is not None:
        return track

    track = store.get_track(track_id)
    if track is not None:
        cache.set(key, track)
    return track


def get_visible_track(
    track_id: str,
    principal: Optional[Principal],
    store: RenditionStore,
    cache: TTLCache,
) -> Track:
    track = load_track(track_id, store, cache)
    if track is None:
        raise HTTPException(404, "Track not found")

    user_id = principal.user_id if principal else None
    if not track.is_visible_to(user_id):
        raise HTTPException(403, "This track is private")
    return track


def iter_file(handle: BinaryIO, start: int, length: int) -> Iterator[bytes]:
    """Yield `length` bytes from `start`, closing the handle when done or aborted."""
    try:
        handle.seek(start)
        remaining = length
        while remaining > 0:
            chunk = handle.read(min(READ_SIZE, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk
    except GeneratorExit:
        logger.debug("Client disconnected mid-stream")
        raise
    finally:
        handle.close()


def record_play_safely(tracker: PlayTracker, track_id: str, user_id: str) -> None:
    """Runs on the play executor; failures never reach the listener."""
    try:
        tracker.record_play(track_id, user_id)
    except Exception:
        logger.exception(f"Failed to record play for track {track_id}")


@router.get("/stream/{track_id}")
def stream_track(
    track_id: str,
    quality: Optional[str] = None,
    range_header: Optional[str] = Header(None, alias="Range"),
    principal: Optional[Principal] = Depends(get_optional_principal),
    config: Config = Depends(get_config),
    store: RenditionStore = Depends(get_store),
    cache: TTLCache = Depends(get_track_cache),
    tracker: PlayTracker = Depends(get_play_tracker),
    play_executor: Executor = Depends(get_play_executor),
):
    track = get_visible_track(track_id, principal, store, cache)

    requested = parse_quality(quality)
    upload_dir = Path(config.storage.upload_dir)
    file_path = resolve_quality_path(track, requested, upload_dir)
    if file_path is None:
        logger.warning(
            f"No playable file for track {track_id} (requested {requested.value})"
        )
        raise HTTPException(404, "Audio file not available")

    try:
        handle = open(file_path, "rb")
    except FileNotFoundError:
        # Retired by a re-transcode between resolution and open
        logger.warning(f"Audio file vanished before streaming: {file_path}")
        raise HTTPException(404, "Audio file not available")

    file_size = os.fstat(handle.fileno()).st_size
    headers = {
        "Accept-Ranges": "bytes",
        "Cache-Control": f"public, max-age={config.streaming.cache_max_age}",
        "X-Content-Duration": str(track.duration_seconds),
    }

    try:
        byte_range = parse_range_header(
            range_header, file_size, config.streaming.chunk_size
        )
    except RangeNotSatisfiable:
        handle.close()
        headers["Content-Range"] = f"bytes */{file_size}"
        return Response(status_code=416, headers=headers)

    if byte_range is None:
        start, length, status_code = 0, file_size, 200
    else:
        start, length, status_code = byte_range.start, byte_range.length, 206
        headers["Content-Range"] = byte_range.content_range(file_size)
    headers["Content-Length"] = str(length)

    if principal and is_playback_start(start, config.streaming.play_start_threshold):
        # Counted as playback starts, not when the body finishes sending
        play_executor.submit(record_play_safely, tracker, track_id, principal.user_id)

    logger.debug(
        f"Streaming track {track_id} ({requested.value} -> {file_path.name}) "
        f"bytes {start}+{length}/{file_size}"
    )
    return StreamingResponse(
        iter_file(handle, start, length),
        status_code=status_code,
        media_type=content_type_for(file_path),
        headers=headers,
    )


@router.get("/stream/{track_id}/waveform", response_model=WaveformResponse)
def get_waveform(
    track_id: str,
    principal: Optional[Principal] = Depends(get_optional_principal),
    store: RenditionStore = Depends(get_store),
    cache: TTLCache = Depends(get_track_cache),
):
    track = get_visible_track(track_id, principal, store, cache)
    return WaveformResponse(waveform=track.waveform or [])


@router.post("/stream/{track_id}/complete", response_model=SuccessResponse)
def complete_play(
    track_id: str,
    body: Optional[CompletePlayRequest] = None,
    principal: Optional[Principal] = Depends(get_optional_principal),
    tracker: PlayTracker = Depends(get_play_tracker),
):
    """Record how long the caller listened; a no-op for anonymous callers."""
    if principal is None:
        return SuccessResponse()

    duration = body.duration_seconds if body else 0
    if not tracker.complete_play(track_id, principal.user_id, duration):
        logger.debug(f"No open play for track {track_id}, user {principal.user_id}")
    return SuccessResponse()
