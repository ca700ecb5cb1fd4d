"""Track ingest, re-transcoding and deletion."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from loguru import logger

from riffstream.core.cache import TTLCache, track_meta_key
from riffstream.core.config import Config
from riffstream.domain.media.ingest import (
    IngestError,
    UploadTooLargeError,
    delete_track,
    ingest_upload,
    retranscode_track,
    save_upload,
)
from riffstream.domain.media.models import Track
from riffstream.domain.media.renditions import RenditionStore

from ..auth import Principal, get_principal
from ..deps import get_config, get_store, get_track_cache
from ..schemas import RetranscodeResponse, TrackResponse, available_qualities

router = APIRouter()


def get_owned_track(track_id: str, principal: Principal, store: RenditionStore) -> Track:
    track = store.get_track(track_id)
    if track is None:
        raise HTTPException(404, "Track not found")
    if track.artist_id != principal.user_id:
        raise HTTPException(403, "You can only modify your own tracks")
    return track


@router.post("/upload/track", status_code=201, response_model=TrackResponse)
def upload_track(
    audio: UploadFile = File(...),
    title: Optional[str] = Form(None),
    is_public: bool = Form(True, alias="isPublic"),
    duration: Optional[float] = Form(None),
    principal: Principal = Depends(get_principal),
    config: Config = Depends(get_config),
    store: RenditionStore = Depends(get_store),
):
    if not title or not title.strip():
        raise HTTPException(400, "Track title is required")

    try:
        source = save_upload(audio.file, audio.filename or "", config)
    except UploadTooLargeError as e:
        raise HTTPException(413, str(e))
    except IngestError as e:
        raise HTTPException(400, str(e))

    try:
        track = ingest_upload(
            source,
            artist_id=principal.user_id,
            title=title.strip(),
            config=config,
            store=store,
            is_public=is_public,
            duration_hint=duration,
        )
    except IngestError as e:
        source.unlink(missing_ok=True)
        raise HTTPException(400, str(e))
    except Exception:
        # Record could not be written; drop the stored original
        source.unlink(missing_ok=True)
        raise

    return TrackResponse.from_track(track)


@router.post("/upload/track/{track_id}/retranscode", response_model=RetranscodeResponse)
def retranscode(
    track_id: str,
    principal: Principal = Depends(get_principal),
    config: Config = Depends(get_config),
    store: RenditionStore = Depends(get_store),
    cache: TTLCache = Depends(get_track_cache),
):
    get_owned_track(track_id, principal, store)

    try:
        renditions = retranscode_track(track_id, config, store)
    except IngestError as e:
        logger.warning(str(e))
        raise HTTPException(409, str(e))
    finally:
        cache.delete(track_meta_key(track_id))

    if renditions is None:
        raise HTTPException(404, "Track not found")

    track = store.get_track(track_id)
    if track is None:
        raise HTTPException(404, "Track not found")
    return RetranscodeResponse(
        track_id=track_id, available_qualities=available_qualities(track)
    )


@router.delete("/upload/track/{track_id}")
def remove_track(
    track_id: str,
    principal: Principal = Depends(get_principal),
    config: Config = Depends(get_config),
    store: RenditionStore = Depends(get_store),
    cache: TTLCache = Depends(get_track_cache),
):
    get_owned_track(track_id, principal, store)
    delete_track(track_id, config, store)
    cache.delete(track_meta_key(track_id))
    return {"message": "Track deleted"}
