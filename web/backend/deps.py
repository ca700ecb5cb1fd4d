from concurrent.futures import Executor

from fastapi import Request

from riffstream.core.cache import TTLCache
from riffstream.core.config import Config
from riffstream.domain.media.renditions import RenditionStore
from riffstream.domain.plays.history import PlayTracker


def get_config(request: Request) -> Config:
    """FastAPI dependency for configuration."""
    return request.app.state.config


def get_store(request: Request) -> RenditionStore:
    """FastAPI dependency for the rendition store."""
    return request.app.state.store


def get_track_cache(request: Request) -> TTLCache:
    """FastAPI dependency for the track metadata cache."""
    return request.app.state.track_cache


def get_play_tracker(request: Request) -> PlayTracker:
    """FastAPI dependency for play counting."""
    return request.app.state.play_tracker


def get_play_executor(request: Request) -> Executor:
    """FastAPI dependency for the play counting worker."""
    return request.app.state.play_executor
