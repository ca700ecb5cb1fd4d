from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from riffstream.core.cache import TTLCache, track_meta_key
from riffstream.core.config import Config, ensure_directories, load_config
from riffstream.core.database import init_database
from riffstream.core.output import setup_from_config
from riffstream.domain.media.renditions import RenditionStore
from riffstream.domain.plays.debounce import PlayDebouncer
from riffstream.domain.plays.history import PlayTracker

# Browsers only expose these to players when listed explicitly
EXPOSED_HEADERS = ["Content-Range", "Accept-Ranges", "Content-Length", "X-Content-Duration"]


def create_app(config: Optional[Config] = None, configure_logging: bool = True) -> FastAPI:
    if config is None:
        config = load_config()
    db_path = config.storage.database_file

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logging:
            setup_from_config(config.logging)
        ensure_directories(config)
        init_database(db_path)
        logger.info(f"Serving audio from {config.storage.upload_dir}")
        yield
        play_executor.shutdown(wait=True)

    app = FastAPI(title="Riffstream API", version="1.0.0", lifespan=lifespan)

    track_cache = TTLCache(ttl_seconds=config.streaming.metadata_ttl)
    debouncer = PlayDebouncer(
        window_seconds=config.plays.debounce_seconds,
        max_entries=config.plays.max_entries,
        prune_age_seconds=config.plays.prune_age_seconds,
    )
    app.state.config = config
    app.state.store = RenditionStore(db_path)
    app.state.track_cache = track_cache
    app.state.play_tracker = PlayTracker(
        debouncer,
        db_path,
        # Cached play counts go stale once a play is counted
        on_counted=lambda track_id: track_cache.delete(track_meta_key(track_id)),
    )
    # One worker keeps play writes in arrival order
    play_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="play-count")
    app.state.play_executor = play_executor

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=EXPOSED_HEADERS,
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    from web.backend.routers import stream, upload

    app.include_router(stream.router, prefix="/api", tags=["stream"])
    app.include_router(upload.router, prefix="/api", tags=["upload"])

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


app = create_app()
