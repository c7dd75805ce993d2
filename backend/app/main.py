import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.config import Settings, load_settings
from app.dependencies import RecapServices, get_services
from routes import recaps, streams, webhooks
from services.coordinator import RecapCoordinator
from services.encoder import FFmpegEncoder
from services.errors import RecapError
from services.media_source import MediaSource, PlaceholderMediaSource
from services.retention import RetentionSweeper
from services.store import ChannelStore

logger = logging.getLogger(__name__)


def build_services(
    settings: Settings,
    *,
    media_source: MediaSource | None = None,
    encoder: FFmpegEncoder | None = None,
) -> RecapServices:
    store = ChannelStore()
    coordinator = RecapCoordinator(
        store,
        media_source or PlaceholderMediaSource(settings.clips_dir),
        encoder
        or FFmpegEncoder(
            temp_dir=settings.temp_dir,
            ffmpeg_binary=settings.ffmpeg_binary,
            timeout_seconds=settings.encode_timeout_seconds,
        ),
        videos_dir=settings.videos_dir,
        cache_bucket_seconds=settings.cache_bucket_seconds,
        wait_timeout_seconds=settings.wait_timeout_seconds,
    )
    sweeper = RetentionSweeper(
        settings.videos_dir,
        coordinator,
        max_age_seconds=settings.retention_max_age_seconds,
        interval_seconds=settings.sweep_interval_seconds,
    )
    return RecapServices(settings=settings, store=store, coordinator=coordinator, sweeper=sweeper)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    services: RecapServices = app.state.services
    sweeper_task = asyncio.create_task(services.sweeper.run())
    logger.info("[main] Recap backend up: videos=%s", services.settings.videos_dir)
    try:
        yield
    finally:
        sweeper_task.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper_task


async def recap_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, RecapError)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("[main] Server error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "detail": "Internal server error"},
    )


def create_app(
    settings: Settings | None = None,
    *,
    media_source: MediaSource | None = None,
    encoder: FFmpegEncoder | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    settings.ensure_directories()

    app = FastAPI(title="Stream Recap API", version="0.1.0", lifespan=lifespan)
    app.state.services = build_services(settings, media_source=media_source, encoder=encoder)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RecapError, recap_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.include_router(streams.router, prefix="/api")
    app.include_router(recaps.router, prefix="/api")
    app.include_router(webhooks.router)

    @app.get("/health")
    def health(request: Request) -> dict[str, Any]:
        services = get_services(request)
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "streams": services.store.session_count(),
            "videos_in_cache": services.coordinator.cached_artifact_count(),
        }

    app.mount("/videos", StaticFiles(directory=settings.videos_dir), name="videos")
    app.mount("/clips", StaticFiles(directory=settings.clips_dir), name="clips")
    return app
