"""
Thumbnailer Main Application
============================

FastAPI entry point for the video thumbnail service.

Endpoints:
    GET  /                    - Service information
    GET  /health              - Liveness probe
    GET  /metrics             - Cache and dispatcher counters
    GET  /thumbnail           - JPEG thumbnail for ?url=<source>
    POST /generate-thumbnail  - JPEG thumbnail for {"url": ..., "type": "video"}
    GET  /cache-status        - {"cacheHit": bool} for ?url=<source>
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from thumbnailer.cache import CacheStore, InMemoryCacheStore, RedisCacheStore
from thumbnailer.config import Settings, load_config, setup_logging
from thumbnailer.dispatch import BoundedDispatcher
from thumbnailer.errors import InputError, ThumbnailerError
from thumbnailer.media import FrameExtractor, OpenCVFrameExtractor, SyntheticFrameExtractor
from thumbnailer.models.api import ErrorResponse, GenerateThumbnailRequest
from thumbnailer.pipeline import ThumbnailGenerator
from thumbnailer.service import ThumbnailService


logger = logging.getLogger(__name__)


SUPPORTED_TASK_TYPE = "video"


# =============================================================================
# Component Factories
# =============================================================================

def create_extractor(settings: Settings) -> FrameExtractor:
    """Create the frame extractor selected by config."""
    backend = settings.media.backend

    if backend == "opencv":
        logger.info(f"Using OpenCVFrameExtractor: seek={settings.media.seek_seconds}s")
        return OpenCVFrameExtractor(seek_seconds=settings.media.seek_seconds)

    elif backend == "synthetic":
        logger.info("Using SyntheticFrameExtractor")
        return SyntheticFrameExtractor()

    else:
        raise ValueError(f"Unknown media backend: {backend}")


def create_cache_store(settings: Settings) -> CacheStore:
    """Create the cache backend selected by config."""
    backend = settings.cache.backend

    if backend == "memory":
        logger.info("Using InMemoryCacheStore")
        return InMemoryCacheStore()

    elif backend == "redis":
        logger.info(f"Using RedisCacheStore: {settings.cache.redis_url}")
        return RedisCacheStore(url=settings.cache.redis_url)

    else:
        raise ValueError(f"Unknown cache backend: {backend}")


def build_service(
    settings: Settings,
    extractor: Optional[FrameExtractor] = None,
    cache: Optional[CacheStore] = None,
) -> ThumbnailService:
    """Wire extractor, compositor, dispatcher and cache into a service."""
    generator = ThumbnailGenerator(
        extractor=extractor or create_extractor(settings),
        spec=settings.output.to_spec(),
    )
    dispatcher = BoundedDispatcher(
        process=generator.generate,
        workers=settings.dispatcher.workers,
        max_queue_depth=settings.dispatcher.max_queue_depth,
    )
    return ThumbnailService(
        cache=cache or create_cache_store(settings),
        dispatcher=dispatcher,
        ttl_seconds=settings.cache.ttl_seconds,
        cache_enabled=settings.cache.enabled,
        fail_open=settings.cache.fail_open,
    )


# =============================================================================
# HTTP Endpoints
# =============================================================================

router = APIRouter()


def get_service(request: Request) -> ThumbnailService:
    return request.app.state.service


def _jpeg(data: bytes) -> Response:
    return Response(content=data, media_type="image/jpeg")


@router.get("/")
async def root(request: Request) -> JSONResponse:
    """Service information endpoint."""
    settings: Settings = request.app.state.settings
    return JSONResponse({
        "service": settings.service.name,
        "version": settings.service.version,
        "status": "running",
        "cache_backend": settings.cache.backend,
        "media_backend": settings.media.backend,
    })


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - request.app.state.started_at, 1),
    })


@router.get("/metrics")
async def metrics(service: ThumbnailService = Depends(get_service)) -> JSONResponse:
    """Cache and dispatcher counters."""
    return JSONResponse(service.metrics())


@router.get("/thumbnail")
async def thumbnail(
    url: Optional[str] = None,
    service: ThumbnailService = Depends(get_service),
) -> Response:
    """Generate (or serve from cache) the thumbnail for ?url=."""
    logger.info(f"Processing video: {url}")
    return _jpeg(await service.generate(url))


@router.post("/generate-thumbnail")
async def generate_thumbnail(
    body: GenerateThumbnailRequest,
    service: ThumbnailService = Depends(get_service),
) -> Response:
    """Generate (or serve from cache) the thumbnail for a JSON request."""
    if body.type != SUPPORTED_TASK_TYPE:
        logger.info(f"Unsupported task type: {body.type!r}")
        raise InputError("Unsupported type")

    return _jpeg(await service.generate(body.url))


@router.get("/cache-status")
async def cache_status(
    url: Optional[str] = None,
    service: ThumbnailService = Depends(get_service),
) -> JSONResponse:
    """Report whether ?url= is cached, without generating anything."""
    status = await service.peek_cache_status(url)
    return JSONResponse(status.model_dump(by_alias=True))


# =============================================================================
# Error Handlers
# =============================================================================

def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=status_code)


async def handle_thumbnailer_error(request: Request, exc: ThumbnailerError) -> JSONResponse:
    if isinstance(exc, InputError):
        logger.info(f"Rejected request {request.url.path}: {exc}")
        message = str(exc) or exc.public_message
    else:
        logger.error(f"Error processing {request.url.path}: {exc}")
        message = exc.public_message

    return _error(message, exc.status_code)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"Invalid request body for {request.url.path}: {exc.errors()}")
    return _error("Invalid request body", 400)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return _error("Error processing video", 500)


# =============================================================================
# Application Factory
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    service: Optional[ThumbnailService] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Loaded settings. Defaults to load_config().
        service: Pre-built service (tests). Defaults to build_service(settings).
    """
    settings = settings or load_config()
    service = service or build_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Start the service on startup, drain it on shutdown."""
        logger.info(
            f"Starting {settings.service.name} {settings.service.version}: "
            f"cache={settings.cache.model_dump()}, "
            f"dispatcher={settings.dispatcher.model_dump()}, "
            f"output={settings.output.model_dump()}"
        )
        app.state.started_at = time.time()

        if isinstance(service.cache, RedisCacheStore):
            try:
                await service.cache.ping()
            except ThumbnailerError as e:
                logger.error(f"Failed to connect to Redis: {e}")

        await service.start()

        yield

        logger.info("Shutting down gracefully...")
        await service.stop(drain=True)
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Video Thumbnailer",
        description="Cached preview stills for video URLs",
        version=settings.service.version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.service = service
    app.state.started_at = time.time()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ThumbnailerError, handle_thumbnailer_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(router)
    return app


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> None:
    import uvicorn

    settings = load_config()
    setup_logging(settings)

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
