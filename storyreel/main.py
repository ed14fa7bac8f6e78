"""
FastAPI application for the StoryReel engine
"""

import os
import time
import uuid
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from storyreel.api.holograms import router as holograms_router
from storyreel.api.runs import router as runs_router
from storyreel.api.videos import router as videos_router
from storyreel.config import Settings
from storyreel.errors import StoryReelError
from storyreel.seed import seed_if_empty
from storyreel.services import Services, build_services
from storyreel.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

APP_VERSION = "0.1.0"


def create_app(
    settings: Optional[Settings] = None,
    services: Optional[Services] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings; loaded from the environment when omitted
        services: Prebuilt service graph (tests); built from settings when omitted
        configure_logging: Install the root logging handlers from settings

    Returns:
        Configured FastAPI app with ``app.state.services`` set
    """
    if services is not None:
        settings = services.settings
    settings = settings or Settings()
    if configure_logging:
        setup_logging(level=settings.log_level, log_file=settings.log_file)
    services = services or build_services(settings)

    app = FastAPI(
        title="StoryReel Engine",
        description="Turn-based interactive stories with illustrated turns and highlight videos",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Callable) -> Response:
        """Log all HTTP requests with a short correlation id and duration"""
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()
        request.state.request_id = request_id

        logger.info(
            f"[API] Request started: {request.method} {request.url.path}",
            extra={
                "component": "API",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": request.client.host if request.client else "unknown",
                "query_params": (
                    dict(request.query_params) if request.query_params else None
                ),
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"[API] Request failed: {request.method} {request.url.path} -> ERROR ({duration_ms:.2f}ms): {str(e)}",
                extra={
                    "component": "API",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": duration_ms,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"[API] Request completed: {request.method} {request.url.path} -> {response.status_code} ({duration_ms:.2f}ms)",
            extra={
                "component": "API",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response

    @app.exception_handler(StoryReelError)
    async def storyreel_error_handler(request: Request, exc: StoryReelError):
        level = logger.error if exc.status_code >= 500 else logger.warning
        level(
            f"[API] {type(exc).__name__}: {exc.message}",
            extra={
                "component": "API",
                "request_id": getattr(request.state, "request_id", None),
                "path": request.url.path,
                "status_code": exc.status_code,
            },
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error": type(exc).__name__},
        )

    app.include_router(runs_router, prefix="/simulations", tags=["runs"])
    app.include_router(holograms_router, prefix="/simulations", tags=["holograms"])
    app.include_router(videos_router, tags=["videos"])

    if settings.blob_public_base_url.startswith("/"):
        os.makedirs(settings.blob_storage_dir, exist_ok=True)
        app.mount(
            settings.blob_public_base_url,
            StaticFiles(directory=settings.blob_storage_dir),
            name="blobs",
        )

    @app.on_event("startup")
    async def startup_event():
        """Initialize application on startup"""
        logger.info("=" * 60)
        logger.info("APPLICATION STARTUP")
        logger.info("=" * 60)

        if settings.seed_demo_data:
            seeded = seed_if_empty(services.db)
            if seeded:
                logger.info(f"✓ Seeded {len(seeded)} demo stories")

        logger.info("Configuration:")
        logger.info(f"  - Text model: {settings.model_name} (fake: {settings.fake_text_enabled})")
        logger.info(f"  - Image model: {settings.image_model_name} (fake: {settings.fake_image_enabled})")
        logger.info(f"  - Video model: {settings.video_model_name} (fake: {settings.fake_video_enabled})")
        logger.info(f"  - Database: {settings.database_path}")
        logger.info(f"  - Blob storage: {settings.blob_storage_dir}")
        logger.info("=" * 60)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "StoryReel Engine",
            "version": APP_VERSION,
            "status": "running",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}

    return app


if __name__ == "__main__":
    import uvicorn

    from storyreel.config import settings

    setup_logging(level=settings.log_level, log_file=settings.log_file)
    logger.info(f"Starting server on {settings.host}:{settings.port}")
    uvicorn.run(
        "storyreel.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
