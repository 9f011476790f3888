from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.config import (
    SERVICE_VERSION,
    Settings,
    cors_origins_from_env,
    load_settings,
    logger,
)
from src.core.handlers import register_exception_handlers
from src.core.storage_ops import ensure_storage_dir
from src.services.job_registry import JobRegistry

from .routers import router


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Refuses to start without both API credentials
    settings = app.state.settings or load_settings()
    ensure_storage_dir(settings.upload_dir)

    owns_client = app.state.http_client is None
    client = app.state.http_client or httpx.AsyncClient(
        timeout=settings.http_timeout_seconds
    )

    app.state.settings = settings
    app.state.http_client = client
    app.state.jobs = JobRegistry(capacity=settings.max_jobs)

    logger.info("Cutout & Enhance API started")
    try:
        yield
    finally:
        if owns_client:
            await client.aclose()
        logger.info("Cutout & Enhance API stopped")


def create_app(
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """Build the application; settings are loaded from the environment at startup when omitted."""

    app = FastAPI(
        title="Cutout & Enhance API",
        description="Background removal followed by Real-ESRGAN upscaling",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.http_client = http_client

    app.include_router(router)
    register_exception_handlers(app)

    # Configure CORS
    origins = settings.cors_origins if settings else cors_origins_from_env()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


app = create_app()

logger.info("Cutout & Enhance API initialized successfully")
