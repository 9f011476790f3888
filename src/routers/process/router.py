"""FastAPI router for background removal + enhancement endpoints."""

from typing import Optional

import httpx
from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    HTTPException,
    Request,
    UploadFile,
)
from fastapi.responses import JSONResponse

from src.config import SERVICE_NAME, SERVICE_VERSION, Settings, logger
from src.services.enhance_service import run_enhancement_pipeline
from src.services.job_registry import JobRegistry, process_ticket

from .dependencies import get_http_client, get_job_registry, get_settings
from .models import (
    ErrorResponse,
    HealthResponse,
    JobAcceptedResponse,
    JobStatusResponse,
    ProcessResponse,
)
from .services import read_upload

router = APIRouter(prefix="/api/v1", tags=["Enhancement"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    408: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post(
    "/process",
    responses={200: {"model": ProcessResponse}, **ERROR_RESPONSES},
)
async def process_image(
    image: Optional[UploadFile] = File(default=None, description="Image to process"),
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> JSONResponse:
    """Remove the background, upscale, and wait for the result.

    The request stays open while the enhancement job is polled.
    """

    logger.info("Enhancement request received")
    upload = await read_upload(image, settings)

    result = await run_enhancement_pipeline(upload, settings, client)
    return JSONResponse(status_code=result.status_code, content=result.to_dict())


@router.post(
    "/jobs",
    status_code=202,
    responses={
        202: {"model": JobAcceptedResponse},
        400: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def create_job(
    request: Request,
    background_tasks: BackgroundTasks,
    image: Optional[UploadFile] = File(default=None, description="Image to process"),
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
    registry: JobRegistry = Depends(get_job_registry),
) -> JSONResponse:
    """Accept an image and run the pipeline in the background."""

    upload = await read_upload(image, settings)
    ticket = registry.create()

    background_tasks.add_task(
        process_ticket, registry, ticket.job_id, upload, settings, client
    )

    logger.info(f"Background job scheduled: {ticket.job_id}")

    status_url = request.url_for("get_job_status", job_id=ticket.job_id).path
    return JSONResponse(
        status_code=202,
        content={
            "success": True,
            "jobId": ticket.job_id,
            "status": ticket.status,
            "statusUrl": status_url,
        },
    )


@router.get(
    "/jobs/{job_id}",
    response_model=JobStatusResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_job_status(
    job_id: str,
    registry: JobRegistry = Depends(get_job_registry),
) -> dict:
    """Retrieve the status and result of an asynchronous job."""

    ticket = registry.get(job_id)
    if ticket is None:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    return ticket.to_dict()


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> dict:
    """Health check reporting whether both API credentials are configured."""

    credentials = settings.credentials_status
    return {
        "status": "healthy" if all(credentials.values()) else "degraded",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "credentials": credentials,
    }
