"""
Replicate client for the Real-ESRGAN upscaler.
Submits a prediction and polls it until a terminal state.
"""

import asyncio
import base64
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx
import pydantic

from src.config import FACE_ENHANCE, UPSCALE_FACTOR, logger
from src.core.errors import (
    STAGE_ENHANCEMENT_POLL,
    STAGE_ENHANCEMENT_SUBMIT,
    EnhancementFailed,
    EnhancementSubmitError,
    EnhancementTimeout,
    InvalidServiceResponse,
    TransportError,
)

__all__ = [
    "PredictionInput",
    "PredictionRequest",
    "Prediction",
    "EnhancementJob",
    "normalize_status",
    "submit_enhancement",
    "poll_enhancement",
]

STATUS_QUEUED = "queued"
STATUS_PROCESSING = "processing"
STATUS_SUCCEEDED = "succeeded"
STATUS_FAILED = "failed"
STATUS_TIMED_OUT = "timed-out"

# Replicate's own vocabulary mapped onto the pipeline states
_STATUS_MAP = {
    "starting": STATUS_QUEUED,
    "queued": STATUS_QUEUED,
    "processing": STATUS_PROCESSING,
    "succeeded": STATUS_SUCCEEDED,
    "failed": STATUS_FAILED,
    "canceled": STATUS_FAILED,
}

SleepFunc = Callable[[float], Awaitable[Any]]


class PredictionInput(pydantic.BaseModel):
    image: str
    scale: int = UPSCALE_FACTOR
    face_enhance: bool = FACE_ENHANCE


class PredictionRequest(pydantic.BaseModel):
    version: str
    input: PredictionInput


class PredictionUrls(pydantic.BaseModel):
    get: Optional[str] = None
    cancel: Optional[str] = None


class Prediction(pydantic.BaseModel):
    id: Optional[str] = None
    status: Optional[str] = None
    urls: Optional[PredictionUrls] = None
    output: Optional[Union[str, List[Any]]] = None
    error: Optional[Any] = None


class EnhancementJob(pydantic.BaseModel):
    """Local handle on a remote prediction. The remote side owns the state."""

    prediction_id: Optional[str] = None
    poll_url: str
    status: str = STATUS_QUEUED
    output_url: Optional[str] = None


def normalize_status(raw_status: Optional[str]) -> str:
    """Map a Replicate status onto queued/processing/succeeded/failed."""
    if not raw_status:
        return STATUS_QUEUED
    return _STATUS_MAP.get(raw_status.lower(), STATUS_PROCESSING)


def to_data_uri(image_bytes: bytes, content_type: str = "image/png") -> str:
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


def _auth_headers(api_token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {api_token}"}


def _parse_prediction(response: httpx.Response, stage: str) -> Prediction:
    try:
        return Prediction(**response.json())
    except (ValueError, TypeError, pydantic.ValidationError) as exc:
        raise InvalidServiceResponse(
            "Enhancement service returned an unreadable response",
            details=response.text or str(exc),
            stage=stage,
        )


def _extract_output_url(prediction: Prediction) -> str:
    output = prediction.output
    if isinstance(output, list):
        output = output[0] if output else None
    if not isinstance(output, str) or not output:
        raise InvalidServiceResponse(
            "Enhancement succeeded without an output URL",
            details=prediction.model_dump(),
            stage=STAGE_ENHANCEMENT_POLL,
        )
    return output


async def submit_enhancement(
    client: httpx.AsyncClient,
    api_token: str,
    image_bytes: bytes,
    model_version: str,
    url: str,
) -> EnhancementJob:
    """
    Submit a Real-ESRGAN prediction for a background-removed PNG.

    The image is embedded inline as a base64 data URI, so the local
    artifact never has to be reachable from Replicate.

    Returns:
        EnhancementJob: Handle carrying the polling URL

    Raises:
        EnhancementSubmitError: If Replicate rejects the submission
        InvalidServiceResponse: If the response lacks a polling URL
        TransportError: If the request could not be completed
    """
    payload = PredictionRequest(
        version=model_version,
        input=PredictionInput(image=to_data_uri(image_bytes)),
    )

    logger.info(
        f"Submitting enhancement job (scale={payload.input.scale}, "
        f"face_enhance={payload.input.face_enhance})"
    )

    try:
        response = await client.post(
            url,
            json=payload.model_dump(),
            headers=_auth_headers(api_token),
        )
    except httpx.RequestError as exc:
        logger.error(f"Replicate submission failed: {exc}")
        raise TransportError(
            "Enhancement service unreachable",
            details=str(exc),
            stage=STAGE_ENHANCEMENT_SUBMIT,
        )

    if not response.is_success:
        try:
            detail: Any = response.json()
        except ValueError:
            detail = response.text or None
        logger.warning(
            f"Replicate rejected submission with status {response.status_code}"
        )
        raise EnhancementSubmitError(
            "Enhancement submission failed",
            details=detail,
            http_status=response.status_code,
        )

    prediction = _parse_prediction(response, STAGE_ENHANCEMENT_SUBMIT)
    if not prediction.urls or not prediction.urls.get:
        raise InvalidServiceResponse(
            "Enhancement service response is missing the polling URL",
            details=prediction.model_dump(),
            stage=STAGE_ENHANCEMENT_SUBMIT,
        )

    job = EnhancementJob(
        prediction_id=prediction.id,
        poll_url=prediction.urls.get,
        status=normalize_status(prediction.status),
    )
    logger.info(f"Enhancement job submitted: {job.prediction_id} ({job.status})")
    return job


async def poll_enhancement(
    client: httpx.AsyncClient,
    api_token: str,
    job: EnhancementJob,
    interval_seconds: float,
    max_attempts: int,
    sleep: SleepFunc = asyncio.sleep,
) -> EnhancementJob:
    """
    Poll a prediction at a constant interval until it is terminal.

    Each non-terminal poll is followed by one wait, so a timeout is only
    signalled after max_attempts * interval_seconds of waiting.

    Returns:
        EnhancementJob: The job in the succeeded state with output_url set

    Raises:
        EnhancementFailed: As soon as a poll reports failure
        EnhancementTimeout: When max_attempts polls never reach a terminal state
        InvalidServiceResponse: If a poll response is unusable
        TransportError: If a poll request could not be completed
    """
    for attempt in range(1, max_attempts + 1):
        try:
            response = await client.get(job.poll_url, headers=_auth_headers(api_token))
        except httpx.RequestError as exc:
            logger.error(f"Replicate poll failed on attempt {attempt}: {exc}")
            raise TransportError(
                "Enhancement service unreachable while polling",
                details=str(exc),
                stage=STAGE_ENHANCEMENT_POLL,
            )

        if not response.is_success:
            raise InvalidServiceResponse(
                f"Enhancement status check returned HTTP {response.status_code}",
                details=response.text or None,
                stage=STAGE_ENHANCEMENT_POLL,
            )

        prediction = _parse_prediction(response, STAGE_ENHANCEMENT_POLL)
        status = normalize_status(prediction.status)
        logger.debug(
            f"Poll {attempt}/{max_attempts} for {job.prediction_id}: {status}"
        )

        if status == STATUS_SUCCEEDED:
            return job.model_copy(
                update={
                    "status": STATUS_SUCCEEDED,
                    "output_url": _extract_output_url(prediction),
                }
            )

        if status == STATUS_FAILED:
            logger.warning(
                f"Enhancement job {job.prediction_id} failed: {prediction.error}"
            )
            raise EnhancementFailed(
                "Enhancement job failed",
                details=prediction.error or prediction.status,
            )

        await sleep(interval_seconds)

    logger.warning(
        f"Enhancement job {job.prediction_id} timed out after {max_attempts} polls"
    )
    raise EnhancementTimeout(
        "Enhancement timed out",
        details={
            "attempts": max_attempts,
            "intervalSeconds": interval_seconds,
            "status": STATUS_TIMED_OUT,
        },
    )
