"""Background removal + enhancement pipeline."""

from __future__ import annotations

import asyncio
import logging
import time
import traceback
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx

from src.config import Settings, logger
from src.core import removebg, replicate, storage_ops
from src.core.errors import PipelineError
from src.core.replicate import STATUS_PROCESSING, SleepFunc

StatusCallback = Callable[[str], None]


def _log(level: int, message: str, **context: Any) -> None:
    """Helper to emit structured logs with contextual metadata."""
    logger.log(level, "%s | context=%s", message, context)


@dataclass(slots=True)
class UploadedImage:
    """An upload buffered in memory for the lifetime of one request."""

    content: bytes
    filename: str
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(slots=True)
class ProcessingResult:
    """Terminal outcome of one pipeline run.

    Either both URLs are set and there is no error, or the error is set.
    """

    success: bool
    status_code: int = 200
    removed_bg_url: Optional[str] = None
    enhanced_url: Optional[str] = None
    prediction_id: Optional[str] = None
    processing_time_ms: Optional[int] = None
    error: Optional[str] = None
    details: Any = None
    stage: Optional[str] = None

    def __post_init__(self) -> None:
        if self.success:
            if not (self.removed_bg_url and self.enhanced_url) or self.error:
                raise ValueError("successful result needs both URLs and no error")
        elif not self.error:
            raise ValueError("failed result needs a non-empty error")

    @classmethod
    def from_error(
        cls, exc: PipelineError, processing_time_ms: Optional[int] = None
    ) -> "ProcessingResult":
        return cls(
            success=False,
            status_code=exc.status_code,
            error=exc.message,
            details=exc.details,
            stage=exc.stage,
            processing_time_ms=processing_time_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {
                "success": True,
                "removedBgUrl": self.removed_bg_url,
                "enhancedUrl": self.enhanced_url,
                "predictionId": self.prediction_id,
                "processingTimeMs": self.processing_time_ms,
            }

        payload: Dict[str, Any] = {"success": False, "error": self.error}
        if self.details is not None:
            payload["details"] = self.details
        if self.stage:
            payload["stage"] = self.stage
        return payload


async def run_enhancement_pipeline(
    image: UploadedImage,
    settings: Settings,
    client: httpx.AsyncClient,
    sleep: SleepFunc = asyncio.sleep,
    on_status: Optional[StatusCallback] = None,
) -> ProcessingResult:
    """Remove the background, upscale the result, and report both URLs.

    Never raises: every failure becomes a failed ProcessingResult, and the
    background-removed artifact is deleted whenever the run does not succeed.
    Cancellation is the one exception; the artifact is still deleted before
    CancelledError propagates.

    Artifact disk I/O runs inline on the event loop. Uploads are capped at
    a few megabytes, and keeping the write and unlink on the loop means a
    cancelled run can never race a worker thread still writing the file.
    """

    start_time = time.time()
    artifact_name: Optional[str] = None

    _log(
        logging.INFO,
        "pipeline_started",
        filename=image.filename,
        content_type=image.content_type,
        size=image.size,
    )

    if on_status:
        on_status(STATUS_PROCESSING)

    try:
        removed_bytes = await removebg.remove_background(
            client,
            settings.remove_bg_api_key,
            image.content,
            image.filename,
            image.content_type,
            url=settings.remove_bg_url,
        )

        artifact_name = storage_ops.save_removed_background(
            settings.upload_dir, removed_bytes
        )
        removed_bg_url = storage_ops.generate_public_url(artifact_name)
        _log(logging.INFO, "background_removed", artifact=artifact_name)

        job = await replicate.submit_enhancement(
            client,
            settings.replicate_api_token,
            removed_bytes,
            model_version=settings.replicate_model_version,
            url=settings.replicate_api_url,
        )
        _log(
            logging.INFO,
            "enhancement_submitted",
            prediction_id=job.prediction_id,
            status=job.status,
        )

        job = await replicate.poll_enhancement(
            client,
            settings.replicate_api_token,
            job,
            interval_seconds=settings.poll_interval_seconds,
            max_attempts=settings.poll_max_attempts,
            sleep=sleep,
        )

    except PipelineError as exc:
        await _cleanup_artifact(settings.upload_dir, artifact_name)
        result = ProcessingResult.from_error(exc, _elapsed_ms(start_time))
        _log(
            logging.WARNING,
            "pipeline_failed",
            error=exc.message,
            stage=exc.stage,
            status_code=exc.status_code,
        )
        return result

    except asyncio.CancelledError:
        # Shutdown or a cancelled ticket; the remote job is left to finish
        _log(logging.WARNING, "pipeline_cancelled", artifact=artifact_name)
        await _cleanup_artifact(settings.upload_dir, artifact_name)
        raise

    except Exception as exc:
        logger.error("Unexpected error in enhancement pipeline", exc_info=True)
        await _cleanup_artifact(settings.upload_dir, artifact_name)

        details: Dict[str, Any] = {"message": str(exc)}
        if settings.dev_mode:
            details["traceback"] = traceback.format_exc()

        return ProcessingResult(
            success=False,
            status_code=500,
            error="Internal server error",
            details=details,
            processing_time_ms=_elapsed_ms(start_time),
        )

    processing_time_ms = _elapsed_ms(start_time)
    _log(
        logging.INFO,
        "pipeline_completed",
        prediction_id=job.prediction_id,
        removed_bg_url=removed_bg_url,
        enhanced_url=job.output_url,
        processing_time_ms=processing_time_ms,
    )

    return ProcessingResult(
        success=True,
        removed_bg_url=removed_bg_url,
        enhanced_url=job.output_url,
        prediction_id=job.prediction_id,
        processing_time_ms=processing_time_ms,
    )


def _elapsed_ms(start_time: float) -> int:
    return int((time.time() - start_time) * 1000)


async def _cleanup_artifact(upload_dir: str, artifact_name: Optional[str]) -> None:
    if not artifact_name:
        return
    try:
        storage_ops.delete_file(upload_dir, artifact_name)
        _log(logging.DEBUG, "artifact_deleted", artifact=artifact_name)
    except OSError as exc:
        _log(logging.WARNING, "cleanup_failed", artifact=artifact_name, error=str(exc))
