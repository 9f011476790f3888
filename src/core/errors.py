"""Error taxonomy for the enhancement pipeline."""

from typing import Any, Dict, Optional

STAGE_INTAKE = "intake"
STAGE_BACKGROUND_REMOVAL = "background_removal"
STAGE_ENHANCEMENT_SUBMIT = "enhancement_submit"
STAGE_ENHANCEMENT_POLL = "enhancement_poll"


class PipelineError(Exception):
    """Base class for every failure the pipeline reports to callers."""

    status_code = 500
    default_stage: Optional[str] = None

    def __init__(
        self,
        message: str,
        details: Optional[Any] = None,
        stage: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.details = details
        self.stage = stage or self.default_stage
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": False, "error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        if self.stage:
            payload["stage"] = self.stage
        return payload


class ValidationError(PipelineError):
    """Missing or invalid upload."""

    status_code = 400
    default_stage = STAGE_INTAKE


class TransportError(PipelineError):
    """Network-level failure while calling a collaborator."""

    status_code = 500


class BackgroundRemovalError(PipelineError):
    """remove.bg rejected the request."""

    status_code = 400
    default_stage = STAGE_BACKGROUND_REMOVAL

    def __init__(self, message: str, details=None, http_status: Optional[int] = None):
        super().__init__(message, details=details)
        self.http_status = http_status


class EnhancementSubmitError(PipelineError):
    """Replicate rejected the prediction submission."""

    status_code = 400
    default_stage = STAGE_ENHANCEMENT_SUBMIT

    def __init__(self, message: str, details=None, http_status: Optional[int] = None):
        super().__init__(message, details=details)
        self.http_status = http_status


class InvalidServiceResponse(PipelineError):
    """Replicate answered with data the pipeline cannot use."""

    status_code = 400
    default_stage = STAGE_ENHANCEMENT_SUBMIT


class EnhancementFailed(PipelineError):
    """The remote prediction reached the failed state."""

    status_code = 400
    default_stage = STAGE_ENHANCEMENT_POLL


class EnhancementTimeout(PipelineError):
    """The polling budget ran out before a terminal state."""

    status_code = 408
    default_stage = STAGE_ENHANCEMENT_POLL


class JobCapacityError(PipelineError):
    """Every ticket slot is held by a job that is still running."""

    status_code = 503
    default_stage = STAGE_INTAKE
