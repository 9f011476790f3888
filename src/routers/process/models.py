"""Pydantic models used by the enhancement router."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProcessResponse(BaseModel):
    """Response model for a completed enhancement run."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    removed_bg_url: str = Field(
        ..., alias="removedBgUrl", description="Path of the background-removed PNG"
    )
    enhanced_url: str = Field(
        ..., alias="enhancedUrl", description="URL of the upscaled image"
    )
    prediction_id: Optional[str] = Field(None, alias="predictionId")
    processing_time_ms: Optional[int] = Field(None, alias="processingTimeMs")


class ErrorResponse(BaseModel):
    """Generic error payload."""

    success: bool = False
    error: str
    details: Optional[Any] = None
    stage: Optional[str] = None


class JobAcceptedResponse(BaseModel):
    """Response model for an accepted asynchronous job."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    job_id: str = Field(..., alias="jobId")
    status: str = Field(..., description="Current processing status for the job")
    status_url: str = Field(..., alias="statusUrl")


class JobStatusResponse(BaseModel):
    """Status of an asynchronous job, with the result once it is terminal."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    job_id: str = Field(..., alias="jobId")
    status: str
    result: Optional[dict] = None


class CredentialsStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    remove_bg: bool = Field(..., alias="removeBg")
    replicate: bool


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    credentials: CredentialsStatus
