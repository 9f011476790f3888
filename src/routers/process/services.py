"""Service helpers used by the enhancement router."""

import mimetypes
from typing import Optional

from fastapi import UploadFile

from src.config import Settings, logger
from src.core.errors import ValidationError
from src.services.enhance_service import UploadedImage

GENERIC_CONTENT_TYPES = ("", "application/octet-stream")


def resolve_content_type(image: UploadFile) -> str:
    """Use the declared MIME type, guessing from the filename when it is generic."""
    content_type = (image.content_type or "").split(";")[0].strip().lower()
    if content_type in GENERIC_CONTENT_TYPES and image.filename:
        guessed, _ = mimetypes.guess_type(image.filename)
        content_type = (guessed or "").lower()
    return content_type


async def read_upload(image: Optional[UploadFile], settings: Settings) -> UploadedImage:
    """Validate the upload and buffer it in memory.

    Runs before any outbound call, so a rejected upload never reaches
    remove.bg or Replicate.
    """

    if image is None:
        raise ValidationError("No image uploaded", details="Expected multipart field 'image'")

    filename = image.filename or "upload"
    content_type = resolve_content_type(image)
    if content_type not in settings.allowed_content_types:
        logger.warning(f"Rejected upload {filename} with type {content_type!r}")
        raise ValidationError(
            "Unsupported image type",
            details={
                "contentType": content_type or None,
                "allowed": list(settings.allowed_content_types),
            },
        )

    # One extra byte is enough to tell an oversize upload apart
    content = await image.read(settings.max_upload_bytes + 1)
    if len(content) > settings.max_upload_bytes:
        logger.warning(f"Rejected upload {filename}: larger than {settings.max_upload_bytes} bytes")
        raise ValidationError(
            "Image too large",
            details={"maxBytes": settings.max_upload_bytes},
        )
    if not content:
        raise ValidationError("Uploaded image is empty")

    logger.info(f"Accepted upload {filename} ({content_type}, {len(content)} bytes)")
    return UploadedImage(content=content, filename=filename, content_type=content_type)
