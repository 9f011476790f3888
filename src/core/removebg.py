"""
remove.bg client.
Sends one image and returns the background-removed PNG bytes.
"""

from typing import Any

import httpx

from src.config import logger
from src.core.errors import (
    STAGE_BACKGROUND_REMOVAL,
    BackgroundRemovalError,
    TransportError,
)


def _error_detail(response: httpx.Response) -> Any:
    """Pull the error list out of a remove.bg failure body, falling back to text."""
    try:
        body = response.json()
    except ValueError:
        return response.text or None

    if isinstance(body, dict) and body.get("errors"):
        return body["errors"]
    return body


async def remove_background(
    client: httpx.AsyncClient,
    api_key: str,
    image_bytes: bytes,
    filename: str,
    content_type: str,
    url: str,
) -> bytes:
    """
    Remove the background of an image via remove.bg.

    Args:
        client: Shared HTTP client
        api_key: remove.bg API key, sent as X-Api-Key
        image_bytes: Raw image content
        filename: Original filename of the upload
        content_type: MIME type of the upload
        url: remove.bg endpoint

    Returns:
        bytes: PNG image with a transparent background

    Raises:
        BackgroundRemovalError: If remove.bg answers with a non-success status
        TransportError: If the request could not be completed
    """
    logger.info(f"Sending {len(image_bytes)} bytes to remove.bg: {filename}")

    try:
        response = await client.post(
            url,
            headers={"X-Api-Key": api_key},
            data={"size": "auto", "format": "png"},
            files={"image_file": (filename, image_bytes, content_type)},
        )
    except httpx.RequestError as exc:
        logger.error(f"remove.bg request failed: {exc}")
        raise TransportError(
            "Background removal service unreachable",
            details=str(exc),
            stage=STAGE_BACKGROUND_REMOVAL,
        )

    if not response.is_success:
        detail = _error_detail(response)
        logger.warning(
            f"remove.bg rejected request with status {response.status_code}: {detail}"
        )
        raise BackgroundRemovalError(
            "Background removal failed",
            details=detail,
            http_status=response.status_code,
        )

    if not response.content:
        raise BackgroundRemovalError(
            "Background removal returned an empty image",
            http_status=response.status_code,
        )

    logger.info(f"remove.bg returned {len(response.content)} bytes")
    return response.content
