"""Serves background-removed artifacts from the local store."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from src.config import Settings, logger
from src.core import storage_ops
from src.routers.process.dependencies import get_settings

router = APIRouter(prefix=storage_ops.PUBLIC_PREFIX, tags=["Artifacts"])


@router.get("/{filename}")
async def get_artifact(
    filename: str, settings: Settings = Depends(get_settings)
) -> FileResponse:
    """Return a stored background-removed PNG."""

    path = storage_ops.resolve_artifact(settings.upload_dir, filename)
    if path is None:
        logger.debug(f"Artifact not found: {filename}")
        raise HTTPException(status_code=404, detail=f"File not found: {filename}")
    return FileResponse(path, media_type="image/png")
