"""
Storage operations module for temporary pipeline artifacts.
Background-removed images are kept on local disk and served under /uploads.
"""

import os
import uuid
from pathlib import Path
from typing import Optional

from src.config import logger

# Public URL prefix for stored artifacts
PUBLIC_PREFIX = "/uploads"


def ensure_storage_dir(upload_dir: str) -> Path:
    """
    Create the artifact directory if it does not exist yet.

    Returns:
        Path: Absolute path of the directory
    """
    path = Path(upload_dir).resolve()
    path.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Artifact directory ready: {path}")
    return path


def generate_public_url(filename: str) -> str:
    """Return the URL path under which a stored artifact is served."""
    return f"{PUBLIC_PREFIX}/{filename}"


def save_removed_background(upload_dir: str, file_bytes: bytes) -> str:
    """
    Write a background-removed PNG under a unique name.

    Args:
        upload_dir: Artifact directory
        file_bytes: PNG content

    Returns:
        str: Generated filename (removed_<hex>.png)

    Raises:
        OSError: If the file cannot be written; no partial file is left behind
    """
    unique_filename = f"removed_{uuid.uuid4().hex}.png"
    path = ensure_storage_dir(upload_dir) / unique_filename

    try:
        path.write_bytes(file_bytes)
    except OSError as e:
        logger.error(f"Error writing artifact {unique_filename}: {e}")
        # Drop whatever part of the file made it to disk
        path.unlink(missing_ok=True)
        raise

    logger.info(f"Stored background-removed image: {unique_filename}")
    return unique_filename


def resolve_artifact(upload_dir: str, filename: str) -> Optional[Path]:
    """
    Map a requested filename to a stored artifact.

    Returns:
        Path of the file, or None if the name is not a plain filename
        inside the artifact directory or the file does not exist
    """
    if not filename or os.path.basename(filename) != filename or filename in (".", ".."):
        return None

    base = Path(upload_dir).resolve()
    path = (base / filename).resolve()
    if path.parent != base or not path.is_file():
        return None
    return path


def delete_file(upload_dir: str, filename: str) -> bool:
    """
    Delete a stored artifact.

    Returns:
        bool: True if a file was removed, False if it was already gone

    Raises:
        OSError: If deletion fails for another reason
    """
    path = Path(upload_dir).resolve() / os.path.basename(filename)
    try:
        path.unlink()
    except FileNotFoundError:
        logger.debug(f"Artifact already gone: {filename}")
        return False

    logger.info(f"Deleted artifact: {filename}")
    return True
