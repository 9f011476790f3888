"""
Configuration module for the Cutout & Enhance API
Contains logger setup and the immutable runtime settings
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


# -------------------------
# Logger Setup
# -------------------------
def setup_logger(
    name: str = __name__, log_file: Optional[str] = "enhance.log"
) -> logging.Logger:
    """
    Set up and return a logger with console and (optional) file handlers

    Args:
        name: Logger name (usually __name__)
        log_file: Path to log file, or None/empty to log to console only

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    # Avoid adding duplicate handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


# Create the main application logger
logger = setup_logger("src", os.getenv("LOG_FILE", "enhance.log"))


# -------------------------
# Defaults
# -------------------------
SERVICE_NAME = "cutout-enhance-api"
SERVICE_VERSION = "1.0.0"

REMOVE_BG_URL = "https://api.remove.bg/v1.0/removebg"
REPLICATE_API_URL = "https://api.replicate.com/v1/predictions"
# cjwbw/real-esrgan
REAL_ESRGAN_VERSION = "42fed1c4974146d4d2414e2be2c5277c7fcf05fcc3a73abf41610695738c1d7b"

UPSCALE_FACTOR = 2
FACE_ENHANCE = False

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp")

POLL_INTERVAL_SECONDS = 2.0
POLL_MAX_ATTEMPTS = 30


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing or malformed."""


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, built once at startup and passed explicitly."""

    remove_bg_api_key: str
    replicate_api_token: str
    replicate_model_version: str = REAL_ESRGAN_VERSION
    remove_bg_url: str = REMOVE_BG_URL
    replicate_api_url: str = REPLICATE_API_URL
    upload_dir: str = "uploads"
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    allowed_content_types: Tuple[str, ...] = ALLOWED_CONTENT_TYPES
    poll_interval_seconds: float = POLL_INTERVAL_SECONDS
    poll_max_attempts: int = POLL_MAX_ATTEMPTS
    http_timeout_seconds: float = 60.0
    dev_mode: bool = False
    cors_origins: Tuple[str, ...] = ("*",)
    max_jobs: int = 1000

    @property
    def credentials_status(self) -> dict:
        return {
            "removeBg": bool(self.remove_bg_api_key),
            "replicate": bool(self.replicate_api_token),
        }


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def cors_origins_from_env() -> Tuple[str, ...]:
    origins = tuple(
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    )
    return origins or ("*",)


def load_settings() -> Settings:
    """
    Build Settings from environment variables.

    Raises:
        ConfigurationError: If either API credential is missing
    """
    remove_bg_key = (os.getenv("REMOVE_BG_API_KEY") or "").strip()
    replicate_token = (
        os.getenv("REPLICATE_API_TOKEN") or os.getenv("REPLICATE_API_KEY") or ""
    ).strip()

    missing = []
    if not remove_bg_key:
        missing.append("REMOVE_BG_API_KEY")
    if not replicate_token:
        missing.append("REPLICATE_API_TOKEN")
    if missing:
        error_msg = f"Missing required configuration: {', '.join(missing)}"
        logger.error(error_msg)
        raise ConfigurationError(error_msg)

    settings = Settings(
        remove_bg_api_key=remove_bg_key,
        replicate_api_token=replicate_token,
        replicate_model_version=os.getenv(
            "REPLICATE_MODEL_VERSION", REAL_ESRGAN_VERSION
        ),
        remove_bg_url=os.getenv("REMOVE_BG_URL", REMOVE_BG_URL),
        replicate_api_url=os.getenv("REPLICATE_API_URL", REPLICATE_API_URL),
        upload_dir=os.getenv("UPLOAD_DIR", "uploads"),
        max_upload_bytes=_env_number("MAX_UPLOAD_BYTES", MAX_UPLOAD_BYTES, int),
        poll_interval_seconds=_env_number(
            "POLL_INTERVAL_SECONDS", POLL_INTERVAL_SECONDS, float
        ),
        poll_max_attempts=_env_number("POLL_MAX_ATTEMPTS", POLL_MAX_ATTEMPTS, int),
        http_timeout_seconds=_env_number("HTTP_TIMEOUT_SECONDS", 60.0, float),
        dev_mode=os.getenv("APP_ENV", "production").lower() == "development",
        cors_origins=cors_origins_from_env(),
        max_jobs=_env_number("MAX_JOBS", 1000, int),
    )

    # Log configuration status
    logger.info("Configuration loaded successfully")
    logger.debug(f"REMOVE_BG_API_KEY configured: {bool(settings.remove_bg_api_key)}")
    logger.debug(
        f"REPLICATE_API_TOKEN configured: {bool(settings.replicate_api_token)}"
    )
    logger.debug(f"Upload directory: {settings.upload_dir}")
    logger.debug(f"Development mode: {settings.dev_mode}")

    return settings
