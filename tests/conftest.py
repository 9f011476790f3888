import os

# Keep test runs from writing a log file into the working tree
os.environ.setdefault("LOG_FILE", "")

import struct
import zlib
from pathlib import Path
from typing import AsyncGenerator, List

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from src.config import Settings
from src.main import create_app

REMOVE_BG_URL = "https://api.remove.bg/v1.0/removebg"
PREDICTIONS_URL = "https://api.replicate.com/v1/predictions"
POLL_URL = "https://api.replicate.com/v1/predictions/abc123"
OUTPUT_URL = "https://example/out.png"


def make_png(width: int = 10, height: int = 10) -> bytes:
    """Build a valid RGBA PNG with fully transparent pixels."""

    def chunk(tag: bytes, data: bytes) -> bytes:
        crc = zlib.crc32(tag + data) & 0xFFFFFFFF
        return struct.pack(">I", len(data)) + tag + data + struct.pack(">I", crc)

    raw = b"".join(b"\x00" + b"\x00\x00\x00\x00" * width for _ in range(height))
    header = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(raw))
        + chunk(b"IEND", b"")
    )


def prediction(status: str, **extra) -> dict:
    return {"id": "abc123", "status": status, "urls": {"get": POLL_URL}, **extra}


class FakeCollaborators:
    """Stands in for remove.bg and Replicate behind an httpx.MockTransport."""

    def __init__(self, png: bytes):
        self.png = png
        self.remove_bg_response = httpx.Response(
            200, content=png, headers={"Content-Type": "image/png"}
        )
        self.submit_response = httpx.Response(201, json=prediction("starting"))
        self.poll_bodies: List[dict] = [prediction("succeeded", output=OUTPUT_URL)]
        self.remove_bg_error: Exception = None
        self.requests: List[httpx.Request] = []
        self.poll_count = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if url == REMOVE_BG_URL:
            if self.remove_bg_error is not None:
                raise self.remove_bg_error
            return self.remove_bg_response

        if request.method == "POST" and url == PREDICTIONS_URL:
            return self.submit_response

        if request.method == "GET" and url == POLL_URL:
            body = self.poll_bodies[min(self.poll_count, len(self.poll_bodies) - 1)]
            self.poll_count += 1
            return httpx.Response(200, json=body)

        return httpx.Response(404, json={"detail": "not found"})

    def calls_to(self, host: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    @property
    def remove_bg_calls(self) -> List[httpx.Request]:
        return self.calls_to("api.remove.bg")

    @property
    def replicate_calls(self) -> List[httpx.Request]:
        return self.calls_to("api.replicate.com")


def stored_files(settings: Settings) -> List[Path]:
    upload_dir = Path(settings.upload_dir)
    if not upload_dir.exists():
        return []
    return sorted(upload_dir.iterdir())


class SleepRecorder:
    """Replacement for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def png() -> bytes:
    return make_png()


@pytest.fixture
def collaborators(png) -> FakeCollaborators:
    return FakeCollaborators(png)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        remove_bg_api_key="test-remove-bg-key",
        replicate_api_token="test-replicate-token",
        upload_dir=str(tmp_path / "uploads"),
        poll_interval_seconds=0,
    )


@pytest.fixture
async def http_client(collaborators) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(collaborators.handler)
    ) as client:
        yield client


@pytest.fixture
async def client(settings, http_client) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(settings=settings, http_client=http_client)
    async with app.router.lifespan_context(app):
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
