"""FastAPI dependencies shared across enhancement endpoints."""

import httpx
from fastapi import Request

from src.config import Settings
from src.services.job_registry import JobRegistry


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_job_registry(request: Request) -> JobRegistry:
    return request.app.state.jobs
