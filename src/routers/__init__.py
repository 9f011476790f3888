"""Router package exposing all API routers."""

from fastapi import APIRouter

from .process.router import router as process_router
from .uploads.router import router as uploads_router

router = APIRouter()
router.include_router(process_router)
router.include_router(uploads_router)

__all__ = ["router", "process_router", "uploads_router"]
