"""VoxTask API Routes Package

This module aggregates all route handlers into a single router
that can be included in the main FastAPI application.
"""

from fastapi import APIRouter

from .tasks import router as tasks_router
from .voice import router as voice_router


# Create main API router
api_router = APIRouter(prefix="/api")

# Include all sub-routers
api_router.include_router(voice_router, prefix="/voice", tags=["voice"])
api_router.include_router(tasks_router, prefix="/tasks", tags=["tasks"])

__all__ = ["api_router"]
