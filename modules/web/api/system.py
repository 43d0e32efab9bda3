"""System status API endpoints."""

import logging
import time
from fastapi import APIRouter, Request
from pydantic import BaseModel

from cropai import __version__
from modules.web.dependencies import get_app_state

logger = logging.getLogger(__name__)

router = APIRouter()

_started_at = time.monotonic()


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    version: str


class StatusResponse(BaseModel):
    """Response model for system status."""
    status: str
    uptime_seconds: float
    persistence: str
    camera: str
    camera_status: str
    conversations: int


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


@router.get("/status", response_model=StatusResponse)
async def system_status(request: Request):
    """Get system status."""
    state = get_app_state(request)
    orchestrator = state.orchestrator
    return StatusResponse(
        status="running",
        uptime_seconds=round(time.monotonic() - _started_at, 3),
        persistence=orchestrator.gateway.name,
        camera=orchestrator.settings.camera.provider,
        camera_status=orchestrator.camera.status()["status"],
        conversations=len(state.conversations),
    )
