"""Camera capture API endpoints."""

import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel

from core.interfaces.persistence import StorageError
from core.models.capture import CaptureOutcome
from modules.web.dependencies import get_camera, get_pipeline

logger = logging.getLogger(__name__)

router = APIRouter()


class CameraStatusResponse(BaseModel):
    """Response model for camera session state."""
    session_id: Optional[str] = None
    status: str
    ready: bool
    last_error: Optional[str] = None
    tier: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    fallback: Optional[str] = None


def _status_response(status: dict) -> CameraStatusResponse:
    response = CameraStatusResponse(**status)
    if response.status == "failed":
        # Manual file selection is always available when the camera is not
        response.fallback = "file_select"
    return response


@router.post("/start", response_model=CameraStatusResponse)
async def start_camera(request: Request):
    """Start a new capture session (stopping any previous one)."""
    camera = get_camera(request)
    session = await camera.start()
    return _status_response(session.to_dict())


@router.get("/status", response_model=CameraStatusResponse)
async def camera_status(request: Request):
    """Get the current session state."""
    return _status_response(get_camera(request).status())


@router.post("/stop", response_model=CameraStatusResponse)
async def stop_camera(request: Request):
    """Stop the current session and release the camera."""
    camera = get_camera(request)
    camera.stop()
    return _status_response(camera.status())


@router.post("/capture")
async def capture_image(request: Request, analyze: bool = True):
    """Take the single still of the current session.

    Args:
        analyze: Upload and analyze the still (default) instead of
                 returning the JPEG bytes

    Raises:
        HTTPException: 409 when the camera is not ready, 500 when the
                       capture failed, 502 when the upload failed
    """
    result = get_camera(request).capture()

    if result.outcome == CaptureOutcome.NOT_READY:
        raise HTTPException(status_code=409, detail=result.error)
    if not result.ok:
        raise HTTPException(status_code=500, detail=result.error)

    image = result.image
    if not analyze:
        return Response(
            content=image.data,
            media_type=image.mime_type,
            headers={"X-Image-Width": str(image.width), "X-Image-Height": str(image.height)},
        )

    try:
        report = await get_pipeline(request).analyze(image)
    except StorageError as e:
        logger.error(f"Failed to store captured image: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return report.to_dict()
