"""Image upload and analysis API endpoints."""

import asyncio
import logging
from typing import Optional
from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel

from core.interfaces.persistence import StorageError
from core.models.capture import SelectedFile
from modules.analysis.pipeline import AnalysisConflict
from modules.web.dependencies import get_pipeline, get_uploads

logger = logging.getLogger(__name__)

router = APIRouter()


class UploadRecordResponse(BaseModel):
    """Response model for an `images` record."""
    id: str
    file_name: str
    file_path: str
    file_size: int
    mime_type: str
    analysis_status: str
    crop_type: Optional[str] = None
    detected_disease: Optional[str] = None
    confidence_score: Optional[float] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


async def _read_selection(file: UploadFile) -> SelectedFile:
    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Selected file is empty")
    return SelectedFile(
        name=file.filename or "upload",
        content=content,
        mime_type=file.content_type or "application/octet-stream",
    )


@router.post("", response_model=UploadRecordResponse, status_code=201)
async def upload_image(request: Request, file: UploadFile = File(...)):
    """Upload a selected image without analyzing it.

    Raises:
        HTTPException: 400 for empty files, 502 when storage fails
    """
    selected = await _read_selection(file)
    try:
        record = await asyncio.to_thread(get_uploads(request).upload, selected)
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return UploadRecordResponse(**record.to_dict())


@router.post("/analyze")
async def upload_and_analyze(request: Request, file: UploadFile = File(...)):
    """Upload a selected image and run the analysis on it."""
    selected = await _read_selection(file)
    try:
        report = await get_pipeline(request).analyze(selected)
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return report.to_dict()


@router.get("/{image_id}", response_model=UploadRecordResponse)
async def get_image(image_id: str, request: Request):
    """Get an image record."""
    try:
        record = await asyncio.to_thread(get_uploads(request).get_record, image_id)
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))

    if record is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return UploadRecordResponse(**record.to_dict())


@router.post("/{image_id}/analyze")
async def analyze_image(image_id: str, request: Request):
    """Analyze an image that was uploaded earlier.

    Raises:
        HTTPException: 404 for unknown images, 409 when the image is already
            being analyzed or finished, 502 when storage fails
    """
    uploads = get_uploads(request)
    try:
        record = await asyncio.to_thread(uploads.get_record, image_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Image not found")
        if record.analysis_status.is_final:
            raise HTTPException(
                status_code=409,
                detail=f"Image already {record.analysis_status.value}",
            )
        report = await get_pipeline(request).analyze_record(record)
    except AnalysisConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return report.to_dict()
