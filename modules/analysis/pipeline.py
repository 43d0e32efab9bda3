"""Upload-and-analyze flow driven by the image input view."""

import asyncio
import logging
from typing import Optional, Union

from core.bus.event_bus import EventBus
from core.interfaces.events import Event, EventType
from core.interfaces.persistence import (
    ANALYSIS_RESULTS,
    IPersistenceGateway,
    StatusUpdateError,
    StorageError,
)
from core.models.capture import CapturedImage, SelectedFile
from core.models.upload import AnalysisReport, AnalysisStatus, UploadRecord
from modules.analysis.mock_analyzer import MockAnalyzer
from modules.upload.service import ImageUploadService

logger = logging.getLogger(__name__)


class AnalysisConflict(StatusUpdateError):
    """The image is already being analyzed or has been analyzed."""
    pass


class AnalysisPipeline:
    """Runs one image through upload, analysis and status mirroring.

    Flow: upload (PENDING) -> PROCESSING -> analyzer -> analysis_results row
    -> COMPLETED. A failure after the upload marks the record FAILED.
    """

    def __init__(
        self,
        gateway: IPersistenceGateway,
        upload_service: ImageUploadService,
        analyzer: Optional[MockAnalyzer] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self._gateway = gateway
        self._uploads = upload_service
        self._analyzer = analyzer or MockAnalyzer()
        self._event_bus = event_bus or EventBus()

    async def analyze(self, image: Union[CapturedImage, SelectedFile]) -> AnalysisReport:
        """Upload an image and analyze it.

        Raises:
            StorageError: If the upload fails (nothing else is attempted)
        """
        record = await asyncio.to_thread(self._uploads.upload, image)
        data = image.data if isinstance(image, CapturedImage) else image.content
        return await self.analyze_record(record, image_bytes=data)

    async def analyze_record(self, record: UploadRecord, image_bytes: Optional[bytes] = None) -> AnalysisReport:
        """Analyze an already uploaded image.

        Raises:
            AnalysisConflict: If the image is no longer pending
            StatusUpdateError: If the PROCESSING status could not be written
            StorageError: If the analysis result cannot be stored
        """
        claimed = await asyncio.to_thread(
            self._uploads.update_status,
            record.id,
            AnalysisStatus.PROCESSING,
            expected=AnalysisStatus.PENDING,
        )
        if not claimed:
            current = self._uploads.get_record(record.id)
            if current is not None and current.analysis_status != AnalysisStatus.PENDING:
                raise AnalysisConflict(f"Image {record.id} is already {current.analysis_status.value}")
            raise StatusUpdateError(f"Could not start analysis of {record.id}: {self._uploads.last_error}")

        try:
            result = await self._analyzer.analyze(record)
            row = await asyncio.to_thread(self._gateway.insert, ANALYSIS_RESULTS, result.to_record())
            result.id = row.get("id")
            result.created_at = row.get("created_at")
        except (StorageError, asyncio.CancelledError):
            await asyncio.to_thread(self._uploads.update_status, record.id, AnalysisStatus.FAILED)
            raise

        await asyncio.to_thread(
            self._uploads.update_status, record.id, AnalysisStatus.COMPLETED, result.summary()
        )

        final = self._uploads.get_record(record.id) or record
        report = AnalysisReport(record=final, result=result, image=image_bytes)

        self._event_bus.publish(Event(
            type=EventType.ANALYSIS_COMPLETED,
            data={
                "image_id": record.id,
                "crop_type": result.crop_type,
                "disease": result.disease_name,
                "confidence": result.disease_confidence,
            },
            source="analysis_pipeline"
        ))
        logger.info(f"Analysis completed for {record.id}: {result.disease_name}")
        return report
