"""Image upload service: object write plus `images` metadata record."""

import logging
import threading
import uuid
from typing import Dict, Optional, Union

from core.bus.event_bus import EventBus
from core.interfaces.events import Event, EventType
from core.interfaces.persistence import (
    IMAGES,
    IPersistenceGateway,
    StatusUpdateError,
    StorageError,
    utc_now_iso,
)
from core.models.capture import CapturedImage, SelectedFile
from core.models.upload import AnalysisResults, AnalysisStatus, UploadRecord
from modules.camera.file_select import select_from_file

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/gif": "gif",
}


def object_path_for(image: CapturedImage) -> str:
    """Unique object path derived from the MIME type (falls back to the name)."""
    ext = _EXTENSIONS.get(image.mime_type)
    if ext is None and "." in image.file_name:
        ext = image.file_name.rsplit(".", 1)[-1].lower()
    return f"{uuid.uuid4()}.{ext or 'bin'}"


class ImageUploadService:
    """Persists captured or selected images and mirrors their analysis status.

    ``upload`` raises StorageError so callers can show it and offer a retry.
    ``update_status`` is a best-effort mirror: it never raises and records
    problems in ``last_error`` instead.
    """

    def __init__(
        self,
        gateway: IPersistenceGateway,
        bucket: str = "crop-images",
        event_bus: Optional[EventBus] = None,
    ):
        """Initialize the upload service.

        Args:
            gateway: Initialized persistence gateway
            bucket: Object storage bucket for image files
            event_bus: Event bus for publishing events (None = shared bus)
        """
        self._gateway = gateway
        self._bucket = bucket
        self._event_bus = event_bus or EventBus()
        self._records: Dict[str, UploadRecord] = {}
        self._status_lock = threading.Lock()
        self.uploading = False
        self.last_error: Optional[str] = None

    def upload(self, image: Union[CapturedImage, SelectedFile]) -> UploadRecord:
        """Store the image bytes and insert a pending `images` record.

        Args:
            image: Camera capture or user-selected file

        Returns:
            The created UploadRecord (status PENDING)

        Raises:
            StorageError: If the object write or the record insert fails
            ValueError: If a selected file is empty
        """
        if isinstance(image, SelectedFile):
            image = select_from_file(image)

        self.uploading = True
        self.last_error = None
        try:
            path = object_path_for(image)
            url = self._gateway.upload_object(self._bucket, path, image.data, image.mime_type)

            row = self._gateway.insert(IMAGES, {
                "file_name": image.file_name,
                "file_path": url,
                "file_size": image.size_bytes,
                "mime_type": image.mime_type,
                "analysis_status": AnalysisStatus.PENDING.value,
            })
            record = UploadRecord.from_row(row)

        except StorageError as e:
            self.last_error = str(e)
            logger.error(f"Upload failed: {e}")
            self._event_bus.publish(Event(
                type=EventType.STORAGE_ERROR,
                data={"error": str(e), "file_name": image.file_name},
                source="upload_service"
            ))
            raise
        finally:
            self.uploading = False

        self._records[record.id] = record
        self._event_bus.publish(Event(
            type=EventType.IMAGE_UPLOADED,
            data={"image_id": record.id, "file_path": record.file_path, "size": record.file_size},
            source="upload_service"
        ))
        logger.info(f"Uploaded {record.file_name} as {record.id} ({record.file_size} bytes)")
        return record

    def get_record(self, image_id: str) -> Optional[UploadRecord]:
        """Return the record from the local cache, falling back to the gateway."""
        record = self._records.get(image_id)
        if record is not None:
            return record

        row = self._gateway.get(IMAGES, image_id)
        if row is None:
            return None
        record = UploadRecord.from_row(row)
        self._records[record.id] = record
        return record

    def update_status(
        self,
        image_id: str,
        status: AnalysisStatus,
        results: Optional[AnalysisResults] = None,
        expected: Optional[AnalysisStatus] = None,
    ) -> bool:
        """Move an image to a new analysis status (monotonic, best effort).

        The read, check and write happen under one lock, so two callers
        racing for the same transition cannot both succeed when ``expected``
        is given.

        Args:
            image_id: Record identifier
            status: Target status
            results: Summary fields to store alongside (optional)
            expected: Refuse the update unless the current status is this one

        Returns:
            True if the remote record was updated, False otherwise
        """
        try:
            with self._status_lock:
                record = self.get_record(image_id)
                if record is None:
                    raise StatusUpdateError(f"Unknown image: {image_id}")

                current = record.analysis_status
                if expected is not None and current != expected:
                    raise StatusUpdateError(
                        f"Image {image_id} is {current.value}, expected {expected.value}"
                    )
                if not current.can_transition_to(status):
                    raise StatusUpdateError(
                        f"Illegal status transition {current.value} -> {status.value} for {image_id}"
                    )

                patch = {"analysis_status": status.value, "updated_at": utc_now_iso()}
                if results is not None:
                    patch.update(results.to_patch())

                row = self._gateway.update(IMAGES, image_id, patch)
                self._records[image_id] = UploadRecord.from_row(row)

        except StorageError as e:
            self.last_error = str(e)
            logger.warning(f"Status update failed: {e}")
            self._event_bus.publish(Event(
                type=EventType.STATUS_UPDATE_ERROR,
                data={"image_id": image_id, "status": status.value, "error": str(e)},
                source="upload_service"
            ))
            return False

        self._event_bus.publish(Event(
            type=EventType.ANALYSIS_STATUS_CHANGED,
            data={"image_id": image_id, "from": current.value, "to": status.value},
            source="upload_service"
        ))
        logger.debug(f"Image {image_id}: {current.value} -> {status.value}")
        return True
