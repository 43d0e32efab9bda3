"""Event definitions for the CropAI event bus."""

from enum import Enum
from dataclasses import dataclass
from typing import Any, Dict
import time


class EventType(Enum):
    """Enumeration of all event types in the system."""

    # Camera events
    CAMERA_REQUESTED = "camera.requested"
    CAMERA_READY = "camera.ready"
    CAMERA_FAILED = "camera.failed"
    CAMERA_STOPPED = "camera.stopped"

    # Capture events
    IMAGE_CAPTURED = "image.captured"
    CAPTURE_FAILED = "capture.failed"

    # Upload / analysis events
    IMAGE_UPLOADED = "image.uploaded"
    ANALYSIS_STATUS_CHANGED = "analysis.status_changed"
    ANALYSIS_COMPLETED = "analysis.completed"

    # Persistence events
    RECORD_CHANGED = "record.changed"
    STORAGE_ERROR = "storage.error"
    STATUS_UPDATE_ERROR = "status_update.error"

    # Chat events
    CHAT_MESSAGE = "chat.message"


@dataclass
class Event:
    """Represents an event in the system.

    Attributes:
        type: The type of event
        data: Dictionary containing event-specific data
        timestamp: Unix timestamp when event was created
        source: String identifying the source module/component
    """
    type: EventType
    data: Dict[str, Any]
    timestamp: float = None
    source: str = "unknown"

    def __post_init__(self):
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = time.time()
