"""Data models for camera capture sessions and captured images."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional
import time
import uuid


class CaptureStatus(Enum):
    """Lifecycle states of a capture session.

    STOPPED and FAILED are terminal: a new session must be created to retry.
    """
    IDLE = "idle"
    REQUESTING = "requesting"
    LIVE = "live"
    CAPTURING = "capturing"
    STOPPED = "stopped"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CaptureStatus.STOPPED, CaptureStatus.FAILED)


class CaptureSource(Enum):
    """Where a captured image came from."""
    CAMERA = "camera"
    FILE_SELECT = "file_select"


class CaptureOutcome(Enum):
    """Result kinds of a capture attempt."""
    OK = "ok"
    NOT_READY = "not_ready"
    CAPTURE_FAILED = "capture_failed"


@dataclass(frozen=True)
class StreamConstraints:
    """Constraint descriptor for one device-acquisition attempt.

    Attributes:
        facing_mode: Required facing mode ("environment", "user") or None
        width: Required width in pixels or None for any
        height: Required height in pixels or None for any
        label: Short name used in logs
    """
    facing_mode: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    label: str = "any"

    @property
    def has_resolution(self) -> bool:
        return self.width is not None and self.height is not None

    def describe(self) -> str:
        parts = [self.label]
        if self.facing_mode:
            parts.append(f"facing={self.facing_mode}")
        if self.has_resolution:
            parts.append(f"{self.width}x{self.height}")
        return " ".join(parts)


@dataclass
class CapturedImage:
    """An encoded still image ready to be uploaded.

    Attributes:
        data: Encoded image bytes (JPEG for camera captures)
        width: Image width in pixels (0 if unknown)
        height: Image height in pixels (0 if unknown)
        source: CAMERA or FILE_SELECT
        file_name: File name used when persisting
        mime_type: MIME type of data
        timestamp: Unix timestamp of capture/selection
        metadata: Additional metadata (device settings, quality, ...)
    """
    data: bytes
    width: int
    height: int
    source: CaptureSource
    file_name: str = "camera-capture.jpg"
    mime_type: str = "image/jpeg"
    timestamp: float = field(default_factory=time.time)
    image_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (without the raw bytes)."""
        return {
            "image_id": self.image_id,
            "width": self.width,
            "height": self.height,
            "source": self.source.value,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
            "timestamp": self.timestamp,
            "metadata": self.metadata,
        }


@dataclass
class SelectedFile:
    """A file chosen by the user instead of a camera capture."""
    name: str
    content: bytes
    mime_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class CaptureResult:
    """Outcome of a capture() call.

    Device and capture conditions never escape the session as exceptions;
    they are reported through this object instead.
    """
    outcome: CaptureOutcome
    image: Optional[CapturedImage] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == CaptureOutcome.OK
