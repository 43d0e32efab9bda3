"""Owner of the current capture session for a view or process."""

import asyncio
import logging
from typing import Optional

from core.bus.event_bus import EventBus
from core.interfaces.camera import ICameraDevice
from core.models.capture import CaptureOutcome, CaptureResult
from core.models.config import CameraConfig
from modules.camera.session import CaptureSession

logger = logging.getLogger(__name__)


class CameraController:
    """Holds at most one CaptureSession at a time.

    The physical camera is a singleton, so starting a new session first
    stops the previous one, and closing the controller (the owning view
    going away) always stops whatever is current.
    """

    def __init__(
        self,
        device: ICameraDevice,
        config: Optional[CameraConfig] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self._device = device
        self._config = config or CameraConfig()
        self._event_bus = event_bus or EventBus()
        self._session: Optional[CaptureSession] = None
        self._lock = asyncio.Lock()

    @property
    def session(self) -> Optional[CaptureSession]:
        return self._session

    async def start(self) -> CaptureSession:
        """Start a fresh session, stopping any previous one first.

        Returns:
            The new session; check ``status``/``last_error`` for the outcome
        """
        async with self._lock:
            if self._session is not None:
                self._session.stop_capture()

            session = CaptureSession(self._device, self._config, self._event_bus)
            self._session = session

        await session.start_capture()
        return session

    def capture(self) -> CaptureResult:
        """Capture from the current session (NOT_READY when there is none)."""
        if self._session is None:
            return CaptureResult(outcome=CaptureOutcome.NOT_READY, error="No camera session")
        return self._session.capture()

    def stop(self) -> None:
        """Stop the current session, if any."""
        if self._session is not None:
            self._session.stop_capture()

    def status(self) -> dict:
        if self._session is None:
            return {"session_id": None, "status": "idle", "ready": False, "last_error": None}
        return self._session.to_dict()

    def close(self) -> None:
        """Release the camera and the device provider."""
        self.stop()
        self._device.cleanup()
        logger.debug("Camera controller closed")
