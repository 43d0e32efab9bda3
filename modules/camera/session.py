"""Camera capture session state machine."""

import asyncio
import logging
import uuid
from typing import List, Optional
from PIL import Image

from core.bus.event_bus import EventBus
from core.interfaces.camera import (
    CaptureFailed,
    DeviceUnavailable,
    ICameraDevice,
    IMediaStream,
    IVideoSurface,
    NotReady,
)
from core.interfaces.events import Event, EventType
from core.models.capture import (
    CapturedImage,
    CaptureOutcome,
    CaptureResult,
    CaptureSource,
    CaptureStatus,
)
from core.models.config import CameraConfig
from modules.camera.encoding import encode_jpeg
from modules.camera.ladder import AcquisitionAttempt, acquire, build_ladder

logger = logging.getLogger(__name__)


class CaptureSession:
    """One attempt to acquire a camera and take a single still image.

    States: IDLE -> REQUESTING -> {LIVE | FAILED} -> CAPTURING -> STOPPED.
    STOPPED and FAILED are terminal; create a new session to retry.

    The session exclusively owns at most one stream handle and releases it
    on every exit path: explicit stop, successful or failed capture, and
    leaving an ``async with`` block. Device and capture conditions never
    escape as exceptions; they surface as ``status``/``last_error`` and as
    ``CaptureResult`` values.

    Example:
        async with CaptureSession(device) as session:
            if await session.start_capture():
                result = session.capture()
    """

    def __init__(
        self,
        device: ICameraDevice,
        config: Optional[CameraConfig] = None,
        event_bus: Optional[EventBus] = None,
        surface: Optional[IVideoSurface] = None,
        ladder: Optional[List[AcquisitionAttempt]] = None,
    ):
        """Initialize the capture session.

        Args:
            device: Initialized camera device provider
            config: Camera configuration (None = defaults)
            event_bus: Event bus for publishing events (None = shared bus)
            surface: Video surface (None = created by the device)
            ladder: Acquisition ladder (None = standard three rungs)
        """
        self._device = device
        self._config = config or CameraConfig()
        self._event_bus = event_bus or EventBus()
        self._surface = surface or device.create_surface()
        self._ladder = ladder or build_ladder(
            self._config.preferred_width,
            self._config.preferred_height,
        )

        self.session_id = str(uuid.uuid4())
        self._status = CaptureStatus.IDLE
        self._stream: Optional[IMediaStream] = None
        self._ready = False
        self._last_error: Optional[str] = None
        self._secured: Optional[AcquisitionAttempt] = None

        logger.debug(f"CaptureSession created: {self.session_id}")

    async def __aenter__(self) -> "CaptureSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop_capture()

    @property
    def status(self) -> CaptureStatus:
        return self._status

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def active_stream(self) -> Optional[IMediaStream]:
        return self._stream

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def secured(self) -> Optional[AcquisitionAttempt]:
        """The ladder rung that was accepted, if any."""
        return self._secured

    @property
    def timeout(self) -> Optional[float]:
        timeout = self._config.acquisition_timeout_seconds
        return timeout if timeout and timeout > 0 else None

    async def start_capture(self) -> bool:
        """Acquire a camera stream and wait until the surface is playable.

        Returns:
            True when the session reached LIVE, False otherwise. On failure
            ``status`` is FAILED with ``last_error`` set, or STOPPED when a
            stop was requested while acquisition was in flight.
        """
        if self._status != CaptureStatus.IDLE:
            logger.warning(f"start_capture ignored in state {self._status.value}")
            return False

        # At most one handle: drop anything still held before requesting
        self._release_stream()
        self._set_status(CaptureStatus.REQUESTING)
        self._publish(EventType.CAMERA_REQUESTED, {})

        try:
            result = await acquire(
                self._device, self._ladder, self.timeout, should_continue=self._requesting
            )
        except DeviceUnavailable as e:
            if self._status == CaptureStatus.REQUESTING:
                self._fail(str(e))
            return False

        if self._status != CaptureStatus.REQUESTING:
            # Stopped while the device request was in flight
            if result.stream is not None:
                result.stream.stop_all()
                logger.info("Released camera stream that arrived after stop")
            return False

        self._stream = result.stream
        self._secured = result.attempt
        self._surface.attach(self._stream)

        try:
            await asyncio.wait_for(self._surface.wait_until_ready(), self.timeout)
        except (asyncio.TimeoutError, NotReady) as e:
            if self._status != CaptureStatus.REQUESTING:
                return False
            self._release_stream()
            reason = str(e) or f"surface not playable after {self.timeout}s"
            self._fail(f"Video surface never became ready: {reason}")
            return False

        if self._status != CaptureStatus.REQUESTING:
            return False

        self._ready = True
        self._set_status(CaptureStatus.LIVE)
        self._publish(EventType.CAMERA_READY, {
            "tier": self._secured.tier,
            "width": self._surface.video_width,
            "height": self._surface.video_height,
        })
        logger.info(
            f"Camera live at {self._surface.video_width}x{self._surface.video_height} "
            f"(tier {self._secured.tier})"
        )
        return True

    def capture(self) -> CaptureResult:
        """Copy one frame, encode it as JPEG and tear the session down.

        Returns:
            CaptureResult with outcome OK and the image, NOT_READY when the
            session is not live (nothing changes), or CAPTURE_FAILED when the
            frame could not be produced (the session is still torn down)
        """
        if self._status != CaptureStatus.LIVE or not self._ready:
            logger.debug(f"Capture refused: session is {self._status.value}")
            return CaptureResult(
                outcome=CaptureOutcome.NOT_READY,
                error=f"Camera not ready (status: {self._status.value})",
            )

        self._set_status(CaptureStatus.CAPTURING)
        error: Optional[str] = None
        image: Optional[CapturedImage] = None

        try:
            image = self._grab_still()
        except CaptureFailed as e:
            error = str(e)
        except Exception as e:
            logger.error(f"Unexpected capture error: {e}", exc_info=True)
            error = f"{type(e).__name__}: {e}"
        finally:
            self._release_stream()

        if image is None:
            self._fail(f"Capture failed: {error}")
            self._publish(EventType.CAPTURE_FAILED, {"error": error})
            return CaptureResult(outcome=CaptureOutcome.CAPTURE_FAILED, error=error)

        self._set_status(CaptureStatus.STOPPED)
        self._publish(EventType.IMAGE_CAPTURED, image.to_dict())
        logger.info(f"Captured {image.width}x{image.height} image ({image.size_bytes} bytes)")
        return CaptureResult(outcome=CaptureOutcome.OK, image=image)

    def stop_capture(self) -> None:
        """Release the camera and end the session.

        Idempotent: with nothing held and nothing in flight this has no
        effect. Stopping while acquisition is in flight marks the session
        STOPPED so that a stream arriving later is released at once.
        """
        held = self._stream is not None
        self._release_stream()

        if self._status in (CaptureStatus.REQUESTING, CaptureStatus.LIVE, CaptureStatus.CAPTURING):
            self._set_status(CaptureStatus.STOPPED)
            self._publish(EventType.CAMERA_STOPPED, {"released_stream": held})
            logger.info("Camera session stopped")

    def _grab_still(self) -> CapturedImage:
        """Copy the current frame at the surface's native resolution."""
        width = self._surface.video_width
        height = self._surface.video_height
        if width <= 0 or height <= 0:
            raise CaptureFailed(f"Surface reports no dimensions ({width}x{height})")

        frame = self._surface.grab_frame()
        if frame.size != (width, height):
            canvas = Image.new("RGB", (width, height))
            canvas.paste(frame, (0, 0))
            frame = canvas

        data = encode_jpeg(frame, self._config.jpeg_quality)

        settings = dict(self._stream.settings) if self._stream else {}
        return CapturedImage(
            data=data,
            width=width,
            height=height,
            source=CaptureSource.CAMERA,
            file_name="camera-capture.jpg",
            mime_type="image/jpeg",
            metadata={
                "session_id": self.session_id,
                "tier": self._secured.tier if self._secured else None,
                "device": self._device.name,
                "settings": settings,
                "quality": self._config.jpeg_quality,
            },
        )

    def _release_stream(self) -> None:
        """Stop every track, detach the surface and clear readiness."""
        self._ready = False
        stream, self._stream = self._stream, None

        if stream is None:
            return

        try:
            self._surface.detach()
        finally:
            stream.stop_all()
            logger.debug("Camera stream released")

    def _requesting(self) -> bool:
        return self._status == CaptureStatus.REQUESTING

    def _fail(self, message: str) -> None:
        self._ready = False
        self._last_error = message
        self._set_status(CaptureStatus.FAILED)
        self._publish(EventType.CAMERA_FAILED, {"error": message})
        logger.warning(message)

    def _set_status(self, status: CaptureStatus) -> None:
        logger.debug(f"Session {self.session_id}: {self._status.value} -> {status.value}")
        self._status = status

    def _publish(self, event_type: EventType, data: dict) -> None:
        payload = {"session_id": self.session_id, "status": self._status.value}
        payload.update(data)
        self._event_bus.publish(Event(type=event_type, data=payload, source="capture_session"))

    def to_dict(self) -> dict:
        """Session state for status endpoints."""
        return {
            "session_id": self.session_id,
            "status": self._status.value,
            "ready": self._ready,
            "last_error": self._last_error,
            "tier": self._secured.tier if self._secured else None,
            "width": self._surface.video_width if self._ready else None,
            "height": self._surface.video_height if self._ready else None,
        }
