"""OpenCV-based camera device provider."""

import asyncio
import logging
import threading
from typing import List, Optional

import cv2
import numpy as np
from PIL import Image

from core.interfaces.camera import (
    CaptureFailed,
    ConstraintRejected,
    ICameraDevice,
    IMediaStream,
    IMediaTrack,
    IVideoSurface,
    NotReady,
)
from core.models.capture import StreamConstraints

logger = logging.getLogger(__name__)


class OpenCVTrack(IMediaTrack):
    """Video track wrapping one cv2.VideoCapture handle."""

    def __init__(self, capture: cv2.VideoCapture, device_index: int):
        self._capture = capture
        self._lock = threading.Lock()
        self._stopped = False
        self.device_index = device_index

    def read(self) -> Optional[np.ndarray]:
        """Read the next BGR frame, or None if the device gave nothing."""
        with self._lock:
            if self._stopped:
                return None
            ok, frame = self._capture.read()
        return frame if ok else None

    def stop(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._capture.release()
            self._stopped = True
        logger.debug(f"Released camera device {self.device_index}")

    @property
    def stopped(self) -> bool:
        return self._stopped


class OpenCVStream(IMediaStream):
    """Stream over a single OpenCV capture device."""

    def __init__(self, capture: cv2.VideoCapture, device_index: int, facing_mode: Optional[str]):
        self._track = OpenCVTrack(capture, device_index)
        self._settings = {
            "width": int(capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            "height": int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            "facing_mode": facing_mode,
            "device_index": device_index,
        }

    @property
    def tracks(self) -> List[IMediaTrack]:
        return [self._track]

    @property
    def settings(self) -> dict:
        return self._settings

    def read(self) -> Optional[np.ndarray]:
        return self._track.read()


class OpenCVVideoSurface(IVideoSurface):
    """Surface that pulls frames from an OpenCV stream in the background.

    Metadata is loaded once the first frame reveals the native size; playback
    has begun once a second frame arrives.
    """

    def __init__(self):
        self._stream: Optional[OpenCVStream] = None
        self._task: Optional[asyncio.Task] = None
        self._latest: Optional[np.ndarray] = None
        self._width = 0
        self._height = 0
        self._metadata_loaded = False
        self._playing = False
        self._failed: Optional[str] = None
        self._changed: Optional[asyncio.Event] = None

    def attach(self, stream: IMediaStream) -> None:
        self.detach()
        self._stream = stream
        self._failed = None
        self._changed = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._pump(stream))

    async def _pump(self, stream: OpenCVStream) -> None:
        frames = 0
        while self._stream is stream:
            frame = await asyncio.to_thread(stream.read)
            if self._stream is not stream:
                break
            if frame is None:
                if frames == 0:
                    self._failed = "Camera produced no frames"
                    self._changed.set()
                    return
                await asyncio.sleep(0.01)
                continue

            frames += 1
            self._latest = frame
            if not self._metadata_loaded:
                self._height, self._width = frame.shape[:2]
                self._metadata_loaded = True
                self._changed.set()
            elif not self._playing:
                self._playing = True
                self._changed.set()

    def detach(self) -> None:
        if self._stream is None:
            return
        self._stream = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._latest = None
        self._width = self._height = 0
        self._metadata_loaded = False
        self._playing = False
        if self._changed is not None:
            self._changed.set()

    async def wait_until_ready(self) -> None:
        while True:
            if self._stream is None:
                raise NotReady("Surface detached")
            if self._failed:
                raise NotReady(self._failed)
            if self._metadata_loaded and self._playing:
                return
            self._changed.clear()
            await self._changed.wait()

    @property
    def metadata_loaded(self) -> bool:
        return self._metadata_loaded

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def video_width(self) -> int:
        return self._width

    @property
    def video_height(self) -> int:
        return self._height

    def grab_frame(self) -> Image.Image:
        frame = self._latest
        if self._stream is None or frame is None:
            raise CaptureFailed("Surface is not renderable")
        try:
            rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        except cv2.error as e:
            raise CaptureFailed(f"Frame conversion failed: {e}")
        return Image.fromarray(rgb)


class OpenCVCameraDevice(ICameraDevice):
    """Camera provider using cv2.VideoCapture.

    OpenCV cannot tell which way a camera faces, so the rear camera is the
    device configured as ``rear_device_index``; without one, rear-facing
    constraints are always rejected. A resolution constraint is accepted only
    when the device reports exactly the requested size after setting it.
    """

    def __init__(self):
        self._config = {}
        self._initialized = False
        self._device_indices: List[int] = [0]
        self._rear_index: Optional[int] = None

    def initialize(self, config: dict) -> bool:
        """Initialize the provider.

        Args:
            config: Dictionary containing provider configuration:
                - device_indices: list[int], devices to try (default [0])
                - rear_device_index: int, device that faces the scene

        Returns:
            True if initialization successful, False otherwise
        """
        try:
            self._config = config
            self._device_indices = [int(i) for i in config.get("device_indices", [0])]
            rear = config.get("rear_device_index")
            self._rear_index = int(rear) if rear is not None else None
            self._initialized = True
            logger.info(
                f"OpenCV camera provider initialized (devices {self._device_indices}, "
                f"rear {self._rear_index})"
            )
            return True
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to initialize OpenCV provider: {e}")
            return False

    async def open_stream(self, constraints: StreamConstraints) -> IMediaStream:
        if not self._initialized:
            raise ConstraintRejected("Provider not initialized", constraints)

        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self._open_blocking, constraints)
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            # The device may still answer after we gave up on it
            future.add_done_callback(self._release_late)
            raise

    @staticmethod
    def _release_late(future: asyncio.Future) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        future.result().stop_all()
        logger.info("Released camera stream that opened after its request was abandoned")

    def _candidates(self, constraints: StreamConstraints) -> List[int]:
        if constraints.facing_mode == "environment":
            if self._rear_index is None:
                raise ConstraintRejected("No rear-facing camera configured", constraints)
            return [self._rear_index]
        if constraints.facing_mode is not None:
            raise ConstraintRejected(f"Unsupported facing mode: {constraints.facing_mode}", constraints)

        candidates = list(self._device_indices)
        if self._rear_index is not None and self._rear_index not in candidates:
            candidates.append(self._rear_index)
        return candidates

    def _open_blocking(self, constraints: StreamConstraints) -> OpenCVStream:
        reasons = []
        for index in self._candidates(constraints):
            capture = cv2.VideoCapture(index)
            if not capture.isOpened():
                capture.release()
                reasons.append(f"device {index} unavailable")
                continue

            if constraints.has_resolution:
                capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width)
                capture.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height)
                actual = (
                    int(capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
                    int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
                )
                if actual != (constraints.width, constraints.height):
                    capture.release()
                    reasons.append(f"device {index} gives {actual[0]}x{actual[1]}")
                    continue

            facing = "environment" if index == self._rear_index else None
            logger.debug(f"Opened camera device {index}")
            return OpenCVStream(capture, index, facing)

        raise ConstraintRejected("; ".join(reasons) or "No camera devices", constraints)

    def create_surface(self) -> IVideoSurface:
        return OpenCVVideoSurface()

    def cleanup(self) -> None:
        self._initialized = False

    @property
    def name(self) -> str:
        return "opencv"
