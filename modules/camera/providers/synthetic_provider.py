"""Synthetic camera device that renders frames with Pillow.

Useful for demos on machines without a camera and as the device double in
tests: it records every constraint set it was asked for, can be told to
reject rungs, delay or hang, and can produce an unrenderable surface.
"""

import asyncio
import logging
from typing import List, Optional
from PIL import Image, ImageDraw

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


class SyntheticTrack(IMediaTrack):
    """Video track of a synthetic stream."""

    def __init__(self, label: str):
        self.label = label
        self._stopped = False
        self.stop_calls = 0

    def stop(self) -> None:
        self.stop_calls += 1
        self._stopped = True

    @property
    def stopped(self) -> bool:
        return self._stopped


class SyntheticStream(IMediaStream):
    """Stream whose frames are drawn on demand."""

    def __init__(self, width: int, height: int, facing_mode: str, frame_number: int = 0):
        self._width = width
        self._height = height
        self._facing_mode = facing_mode
        self._tracks = [SyntheticTrack(f"synthetic-{facing_mode}")]
        self._frame_number = frame_number

    @property
    def tracks(self) -> List[IMediaTrack]:
        return self._tracks

    @property
    def settings(self) -> dict:
        return {
            "width": self._width,
            "height": self._height,
            "facing_mode": self._facing_mode,
        }

    def render(self) -> Image.Image:
        """Draw a leaf-like test frame at native resolution."""
        self._frame_number += 1
        image = Image.new("RGB", (self._width, self._height), (34, 85, 34))
        draw = ImageDraw.Draw(image)
        w, h = self._width, self._height
        draw.ellipse((w // 6, h // 5, 5 * w // 6, 4 * h // 5), fill=(96, 160, 64))
        draw.line((w // 6, h // 2, 5 * w // 6, h // 2), fill=(60, 110, 40), width=max(1, h // 60))
        # Blight spots
        for i in range(3):
            cx = w // 3 + i * w // 8
            cy = h // 2 - h // 10 + (i % 2) * h // 5
            r = max(2, min(w, h) // 30)
            draw.ellipse((cx - r, cy - r, cx + r, cy + r), fill=(120, 80, 30))
        return image


class SyntheticVideoSurface(IVideoSurface):
    """Surface that reports metadata and playback after configurable delays."""

    def __init__(
        self,
        metadata_delay: float = 0.0,
        play_delay: float = 0.0,
        never_ready: bool = False,
        unrenderable: bool = False,
    ):
        self._metadata_delay = metadata_delay
        self._play_delay = play_delay
        self._never_ready = never_ready
        self._unrenderable = unrenderable

        self._stream: Optional[SyntheticStream] = None
        self._metadata_loaded = False
        self._playing = False
        self._task: Optional[asyncio.Task] = None
        self._changed: Optional[asyncio.Event] = None
        self.attach_count = 0
        self.detach_count = 0

    def attach(self, stream: IMediaStream) -> None:
        self.detach()
        self._stream = stream
        self.attach_count += 1
        self._changed = asyncio.Event()
        if not self._never_ready:
            self._task = asyncio.get_running_loop().create_task(self._play())

    async def _play(self) -> None:
        await asyncio.sleep(self._metadata_delay)
        self._metadata_loaded = True
        self._changed.set()
        await asyncio.sleep(self._play_delay)
        self._playing = True
        self._changed.set()

    def detach(self) -> None:
        if self._stream is None:
            return
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._stream = None
        self._metadata_loaded = False
        self._playing = False
        self.detach_count += 1
        if self._changed is not None:
            self._changed.set()

    async def wait_until_ready(self) -> None:
        while True:
            if self._stream is None:
                raise NotReady("Surface detached")
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
        if self._stream is None or not self._metadata_loaded:
            return 0
        return self._stream.settings["width"]

    @property
    def video_height(self) -> int:
        if self._stream is None or not self._metadata_loaded:
            return 0
        return self._stream.settings["height"]

    def grab_frame(self) -> Image.Image:
        if self._stream is None or self._unrenderable:
            raise CaptureFailed("Surface is not renderable")
        return self._stream.render()


class SyntheticCameraDevice(ICameraDevice):
    """Camera device provider producing generated frames.

    Configuration:
        - width, height: native resolution of the fake camera (640x480)
        - facing_mode: "environment" or "user" (default "environment")
        - reject_tiers: constraint labels to reject regardless of fit
        - open_delay: seconds each open_stream call takes
        - hang: never answer open_stream (simulates an unanswered prompt)
        - metadata_delay, play_delay, never_ready, unrenderable: surface knobs
    """

    def __init__(self):
        self._config = {}
        self._initialized = False
        self.requests: List[StreamConstraints] = []
        self.streams: List[SyntheticStream] = []

    def initialize(self, config: dict) -> bool:
        self._config = dict(config or {})
        self._initialized = True
        logger.info(
            f"Synthetic camera initialized "
            f"({self.width}x{self.height}, facing {self.facing_mode})"
        )
        return True

    @property
    def width(self) -> int:
        return int(self._config.get("width", 640))

    @property
    def height(self) -> int:
        return int(self._config.get("height", 480))

    @property
    def facing_mode(self) -> str:
        return self._config.get("facing_mode", "environment")

    async def open_stream(self, constraints: StreamConstraints) -> IMediaStream:
        if not self._initialized:
            raise ConstraintRejected("Provider not initialized", constraints)

        self.requests.append(constraints)

        if self._config.get("hang"):
            await asyncio.Event().wait()

        delay = float(self._config.get("open_delay", 0.0))
        if delay:
            await asyncio.sleep(delay)

        if constraints.label in self._config.get("reject_tiers", []):
            raise ConstraintRejected(f"{constraints.label} rejected by configuration", constraints)
        if constraints.facing_mode and constraints.facing_mode != self.facing_mode:
            raise ConstraintRejected(f"No camera facing {constraints.facing_mode}", constraints)
        if constraints.has_resolution and (constraints.width, constraints.height) != (self.width, self.height):
            raise ConstraintRejected(
                f"Resolution {constraints.width}x{constraints.height} not supported "
                f"(native {self.width}x{self.height})",
                constraints,
            )

        stream = SyntheticStream(self.width, self.height, self.facing_mode)
        self.streams.append(stream)
        return stream

    def create_surface(self) -> IVideoSurface:
        return SyntheticVideoSurface(
            metadata_delay=float(self._config.get("metadata_delay", 0.0)),
            play_delay=float(self._config.get("play_delay", 0.0)),
            never_ready=bool(self._config.get("never_ready", False)),
            unrenderable=bool(self._config.get("unrenderable", False)),
        )

    def cleanup(self) -> None:
        for stream in self.streams:
            stream.stop_all()
        self._initialized = False

    @property
    def name(self) -> str:
        return "synthetic"
