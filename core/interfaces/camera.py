"""Interfaces for camera devices, media streams and video surfaces."""

from abc import ABC, abstractmethod
from typing import List, Optional
from PIL import Image

from core.models.capture import StreamConstraints


class IMediaTrack(ABC):
    """A single track of a media stream (one video feed)."""

    @abstractmethod
    def stop(self) -> None:
        """Stop the track and release the underlying device handle.

        Stopping an already stopped track must be a no-op.
        """
        pass

    @property
    @abstractmethod
    def stopped(self) -> bool:
        """True once the track has been stopped."""
        pass


class IMediaStream(ABC):
    """A live stream handle returned by a camera device."""

    @property
    @abstractmethod
    def tracks(self) -> List[IMediaTrack]:
        """All tracks belonging to this stream."""
        pass

    @property
    @abstractmethod
    def settings(self) -> dict:
        """Settings the device actually secured.

        Returns:
            Dict with at least "width", "height" and "facing_mode" keys
        """
        pass

    def stop_all(self) -> None:
        """Stop every track of the stream."""
        for track in self.tracks:
            track.stop()

    @property
    def all_stopped(self) -> bool:
        """True when every track has been stopped."""
        return all(track.stopped for track in self.tracks)


class IVideoSurface(ABC):
    """Render target that a stream is attached to.

    A surface is considered ready only after it has reported both that its
    metadata (native dimensions) is loaded and that playback has begun.
    """

    @abstractmethod
    def attach(self, stream: IMediaStream) -> None:
        """Attach a stream and begin playback."""
        pass

    @abstractmethod
    def detach(self) -> None:
        """Detach the current stream, if any."""
        pass

    @abstractmethod
    async def wait_until_ready(self) -> None:
        """Wait until metadata is loaded and playback has started.

        Raises:
            NotReady: If the surface cannot become playable
        """
        pass

    @property
    @abstractmethod
    def metadata_loaded(self) -> bool:
        """True once native dimensions are known."""
        pass

    @property
    @abstractmethod
    def playing(self) -> bool:
        """True once playback has begun."""
        pass

    @property
    @abstractmethod
    def video_width(self) -> int:
        """Native width of the attached stream (0 before metadata)."""
        pass

    @property
    @abstractmethod
    def video_height(self) -> int:
        """Native height of the attached stream (0 before metadata)."""
        pass

    @abstractmethod
    def grab_frame(self) -> Image.Image:
        """Copy the current frame at native resolution.

        Raises:
            CaptureFailed: If the surface is not renderable
        """
        pass


class ICameraDevice(ABC):
    """Interface for camera device providers.

    Providers hide the concrete device backend (OpenCV, synthetic, ...)
    behind a constraint-based acquisition call.
    """

    @abstractmethod
    def initialize(self, config: dict) -> bool:
        """Initialize the device provider with configuration.

        Args:
            config: Dictionary containing provider-specific configuration

        Returns:
            True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    async def open_stream(self, constraints: StreamConstraints) -> IMediaStream:
        """Acquire a stream that satisfies the given constraints.

        Args:
            constraints: Facing mode and resolution requirements

        Returns:
            Open media stream owned by the caller

        Raises:
            ConstraintRejected: If no device satisfies the constraints
        """
        pass

    @abstractmethod
    def create_surface(self) -> IVideoSurface:
        """Create a video surface compatible with this device's streams."""
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up resources used by the provider."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'opencv', 'synthetic')."""
        pass


class CameraError(Exception):
    """Base class for camera related conditions."""
    pass


class ConstraintRejected(CameraError):
    """Raised by a device when it cannot satisfy a constraint set."""

    def __init__(self, message: str, constraints: Optional[StreamConstraints] = None):
        super().__init__(message)
        self.constraints = constraints


class DeviceUnavailable(CameraError):
    """No camera accepted any constraint of the fallback ladder."""

    def __init__(self, message: str, outcomes: Optional[list] = None):
        super().__init__(message)
        self.outcomes = outcomes or []


class NotReady(CameraError):
    """Capture attempted before the surface signalled it is playable."""
    pass


class CaptureFailed(CameraError):
    """The frame could not be copied or encoded."""
    pass
