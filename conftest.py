"""Shared pytest fixtures."""

import io

import pytest
from PIL import Image

from core.bus.event_bus import EventBus
from core.models.config import CameraConfig
from modules.camera.providers.synthetic_provider import SyntheticCameraDevice
from modules.persistence.providers.sqlite_gateway import SQLiteGateway


@pytest.fixture(autouse=True)
def event_bus():
    """Fresh event bus per test (the bus is a process-wide singleton)."""
    EventBus.reset()
    bus = EventBus()
    yield bus
    EventBus.reset()


@pytest.fixture
def gateway(tmp_path, event_bus):
    gw = SQLiteGateway(event_bus=event_bus)
    assert gw.initialize({"base_path": str(tmp_path / "data")})
    yield gw
    gw.cleanup()


@pytest.fixture
def make_device():
    """Factory for initialized synthetic cameras."""
    devices = []

    def _make(**config):
        device = SyntheticCameraDevice()
        device.initialize(config)
        devices.append(device)
        return device

    yield _make
    for device in devices:
        device.cleanup()


@pytest.fixture
def camera_config():
    """Camera config whose preferred resolution matches the synthetic default."""
    return CameraConfig(
        provider="synthetic",
        preferred_width=640,
        preferred_height=480,
        acquisition_timeout_seconds=2.0,
    )


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (32, 24), (10, 120, 40)).save(buffer, format="PNG")
    return buffer.getvalue()
