"""Camera module plugin registration."""

import logging
from core.registry.plugin_registry import PluginRegistry
from modules.camera.providers.synthetic_provider import SyntheticCameraDevice

logger = logging.getLogger(__name__)


def register():
    """Register all camera device providers with the plugin registry."""
    registry = PluginRegistry()

    registry.register_camera_device("synthetic", SyntheticCameraDevice)

    # Real hardware through OpenCV
    try:
        from modules.camera.providers.opencv_provider import OpenCVCameraDevice
        registry.register_camera_device("opencv", OpenCVCameraDevice)
        logger.debug("OpenCV camera provider registered")
    except ImportError as e:
        logger.debug(f"OpenCV camera provider not available: {e}")

    logger.debug("Camera providers registered")


# Auto-register on import
register()
