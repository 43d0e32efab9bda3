"""Plugin registry for managing pluggable components."""

import logging
from typing import Dict, List, Type, Optional

logger = logging.getLogger(__name__)


class PluginRegistry:
    """Singleton registry for all plugin types.

    The registry keeps a catalog of camera device providers and persistence
    gateways. Modules register their implementations on import, and the
    orchestrator looks them up by the names found in the configuration.

    Example:
        registry = PluginRegistry()
        registry.register_camera_device("opencv", OpenCVCameraDevice)
        device_class = registry.get_camera_device("opencv")
        device = device_class()
    """

    _instance = None

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the plugin registry."""
        if self._initialized:
            return

        self._camera_devices: Dict[str, Type] = {}
        self._persistence_gateways: Dict[str, Type] = {}
        self._initialized = True

        logger.info("PluginRegistry initialized")

    # Camera device methods
    def register_camera_device(self, name: str, device_class: Type) -> None:
        """Register a camera device provider.

        Args:
            name: Unique name for the provider (e.g., "opencv", "synthetic")
            device_class: Class implementing ICameraDevice
        """
        self._camera_devices[name] = device_class
        logger.info(f"Registered camera device: {name}")

    def get_camera_device(self, name: str) -> Optional[Type]:
        """Get a camera device provider by name.

        Returns:
            Provider class or None if not found
        """
        return self._camera_devices.get(name)

    def list_camera_devices(self) -> List[str]:
        """List all registered camera device providers."""
        return list(self._camera_devices.keys())

    # Persistence gateway methods
    def register_persistence_gateway(self, name: str, gateway_class: Type) -> None:
        """Register a persistence gateway.

        Args:
            name: Unique name for the gateway (e.g., "sqlite", "supabase")
            gateway_class: Class implementing IPersistenceGateway
        """
        self._persistence_gateways[name] = gateway_class
        logger.info(f"Registered persistence gateway: {name}")

    def get_persistence_gateway(self, name: str) -> Optional[Type]:
        """Get a persistence gateway by name.

        Returns:
            Gateway class or None if not found
        """
        return self._persistence_gateways.get(name)

    def list_persistence_gateways(self) -> List[str]:
        """List all registered persistence gateways."""
        return list(self._persistence_gateways.keys())

    def clear(self) -> None:
        """Clear all registrations (mainly for testing)."""
        self._camera_devices.clear()
        self._persistence_gateways.clear()
        logger.debug("Plugin registry cleared")
