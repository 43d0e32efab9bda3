"""Main orchestrator for the CropAI system."""

import logging
from typing import Optional

from core.bus.event_bus import EventBus
from core.config.config_loader import ConfigLoader
from core.interfaces.camera import ICameraDevice
from core.interfaces.persistence import IPersistenceGateway
from core.models.config import CropAIConfig
from core.registry.plugin_registry import PluginRegistry
from modules.analysis.mock_analyzer import MockAnalyzer
from modules.analysis.pipeline import AnalysisPipeline
from modules.camera.controller import CameraController
from modules.chat.conversation import ChatConversation
from modules.contact.service import ContactService
from modules.team.roster import TeamRoster
from modules.upload.service import ImageUploadService

# Import plugins to register providers
import modules.camera.plugin  # noqa: F401
import modules.persistence.plugin  # noqa: F401

logger = logging.getLogger(__name__)


class OrchestratorError(Exception):
    """Raised when a configured component cannot be created."""
    pass


class CropAIOrchestrator:
    """Builds and owns every CropAI component.

    The orchestrator resolves the configured persistence gateway and camera
    device through the plugin registry and wires them into the services the
    web layer and the CLI use.
    """

    def __init__(self, config_path: Optional[str] = None, config: Optional[dict] = None):
        """Initialize the orchestrator.

        Args:
            config_path: Path to configuration file (optional)
            config: Already loaded configuration dict (takes precedence)
        """
        if config is None:
            config_loader = ConfigLoader()
            if config_path:
                config = config_loader.load_from_file(config_path)
            else:
                config = config_loader.load_defaults()

        self.config = config
        self.settings = CropAIConfig.from_dict(config)
        self.event_bus = EventBus()

        self.gateway: Optional[IPersistenceGateway] = None
        self.camera: Optional[CameraController] = None
        self.uploads: Optional[ImageUploadService] = None
        self.pipeline: Optional[AnalysisPipeline] = None
        self.roster: Optional[TeamRoster] = None
        self.contact: Optional[ContactService] = None

        self._started = False
        logger.info("CropAI orchestrator initialized")

    def start(self) -> bool:
        """Create all components.

        Returns:
            True if started successfully, False otherwise
        """
        if self._started:
            logger.warning("Orchestrator already started")
            return False

        try:
            self.gateway = self._create_gateway()
            self.uploads = ImageUploadService(
                self.gateway,
                bucket=self.settings.upload.bucket,
                event_bus=self.event_bus,
            )
            self.pipeline = AnalysisPipeline(
                self.gateway,
                self.uploads,
                analyzer=MockAnalyzer(
                    delay_seconds=self.settings.analysis.delay_seconds,
                    model_version=self.settings.analysis.model_version,
                ),
                event_bus=self.event_bus,
            )
            self.roster = TeamRoster(self.gateway)
            self.contact = ContactService(self.gateway)
            self.camera = CameraController(
                self._create_camera_device(),
                self.settings.camera,
                self.event_bus,
            )
        except OrchestratorError as e:
            logger.error(f"Failed to start: {e}")
            self.stop()
            return False

        self._started = True
        logger.info(
            f"Started with {self.gateway.name} persistence and "
            f"{self.settings.camera.provider} camera"
        )
        return True

    def stop(self) -> None:
        """Release the camera, unsubscribe the roster and close the gateway."""
        if self.camera is not None:
            self.camera.close()
        if self.roster is not None:
            self.roster.stop()
        if self.gateway is not None:
            self.gateway.cleanup()
        self._started = False
        logger.info("Orchestrator stopped")

    def new_conversation(self) -> ChatConversation:
        """Create a chat conversation using the configured reply delay."""
        return ChatConversation(self.settings.chat.reply_delay_seconds, self.event_bus)

    def _create_gateway(self) -> IPersistenceGateway:
        registry = PluginRegistry()
        name = self.settings.persistence.provider
        gateway_class = registry.get_persistence_gateway(name)

        if not gateway_class:
            raise OrchestratorError(f"Persistence gateway '{name}' not found")

        gateway = gateway_class(event_bus=self.event_bus)
        if not gateway.initialize(self.config.get("persistence", {})):
            raise OrchestratorError(f"Failed to initialize persistence gateway '{name}'")
        return gateway

    def _create_camera_device(self) -> ICameraDevice:
        registry = PluginRegistry()
        name = self.settings.camera.provider
        device_class = registry.get_camera_device(name)

        if not device_class:
            raise OrchestratorError(f"Camera device '{name}' not found")

        device = device_class()
        camera_config = self.config.get("camera", {})
        provider_config = dict(camera_config.get("config", {}))
        provider_config.setdefault("device_indices", camera_config.get("device_indices", [0]))
        provider_config.setdefault("rear_device_index", camera_config.get("rear_device_index"))

        if not device.initialize(provider_config):
            raise OrchestratorError(f"Failed to initialize camera device '{name}'")
        return device
