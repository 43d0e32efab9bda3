"""Configuration loading and management."""

import copy
import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dotenv import load_dotenv

from core.models.config import CropAIConfig

logger = logging.getLogger(__name__)

# Environment variable -> dot-separated config key
ENV_OVERRIDES = {
    "SUPABASE_URL": "persistence.supabase_url",
    "SUPABASE_ANON_KEY": "persistence.supabase_anon_key",
    "CROPAI_PERSISTENCE_PROVIDER": "persistence.provider",
    "CROPAI_CAMERA_PROVIDER": "camera.provider",
    "CROPAI_BASE_PATH": "persistence.base_path",
    "CROPAI_LOG_LEVEL": "logging.level",
}


class ConfigurationError(Exception):
    """Exception raised when configuration is invalid."""
    pass


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Configuration loader for CropAI.

    Values come from three layers, later ones winning: built-in defaults,
    an optional YAML file, and environment variables (a `.env` file in the
    working directory is loaded first).
    """

    def __init__(self, use_env: bool = True):
        """Initialize the config loader.

        Args:
            use_env: Apply environment variable overrides when loading
        """
        self.config: Optional[Dict[str, Any]] = None
        self._use_env = use_env

    def load_from_file(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from YAML file, layered over the defaults.

        Args:
            config_path: Path to config file

        Returns:
            Dictionary containing configuration

        Raises:
            ConfigurationError: If config file not found or invalid
        """
        path = Path(config_path)

        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")

        logger.info(f"Loading configuration from: {path}")

        try:
            with open(path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")
        except Exception as e:
            raise ConfigurationError(f"Error reading config file: {e}")

        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Config file must contain a mapping: {path}")

        self.config = _deep_merge(self._defaults(), loaded)
        self._apply_env_overrides()

        logger.info("Configuration loaded successfully")
        return self.config

    def load_defaults(self) -> Dict[str, Any]:
        """Load default configuration.

        Returns:
            Dictionary containing default configuration
        """
        self.config = self._defaults()
        self._apply_env_overrides()

        logger.info("Loaded default configuration")
        return self.config

    @staticmethod
    def _defaults() -> Dict[str, Any]:
        return {
            "camera": {
                "provider": "opencv",
                "preferred_width": 1920,
                "preferred_height": 1080,
                "jpeg_quality": 90,
                "acquisition_timeout_seconds": 10.0,
                "rear_device_index": None,
                "device_indices": [0],
            },
            "persistence": {
                "provider": "sqlite",
                "base_path": "/tmp/cropai",
                "database_filename": "cropai.db",
                "objects_subdir": "objects",
                "supabase_url": "",
                "supabase_anon_key": "",
            },
            "upload": {
                "bucket": "crop-images",
            },
            "analysis": {
                "delay_seconds": 3.0,
                "model_version": "mock-0",
            },
            "chat": {
                "reply_delay_seconds": 1.0,
                "max_conversations": 500,
            },
            "server": {
                "host": "0.0.0.0",
                "port": 8000,
                "api_prefix": "/api/v1",
            },
            "logging": {
                "level": "INFO",
                "log_to_file": False,
                "log_file": "/tmp/cropai/logs/cropai.log",
                "log_to_console": True,
                "console_colors": True,
            },
        }

    def _apply_env_overrides(self) -> None:
        """Apply environment variables listed in ENV_OVERRIDES."""
        if not self._use_env:
            return

        load_dotenv()
        for env_name, key in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                self.set(key, value)
                logger.debug(f"Config override from environment: {key}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            key: Configuration key (dot-separated for nested keys)
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if not self.config:
            return default

        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by dot-separated key."""
        if self.config is None:
            self.config = {}

        keys = key.split('.')
        node = self.config
        for k in keys[:-1]:
            node = node.setdefault(k, {})
        node[keys[-1]] = value

    def typed(self) -> CropAIConfig:
        """Return the loaded configuration as typed dataclasses."""
        if self.config is None:
            raise ConfigurationError("No configuration loaded")
        return CropAIConfig.from_dict(self.config)

    def save_to_file(self, config_path: str) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path where to save the config

        Raises:
            ConfigurationError: If save fails
        """
        if not self.config:
            raise ConfigurationError("No configuration loaded")

        path = Path(config_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(path, 'w') as f:
                yaml.dump(self.config, f, default_flow_style=False, sort_keys=False)
            logger.info(f"Configuration saved to: {path}")
        except Exception as e:
            raise ConfigurationError(f"Error saving config file: {e}")
