"""Configuration data models."""

from dataclasses import dataclass, field, fields
from typing import Dict, Any, List, Optional


def _section(cls, data: Optional[Dict[str, Any]]):
    """Build a config dataclass from a dict, ignoring unknown keys."""
    data = data or {}
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in names})


@dataclass
class CameraConfig:
    """Configuration for the camera module."""
    provider: str = "opencv"
    preferred_width: int = 1920
    preferred_height: int = 1080
    jpeg_quality: int = 90
    acquisition_timeout_seconds: float = 10.0
    rear_device_index: Optional[int] = None
    device_indices: List[int] = field(default_factory=lambda: [0])


@dataclass
class PersistenceConfig:
    """Configuration for the persistence gateway."""
    provider: str = "sqlite"
    base_path: str = "/tmp/cropai"
    database_filename: str = "cropai.db"
    objects_subdir: str = "objects"
    supabase_url: str = ""
    supabase_anon_key: str = ""


@dataclass
class UploadConfig:
    """Configuration for image uploads."""
    bucket: str = "crop-images"


@dataclass
class AnalysisConfig:
    """Configuration for the mocked analysis step."""
    delay_seconds: float = 3.0
    model_version: str = "mock-0"


@dataclass
class ChatConfig:
    """Configuration for the chatbot widget."""
    reply_delay_seconds: float = 1.0
    max_conversations: int = 500


@dataclass
class ServerConfig:
    """Configuration for web server module."""
    host: str = "0.0.0.0"
    port: int = 8000
    enable_cors: bool = True
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    api_prefix: str = "/api/v1"


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    log_to_file: bool = False
    log_file: str = "/tmp/cropai/logs/cropai.log"
    log_to_console: bool = True
    console_colors: bool = True


@dataclass
class CropAIConfig:
    """Complete CropAI configuration."""
    camera: CameraConfig = field(default_factory=CameraConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CropAIConfig":
        """Build typed configuration from a loaded config dictionary."""
        return cls(
            camera=_section(CameraConfig, data.get("camera")),
            persistence=_section(PersistenceConfig, data.get("persistence")),
            upload=_section(UploadConfig, data.get("upload")),
            analysis=_section(AnalysisConfig, data.get("analysis")),
            chat=_section(ChatConfig, data.get("chat")),
            server=_section(ServerConfig, data.get("server")),
            logging=_section(LoggingConfig, data.get("logging")),
        )
