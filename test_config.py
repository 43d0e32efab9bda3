"""Tests for configuration loading."""

import pytest
import yaml

from core.config.config_loader import ConfigLoader, ConfigurationError
from core.models.config import CropAIConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "CROPAI_PERSISTENCE_PROVIDER",
                 "CROPAI_CAMERA_PROVIDER", "CROPAI_BASE_PATH", "CROPAI_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("core.config.config_loader.load_dotenv", lambda *args, **kwargs: False)


def test_defaults():
    config = ConfigLoader().load_defaults()
    settings = CropAIConfig.from_dict(config)

    assert settings.camera.preferred_width == 1920
    assert settings.camera.preferred_height == 1080
    assert settings.camera.jpeg_quality == 90
    assert settings.persistence.provider == "sqlite"
    assert settings.upload.bucket == "crop-images"
    assert settings.analysis.delay_seconds == 3.0
    assert settings.server.api_prefix == "/api/v1"
    assert settings.chat.max_conversations == 500


def test_file_values_override_defaults(tmp_path):
    path = tmp_path / "cropai.yaml"
    path.write_text(yaml.safe_dump({
        "camera": {"provider": "synthetic", "preferred_width": 640},
        "chat": {"reply_delay_seconds": 0},
    }))

    loader = ConfigLoader()
    loader.load_from_file(str(path))
    settings = loader.typed()

    assert settings.camera.provider == "synthetic"
    assert settings.camera.preferred_width == 640
    # Untouched keys of a partially overridden section keep their defaults
    assert settings.camera.preferred_height == 1080
    assert settings.chat.reply_delay_seconds == 0
    assert loader.get("persistence.provider") == "sqlite"


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        ConfigLoader().load_from_file(str(tmp_path / "missing.yaml"))


def test_invalid_yaml_raises(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("camera: [unclosed")

    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        ConfigLoader().load_from_file(str(path))


def test_non_mapping_file_raises(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ConfigurationError, match="mapping"):
        ConfigLoader().load_from_file(str(path))


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("CROPAI_PERSISTENCE_PROVIDER", "supabase")

    loader = ConfigLoader()
    loader.load_defaults()

    assert loader.get("persistence.supabase_url") == "https://project.supabase.co"
    assert loader.get("persistence.provider") == "supabase"


def test_environment_ignored_when_disabled(monkeypatch):
    monkeypatch.setenv("CROPAI_CAMERA_PROVIDER", "synthetic")

    loader = ConfigLoader(use_env=False)
    loader.load_defaults()

    assert loader.get("camera.provider") == "opencv"


def test_get_and_set_dot_paths():
    loader = ConfigLoader(use_env=False)
    loader.load_defaults()

    loader.set("camera.config.width", 320)

    assert loader.get("camera.config.width") == 320
    assert loader.get("camera.nope", "fallback") == "fallback"


def test_save_round_trip(tmp_path):
    loader = ConfigLoader(use_env=False)
    loader.load_defaults()
    loader.set("upload.bucket", "field-photos")
    path = tmp_path / "out" / "saved.yaml"

    loader.save_to_file(str(path))

    reloaded = ConfigLoader(use_env=False).load_from_file(str(path))
    assert reloaded["upload"]["bucket"] == "field-photos"


def test_unknown_keys_are_ignored():
    settings = CropAIConfig.from_dict({"camera": {"provider": "synthetic", "config": {"width": 10}}})

    assert settings.camera.provider == "synthetic"
    assert settings.persistence.provider == "sqlite"
