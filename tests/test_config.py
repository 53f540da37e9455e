"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml

from src.utils.config import (
    VISION_API_KEY_ENV,
    AppConfig,
    OCRConfig,
    StorageConfig,
    UploadConfig,
    VisionConfig,
    load_config,
)


class TestOCRConfig:
    """Tests for OCRConfig defaults and overrides."""

    def test_defaults(self) -> None:
        cfg = OCRConfig()
        assert cfg.languages == "eng+nep"
        assert cfg.psm == 3
        assert cfg.tesseract_cmd is None

    def test_custom_languages(self) -> None:
        cfg = OCRConfig(languages="eng", psm=6)
        assert cfg.languages == "eng"
        assert cfg.psm == 6


class TestVisionConfig:
    """Tests for VisionConfig and its environment fallback."""

    def test_api_key_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(VISION_API_KEY_ENV, "env-key")
        assert VisionConfig().api_key == "env-key"

    def test_api_key_defaults_to_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(VISION_API_KEY_ENV, raising=False)
        assert VisionConfig().api_key == ""

    def test_explicit_key_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(VISION_API_KEY_ENV, "env-key")
        assert VisionConfig(api_key="file-key").api_key == "file-key"

    def test_endpoint_default(self) -> None:
        assert VisionConfig().endpoint.endswith("/v1/images:annotate")

    def test_api_key_from_dotenv_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv(VISION_API_KEY_ENV, raising=False)
        (tmp_path / ".env").write_text(f"{VISION_API_KEY_ENV}=dotenv-key\nOTHER=1\n")
        monkeypatch.chdir(tmp_path)
        assert VisionConfig().api_key == "dotenv-key"

    def test_prefixed_env_overrides_timeout(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GOOGLE_CLOUD_VISION_TIMEOUT_SECONDS", "5")
        assert VisionConfig().timeout_seconds == 5.0


class TestUploadConfig:
    """Tests for UploadConfig defaults."""

    def test_defaults(self) -> None:
        cfg = UploadConfig()
        assert cfg.max_size_bytes == 10 * 1024 * 1024
        assert set(cfg.allowed_content_types) == {
            "image/png",
            "image/jpeg",
            "application/pdf",
        }


class TestAppConfig:
    """Tests for the top-level AppConfig."""

    def test_defaults(self) -> None:
        cfg = AppConfig()
        assert isinstance(cfg.ocr, OCRConfig)
        assert isinstance(cfg.vision, VisionConfig)
        assert isinstance(cfg.upload, UploadConfig)
        assert isinstance(cfg.storage, StorageConfig)
        assert cfg.storage.backend == "memory"
        assert cfg.log_level == "INFO"

    def test_nested_override(self) -> None:
        cfg = AppConfig(storage=StorageConfig(backend="sql"), log_level="DEBUG")
        assert cfg.storage.backend == "sql"
        assert cfg.log_level == "DEBUG"


class TestLoadConfig:
    """Tests for the load_config function."""

    def test_load_default_config(self) -> None:
        cfg = load_config(Path("configs/config.yaml"))
        assert isinstance(cfg, AppConfig)
        assert cfg.ocr.languages == "eng+nep"

    def test_load_missing_file_returns_defaults(self) -> None:
        cfg = load_config(Path("/nonexistent/path/config.yaml"))
        assert isinstance(cfg, AppConfig)
        assert cfg.upload.max_size_bytes == 10 * 1024 * 1024

    def test_load_custom_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "ocr": {"languages": "eng", "psm": 6},
            "upload": {"max_size_bytes": 1024},
            "storage": {"backend": "sql", "database_url": "sqlite:///x.db"},
            "log_level": "DEBUG",
        }
        config_file = tmp_path / "config.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)

        cfg = load_config(config_file)
        assert cfg.ocr.languages == "eng"
        assert cfg.ocr.psm == 6
        assert cfg.upload.max_size_bytes == 1024
        assert cfg.storage.backend == "sql"
        assert cfg.log_level == "DEBUG"

    def test_yaml_vision_section_keeps_env_key(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(VISION_API_KEY_ENV, "env-key")
        config_file = tmp_path / "config.yaml"
        config_file.write_text("vision:\n  timeout_seconds: 12\n")

        cfg = load_config(config_file)
        assert cfg.vision.api_key == "env-key"
        assert cfg.vision.timeout_seconds == 12.0

    def test_yaml_api_key_overrides_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv(VISION_API_KEY_ENV, "env-key")
        config_file = tmp_path / "config.yaml"
        config_file.write_text("vision:\n  api_key: file-key\n")
        assert load_config(config_file).vision.api_key == "file-key"

    def test_load_empty_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        cfg = load_config(config_file)
        assert isinstance(cfg, AppConfig)
