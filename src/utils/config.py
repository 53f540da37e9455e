"""Configuration management for the document OCR service.

Loads and validates YAML configuration with sensible defaults for the
OCR engines, upload intake, and document storage.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

VISION_ENV_PREFIX = "GOOGLE_CLOUD_VISION_"
VISION_API_KEY_ENV = f"{VISION_ENV_PREFIX}API_KEY"


class OCRConfig(BaseModel):
    """Configuration for the local Tesseract engine."""

    tesseract_cmd: str | None = None
    languages: str = "eng+nep"
    psm: int = 3


class VisionConfig(BaseSettings):
    """Configuration for the hosted Google Cloud Vision engine.

    Fields not given in the YAML file are read from
    ``GOOGLE_CLOUD_VISION_*`` environment variables or a local ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix=VISION_ENV_PREFIX, env_file=".env", extra="ignore"
    )

    api_key: str = ""
    endpoint: str = "https://vision.googleapis.com/v1/images:annotate"
    timeout_seconds: float = 30.0


class UploadConfig(BaseModel):
    """Configuration for upload intake validation and staging."""

    upload_dir: str = "uploads"
    max_size_bytes: int = 10 * 1024 * 1024
    allowed_content_types: list[str] = Field(
        default_factory=lambda: ["image/png", "image/jpeg", "application/pdf"]
    )


class StorageConfig(BaseModel):
    """Configuration for the document store backend."""

    backend: str = "memory"
    database_url: str = "sqlite:///documents.db"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    vision: VisionConfig = Field(default_factory=VisionConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    log_level: str = "INFO"

    @field_validator("vision", mode="before")
    @classmethod
    def _vision_from_settings(cls, value: object) -> object:
        # Nested dicts skip BaseSettings sources unless built through __init__.
        if isinstance(value, dict):
            return VisionConfig(**value)
        return value


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
