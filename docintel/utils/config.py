"""Configuration management for the document intelligence pipeline.

Loads and validates YAML configuration with sensible defaults for
preprocessing, the OCR providers, orchestration and confidence scoring.
Secrets and deployment toggles are overlaid from the environment.
"""

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from docintel.models import OCRConfig

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


class PreprocessingConfig(BaseModel):
    """Configuration for image cleanup before local OCR."""

    enabled: bool = True
    deskew_enabled: bool = True
    deskew_angle_threshold: float = 0.5
    denoise_enabled: bool = False
    binarize_enabled: bool = False


class TesseractConfig(BaseModel):
    """Configuration for the local Tesseract provider."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3
    pdf_dpi: int = 300
    max_pdf_pages: int = 3
    timeout_seconds: float = 60.0


class CloudConfig(BaseModel):
    """Configuration for the Claude vision provider."""

    api_key: str | None = None
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    detection_max_tokens: int = 1024


class PipelineConfig(BaseModel):
    """Defaults for provider selection, timeouts and concurrency."""

    preferred_provider: str = "auto"
    enable_fallback: bool = True
    mock_mode: bool = False
    provider_timeout_seconds: float | None = 120.0
    max_concurrency: int | None = None
    detection_warning_threshold: float = 0.5

    def to_ocr_config(self) -> OCRConfig:
        """Build the per-call configuration from these defaults."""
        return OCRConfig(
            preferred_provider=self.preferred_provider,
            enable_fallback=self.enable_fallback,
            mock_mode=self.mock_mode,
        )


class ConfidenceConfig(BaseModel):
    """Overrides for the document-level confidence weights."""

    default_weight: float = 1.0
    weight_overrides: dict[str, dict[str, float]] = Field(default_factory=dict)


class ServerConfig(BaseModel):
    """Bind address for the HTTP API."""

    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    tesseract: TesseractConfig = Field(default_factory=TesseractConfig)
    cloud: CloudConfig = Field(default_factory=CloudConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    confidence: ConfidenceConfig = Field(default_factory=ConfidenceConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = "INFO"


def _apply_env_overrides(raw: dict) -> dict:
    """Overlay secrets and toggles from environment variables.

    Args:
        raw: Parsed YAML mapping (may be empty).

    Returns:
        The mapping with environment values applied.
    """
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if api_key:
        raw.setdefault("cloud", {})["api_key"] = api_key

    mock_mode = os.environ.get("OCR_MOCK_MODE")
    if mock_mode is not None:
        raw.setdefault("pipeline", {})["mock_mode"] = (
            mock_mode.strip().lower() in _TRUTHY
        )
    return raw


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

    raw: dict = {}
    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    else:
        logger.info("No config file found at %s, using defaults", path)

    return AppConfig(**_apply_env_overrides(raw))
