"""Configuration management for the legal text pipeline.

Loads and validates YAML configuration with defaults for the catalog,
extraction, mapping, review workflow and OCR boundary settings.
"""

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LEGALFLOW_CONFIG"


class CatalogConfig(BaseModel):
    """Locations of the document-type catalog and vocabulary lists.

    ``None`` selects the files shipped inside the package.
    """

    templates_path: str | None = None
    vocabulary_path: str | None = None


class ExtractionConfig(BaseModel):
    """Configuration for entity extraction."""

    detect_language: bool = True
    min_confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class MappingConfig(BaseModel):
    """Configuration for form field mapping."""

    description_min_length: int = 50
    description_max_length: int = 500
    default_status: str = "En vigueur"


class WorkflowConfig(BaseModel):
    """Configuration for the review and approval workflow."""

    auto_approve_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    min_type_length: int = 3
    high_priority_threshold: float = Field(default=0.6, ge=0.0, le=1.0)


class OCRConfig(BaseModel):
    """Configuration for the Tesseract text recognizer."""

    tesseract_cmd: str | None = None
    default_lang: str = "fra+ara"
    psm: int = 3
    pdf_dpi: int = 300


class AppConfig(BaseModel):
    """Top-level application configuration."""

    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    mapping: MappingConfig = Field(default_factory=MappingConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file. Defaults to the
            ``LEGALFLOW_CONFIG`` environment variable, then configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path(os.environ.get(CONFIG_ENV_VAR, "configs/config.yaml"))

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
