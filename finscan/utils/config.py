"""Configuration management for the finscan extraction core.

Loads and validates YAML configuration with defaults matching the
preprocessing, OCR retry, and PDF handling behaviour of the pipeline.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# Recognition retry policy.
MAX_ATTEMPTS = 3
EARLY_EXIT_CONFIDENCE = 60.0
LOW_CONFIDENCE_THRESHOLD = 40.0

# Alphanumerics plus common financial punctuation and space.
DEFAULT_CHAR_WHITELIST = (
    "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
    ".,/\\-:$%& "
)


class PreprocessingConfig(BaseModel):
    """Configuration for image preprocessing."""

    enabled: bool = True
    # (block_size, constant) per binarization attempt, in preference order.
    threshold_params: list[tuple[int, int]] = Field(
        default_factory=lambda: [(51, 25), (21, 15), (99, 10)]
    )
    deskew_tolerance: float = 0.1


class OCRConfig(BaseModel):
    """Configuration for the Tesseract recognition driver."""

    tesseract_cmd: str | None = None
    lang: str = "eng"
    max_attempts: int = MAX_ATTEMPTS
    early_exit_confidence: float = EARLY_EXIT_CONFIDENCE
    low_confidence_threshold: float = LOW_CONFIDENCE_THRESHOLD
    # AUTO_OSD, AUTO, SINGLE_BLOCK, SINGLE_LINE
    psm_sequence: list[int] = Field(default_factory=lambda: [1, 3, 6, 7])
    char_whitelist: str = DEFAULT_CHAR_WHITELIST
    min_dimension: int = 1000
    target_dimension: int = 2000
    attempt_timeout_s: float = 60.0
    word_timeout: int = 60
    include_table_data: bool = True


class PDFConfig(BaseModel):
    """Configuration for the PDF text path."""

    ocr_fallback: bool = False
    dpi: int = 300


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    pdf: PDFConfig = Field(default_factory=PDFConfig)
    max_upload_bytes: int = 10 * 1024 * 1024
    log_level: str = "INFO"


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
