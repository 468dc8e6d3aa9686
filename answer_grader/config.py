"""
Configuration management for the answer grader.

Settings come from environment variables (or a .env file) and are
validated once, when first requested, so a bad value stops the CLI
before any image is read.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OCREngine(str, Enum):
    """OCR engine used to read answer images."""

    TESSERACT = "tesseract"


class Settings(BaseSettings):
    """
    Grader settings.

    Only `llm_api_key` is required; everything else has a working default.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Language Model Configuration
    # ==========================================================================
    llm_api_key: str = Field(
        ...,
        description="API key for the OpenAI-compatible grading endpoint",
        min_length=10,
    )

    llm_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL for the OpenAI-compatible API",
    )

    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model to use for grading",
    )

    llm_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Temperature for LLM generation",
    )

    llm_max_tokens: int = Field(
        default=1024,
        ge=64,
        le=16384,
        description="Maximum tokens in a grading response",
    )

    llm_timeout_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Per-request timeout for the model call",
    )

    llm_max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries for rate-limit, connection and server errors",
    )

    llm_requests_per_minute: int = Field(
        default=0,
        ge=0,
        description="Client-side request limit shared by all workers (0 disables)",
    )

    # ==========================================================================
    # OCR Configuration
    # ==========================================================================
    ocr_engine: OCREngine = Field(
        default=OCREngine.TESSERACT,
        description="OCR engine used for text extraction",
    )

    tesseract_cmd: str | None = Field(
        default=None,
        description="Path to the tesseract binary when it is not on PATH",
    )

    ocr_language: str = Field(
        default="eng",
        description="Tesseract language code(s), e.g. 'eng' or 'eng+hin'",
    )

    ocr_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Maximum time Tesseract may spend on a single page",
    )

    pdf_render_dpi: int = Field(
        default=300,
        ge=72,
        le=600,
        description="Resolution used when rendering PDF pages for OCR",
    )

    # ==========================================================================
    # Batch Configuration
    # ==========================================================================
    batch_workers: int = Field(
        default=4,
        ge=1,
        le=16,
        description="Number of answers graded concurrently in a batch",
    )

    # ==========================================================================
    # Output Configuration
    # ==========================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level for the CLI",
    )

    output_directory: Path = Field(
        default=Path("./output"),
        description="Directory for submission record exports",
    )

    @field_validator("llm_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure base URL doesn't have trailing slash."""
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("output_directory")
    @classmethod
    def validate_output_directory(cls, v: Path) -> Path:
        """Ensure output directory exists or can be created."""
        v.mkdir(parents=True, exist_ok=True)
        return v


@lru_cache()
def get_settings() -> Settings:
    """Settings for the process, loaded on first use."""
    return Settings()
