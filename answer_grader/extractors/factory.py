"""
Extractor factory module.

Selects the OCR adapter named in the settings, and lists the file
types the CLI should pick up from an upload directory.
"""

from pathlib import Path

from answer_grader.config import OCREngine, Settings, get_settings
from answer_grader.extractors.base import TextExtractor
from answer_grader.extractors.tesseract_extractor import TesseractExtractor

SUPPORTED_EXTENSIONS: tuple[str, ...] = (
    ".bmp",
    ".gif",
    ".jpeg",
    ".jpg",
    ".pdf",
    ".png",
    ".tif",
    ".tiff",
    ".webp",
)


def is_supported_file(file_path: Path) -> bool:
    """Check whether a file looks like an answer image or scanned PDF."""
    return file_path.is_file() and file_path.suffix.lower() in SUPPORTED_EXTENSIONS


def create_extractor(settings: Settings | None = None) -> TextExtractor:
    """
    Create the OCR adapter configured in the settings.

    Args:
        settings: Configuration settings. Uses global settings if not provided.

    Returns:
        A ready-to-use TextExtractor.

    Raises:
        ValueError: If the configured engine is unknown.
    """
    settings = settings or get_settings()

    if settings.ocr_engine == OCREngine.TESSERACT:
        return TesseractExtractor.from_settings(settings)

    raise ValueError(f"Unsupported OCR engine '{settings.ocr_engine}'")
