"""
Text Extraction Module.

Provides a pluggable interface for reading handwritten answers:
- Tesseract OCR for images and scanned PDFs
- A scripted extractor for tests and dry runs
"""

from answer_grader.extractors.base import ExtractionError, TextExtractor, clean_ocr_text
from answer_grader.extractors.factory import (
    SUPPORTED_EXTENSIONS,
    create_extractor,
    is_supported_file,
)
from answer_grader.extractors.scripted_extractor import ScriptedExtractor
from answer_grader.extractors.tesseract_extractor import TesseractExtractor

__all__ = [
    "ExtractionError",
    "SUPPORTED_EXTENSIONS",
    "ScriptedExtractor",
    "TesseractExtractor",
    "TextExtractor",
    "clean_ocr_text",
    "create_extractor",
    "is_supported_file",
]
