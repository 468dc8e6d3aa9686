"""
Base classes for text extraction.

Defines the abstract interface that all OCR adapters must implement,
ensuring consistent behavior across engines.
"""

import re
from abc import ABC, abstractmethod

from answer_grader.models import ExtractionResult

PDF_MAGIC = b"%PDF"

_TRAILING_SPACE = re.compile(r"[ \t]+$", re.MULTILINE)
_BLANK_RUNS = re.compile(r"\n{3,}")


class ExtractionError(Exception):
    """
    Raised when an answer image cannot be read at all.

    Finding no text is not an error; it is an empty ExtractionResult.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(f"Failed to extract text: {message}")


def clean_ocr_text(text: str) -> str:
    """Strip trailing whitespace per line and collapse runs of blank lines."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _TRAILING_SPACE.sub("", text)
    return _BLANK_RUNS.sub("\n\n", text).strip()


def is_pdf(data: bytes) -> bool:
    return data[:1024].lstrip().startswith(PDF_MAGIC)


class TextExtractor(ABC):
    """
    Abstract base class for OCR adapters.

    Implementations must bound their own processing time and must not
    retry; retries belong to the caller.
    """

    name: str = "base"

    @abstractmethod
    def extract(self, image_bytes: bytes) -> ExtractionResult:
        """
        Extract text from an answer image.

        Args:
            image_bytes: Raw image (or PDF) bytes.

        Returns:
            ExtractionResult with the text and a 0-100 confidence.

        Raises:
            ExtractionError: If the input is unreadable or corrupt.
        """
        ...

    def _validate_input(self, image_bytes: bytes) -> None:
        """
        Reject input that cannot possibly be an image.

        Raises:
            ExtractionError: If the payload is not bytes or is empty.
        """
        if not isinstance(image_bytes, (bytes, bytearray)):
            raise ExtractionError(f"Expected image bytes, got {type(image_bytes).__name__}")

        if len(image_bytes) == 0:
            raise ExtractionError("Image payload is empty")

    def _create_result(
        self, text: str, confidence: float, page_count: int = 1
    ) -> ExtractionResult:
        """Create an ExtractionResult from raw OCR output."""
        cleaned = clean_ocr_text(text)
        return ExtractionResult(
            text=cleaned,
            confidence=confidence if cleaned else 0.0,
            page_count=page_count,
        )
