"""
Handwritten answer OCR using Tesseract.

Images are decoded with Pillow and read with pytesseract. Scanned PDF
answer sheets are rendered page by page with PyMuPDF first.
"""

import io
import logging
from typing import Any

import fitz  # PyMuPDF
import pytesseract
from PIL import Image, ImageOps, UnidentifiedImageError

from answer_grader.config import Settings
from answer_grader.extractors.base import ExtractionError, TextExtractor, is_pdf
from answer_grader.models import ExtractionResult

logger = logging.getLogger(__name__)


class TesseractExtractor(TextExtractor):
    """
    Extracts text from answer images with Tesseract.

    Confidence is the mean word-level confidence reported by Tesseract,
    ignoring the -1 entries it emits for layout blocks.
    """

    name = "tesseract"

    def __init__(
        self,
        language: str = "eng",
        timeout: float = 30.0,
        pdf_dpi: int = 300,
        config: str = "--oem 3 --psm 6",
    ):
        self._language = language
        self._timeout = timeout
        self._pdf_dpi = pdf_dpi
        self._config = config

    @classmethod
    def from_settings(cls, settings: Settings) -> "TesseractExtractor":
        """
        Build an extractor from the OCR settings.

        `tesseract_cmd` is a pytesseract module global, so a configured path
        applies to every extractor in the process, not just this one.
        """
        if settings.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = settings.tesseract_cmd
        return cls(
            language=settings.ocr_language,
            timeout=settings.ocr_timeout_seconds,
            pdf_dpi=settings.pdf_render_dpi,
        )

    def extract(self, image_bytes: bytes) -> ExtractionResult:
        """
        Extract text from an image or scanned PDF.

        Args:
            image_bytes: Raw PNG/JPEG/... bytes, or PDF bytes.

        Returns:
            ExtractionResult with the recognised text.

        Raises:
            ExtractionError: If the input cannot be decoded or Tesseract fails.
        """
        self._validate_input(image_bytes)

        if is_pdf(image_bytes):
            images = self._render_pdf(image_bytes)
        else:
            images = [self._open_image(image_bytes)]

        page_texts: list[str] = []
        confidences: list[float] = []

        for page_num, image in enumerate(images, start=1):
            text, confidence = self._read_image(image)
            logger.debug(
                "OCR page %d: %d characters, confidence %.1f", page_num, len(text), confidence
            )
            if text.strip():
                page_texts.append(text)
                confidences.append(confidence)

        mean_confidence = sum(confidences) / len(confidences) if confidences else 0.0
        result = self._create_result("\n\n".join(page_texts), mean_confidence, len(images))

        logger.info(
            "OCR extraction completed: %d page(s), %d characters, confidence %.1f",
            result.page_count,
            len(result.text),
            result.confidence,
        )
        return result

    def _open_image(self, image_bytes: bytes) -> Image.Image:
        """Decode image bytes, failing with ExtractionError on corrupt input."""
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except UnidentifiedImageError as e:
            raise ExtractionError("Data is not a recognised image format", cause=e) from e
        except (OSError, ValueError) as e:
            raise ExtractionError(f"Image is corrupted or truncated: {e}", cause=e) from e
        return image

    def _render_pdf(self, pdf_bytes: bytes) -> list[Image.Image]:
        """Render every page of a scanned PDF to a Pillow image."""
        images: list[Image.Image] = []

        try:
            with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
                if doc.page_count == 0:
                    raise ExtractionError("PDF has no pages")

                for page in doc:
                    pixmap = page.get_pixmap(dpi=self._pdf_dpi)
                    images.append(Image.open(io.BytesIO(pixmap.tobytes("png"))))

        except fitz.FileDataError as e:
            raise ExtractionError("PDF file is corrupted or invalid", cause=e) from e
        except fitz.EmptyFileError as e:
            raise ExtractionError("PDF file is empty", cause=e) from e

        return images

    def _preprocess(self, image: Image.Image) -> Image.Image:
        """Grayscale and stretch contrast; pen strokes on paper read better."""
        image = ImageOps.exif_transpose(image) or image
        return ImageOps.autocontrast(ImageOps.grayscale(image))

    def _read_image(self, image: Image.Image) -> tuple[str, float]:
        """
        Run Tesseract on one image.

        Returns:
            Tuple of (text with line breaks preserved, mean word confidence).

        Raises:
            ExtractionError: If Tesseract is missing, times out or fails.
        """
        try:
            data: dict[str, list[Any]] = pytesseract.image_to_data(
                self._preprocess(image),
                lang=self._language,
                config=self._config,
                timeout=self._timeout,
                output_type=pytesseract.Output.DICT,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise ExtractionError("Tesseract is not installed or not on PATH", cause=e) from e
        except pytesseract.TesseractError as e:
            raise ExtractionError(f"Tesseract failed: {e.message}", cause=e) from e
        except RuntimeError as e:
            # pytesseract signals its timeout with a bare RuntimeError
            raise ExtractionError(f"OCR did not finish: {e}", cause=e) from e

        return self._assemble(data)

    @staticmethod
    def _assemble(data: dict[str, list[Any]]) -> tuple[str, float]:
        """Join Tesseract words into lines and average their confidences."""
        lines: dict[tuple[int, int, int], list[str]] = {}
        confidences: list[float] = []

        for i, word in enumerate(data.get("text", [])):
            word = str(word).strip()
            try:
                confidence = float(data["conf"][i])
            except (KeyError, IndexError, TypeError, ValueError):
                confidence = -1.0

            if not word or confidence < 0:
                continue

            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(word)
            confidences.append(confidence)

        text = "\n".join(" ".join(words) for words in lines.values())
        mean_confidence = sum(confidences) / len(confidences) if confidences else 0.0
        return text, mean_confidence

    @staticmethod
    def is_available() -> bool:
        """Check whether the Tesseract binary can be found."""
        try:
            pytesseract.get_tesseract_version()
            return True
        except pytesseract.TesseractNotFoundError:
            return False
