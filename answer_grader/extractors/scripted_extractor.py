"""
Scripted text extractor.

Returns pre-arranged results instead of reading images. Used by the
test suite and for dry runs of the grading pipeline without Tesseract.
"""

import threading
from collections import deque
from typing import Iterable

from answer_grader.extractors.base import TextExtractor
from answer_grader.models import ExtractionResult

ScriptStep = ExtractionResult | Exception


class ScriptedExtractor(TextExtractor):
    """
    Plays back a script of extraction outcomes.

    Each step is either an ExtractionResult to return or an exception to
    raise. With `by_content`, outcomes are looked up by the exact image
    bytes instead, which keeps concurrent batches deterministic.
    """

    name = "scripted"

    def __init__(
        self,
        script: Iterable[ScriptStep] = (),
        by_content: dict[bytes, ScriptStep] | None = None,
        default: ScriptStep | None = None,
    ):
        self._script: deque[ScriptStep] = deque(script)
        self._by_content = dict(by_content or {})
        self._default = default
        self._lock = threading.Lock()
        self.calls: list[bytes] = []

    @classmethod
    def returning(cls, text: str, confidence: float = 90.0) -> "ScriptedExtractor":
        """Extractor that reads the same text from every image."""
        return cls(default=ExtractionResult(text=text, confidence=confidence))

    def extract(self, image_bytes: bytes) -> ExtractionResult:
        with self._lock:
            self.calls.append(image_bytes)
            if image_bytes in self._by_content:
                step = self._by_content[image_bytes]
            elif self._script:
                step = self._script.popleft()
            elif self._default is not None:
                step = self._default
            else:
                step = ExtractionResult(text="", confidence=0.0)

        if isinstance(step, Exception):
            raise step
        return step
