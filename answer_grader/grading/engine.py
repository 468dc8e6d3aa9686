"""
Grading orchestrator - the per-answer pipeline.

OCR -> prompt -> model call -> response parsing, with a terminal
zero-mark result when nothing legible is found and a heuristic
fallback when the model call fails. Nothing in here raises to the
caller; degraded paths are visible through `source` and `confidence`.
"""

import logging

from answer_grader.config import Settings, get_settings
from answer_grader.extractors import TextExtractor, create_extractor
from answer_grader.grading.heuristic import HeuristicScorer
from answer_grader.grading.llm_client import LLMClient, ModelClient
from answer_grader.grading.parser import ResponseParser
from answer_grader.grading.prompt_builder import PromptBuilder
from answer_grader.models import GradingResult, GradingSource, Question, StudentInfo

logger = logging.getLogger(__name__)

NO_TEXT_FEEDBACK = "No readable text found in the answer image"
NO_TEXT_IMPROVEMENTS = "Please ensure the answer is clearly written and visible"


def no_text_result(question: Question, student_info: StudentInfo | None = None) -> GradingResult:
    """Terminal result for an image with nothing legible on it."""
    return GradingResult(
        marks=0,
        max_marks=question.max_marks,
        feedback=NO_TEXT_FEEDBACK,
        strengths="",
        improvements=NO_TEXT_IMPROVEMENTS,
        confidence=1,
        ocr_text="",
        ocr_confidence=0.0,
        student_info=student_info,
        source=GradingSource.NO_TEXT,
    )


class GradingOrchestrator:
    """
    Grades one answer image end to end.

    Collaborators are injected so that tests can script OCR output and
    model replies; `from_settings` wires the real ones.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        model: ModelClient,
        heuristic: HeuristicScorer | None = None,
        parser: ResponseParser | None = None,
    ):
        self._extractor = extractor
        self._model = model
        self._heuristic = heuristic or HeuristicScorer()
        self._parser = parser or ResponseParser()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "GradingOrchestrator":
        """
        Build an orchestrator with the configured OCR engine and LLM client.

        Args:
            settings: Configuration settings. Uses global settings if not provided.
        """
        settings = settings or get_settings()
        return cls(extractor=create_extractor(settings), model=LLMClient(settings))

    @property
    def heuristic(self) -> HeuristicScorer:
        return self._heuristic

    def grade_answer_image(
        self,
        question: Question,
        image_bytes: bytes,
        student_info: StudentInfo | None = None,
    ) -> GradingResult:
        """
        Grade a photographed answer.

        Args:
            question: The question being answered.
            image_bytes: Raw image (or scanned PDF) bytes.
            student_info: Identity attached to the result.

        Returns:
            GradingResult; never raises.
        """
        logger.info("Grading answer image for question %d", question.number)

        try:
            extraction = self._extractor.extract(image_bytes)
        except Exception:
            logger.warning("Text extraction failed for question %d", question.number, exc_info=True)
            return no_text_result(question, student_info)

        if extraction.is_empty:
            logger.info("No readable text found for question %d", question.number)
            return no_text_result(question, student_info)

        return self.grade_answer_text(
            question,
            extraction.text,
            student_info=student_info,
            ocr_confidence=extraction.confidence,
        )

    def grade_answer_text(
        self,
        question: Question,
        answer_text: str,
        student_info: StudentInfo | None = None,
        ocr_confidence: float = 100.0,
    ) -> GradingResult:
        """
        Grade an answer that is already text.

        Args:
            question: The question being answered.
            answer_text: The answer text.
            student_info: Identity attached to the result.
            ocr_confidence: Confidence of the transcription (100 for typed text).

        Returns:
            GradingResult from the model, or from the heuristic if the model
            call failed.
        """
        if not answer_text.strip():
            return no_text_result(question, student_info)

        prompt = PromptBuilder.build_grading_prompt(question, answer_text)

        try:
            raw_response = self._model.generate(prompt)
            if not isinstance(raw_response, str):
                raise TypeError(f"Model returned {type(raw_response).__name__}, expected text")
        except Exception:
            logger.warning(
                "Model call failed for question %d; using heuristic grading",
                question.number,
                exc_info=True,
            )
            result = self._heuristic.score(question, answer_text)
        else:
            result = self._parser.parse(raw_response, question.max_marks)

        logger.info(
            "Question %d graded via %s: %d/%d (confidence %d)",
            question.number,
            result.source.value,
            result.marks,
            result.max_marks,
            result.confidence,
        )
        return result.with_context(
            ocr_text=answer_text,
            ocr_confidence=ocr_confidence,
            student_info=student_info,
        )

    def health_check(self) -> bool:
        """
        Check if the model endpoint is reachable.

        Returns:
            True if the model client reports healthy (or has no health check).
        """
        check = getattr(self._model, "health_check", None)
        return bool(check()) if callable(check) else True
