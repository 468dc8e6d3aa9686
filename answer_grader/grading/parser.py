"""
Response parser for language-model grading output.

The model is asked for JSON but nothing guarantees it complies, so
parsing degrades through two strategies and never raises:

1. Structured: find the first balanced JSON object and read its fields.
2. Pattern: pull a mark and a feedback phrase out of free text.
"""

import json
import logging
import math
import re
from typing import Any

from answer_grader.models import GradingResult, GradingSource, clamp_confidence, clamp_marks

logger = logging.getLogger(__name__)

DEFAULT_FEEDBACK = "Answer evaluated by AI"
DEFAULT_STRENGTHS = "Shows effort in attempting the question"
DEFAULT_IMPROVEMENTS = "Continue practicing and studying"
DEFAULT_CONFIDENCE = 5

PATTERN_FEEDBACK = "Answer evaluated by AI. Please review."
PATTERN_STRENGTHS = "Shows understanding of the topic"
PATTERN_IMPROVEMENTS = "Continue studying and practicing"
PATTERN_CONFIDENCE = 6
PATTERN_MARKS_FRACTION = 0.6

CODE_FENCE = re.compile(r"```[ \t]*(?:json)?[ \t]*\n?", re.IGNORECASE)
MARKS_PATTERN = re.compile(r"marks?[\"'*]*[:\s]*(\d+(?:\.\d+)?)", re.IGNORECASE)
FEEDBACK_PATTERN = re.compile(r"feedback[\"'*]*[:\s]*([^.]+\.?)", re.IGNORECASE)


class ScoringError(Exception):
    """Raised inside the parser when the structured strategy cannot be used."""

    def __init__(self, message: str, raw_response: str | None = None):
        self.raw_response = raw_response
        super().__init__(message)


class ResponseParser:
    """
    Turns a free-form model reply into a GradingResult.

    `parse` is total: whatever the reply looks like, a result with marks
    in [0, max_marks] and confidence in [1, 10] comes back.
    """

    def parse(self, response: str, max_marks: int) -> GradingResult:
        """
        Parse a model reply.

        Args:
            response: Raw model output.
            max_marks: Maximum marks for the question.

        Returns:
            GradingResult with source MODEL.
        """
        response = response if isinstance(response, str) else str(response or "")

        try:
            return self._parse_structured(response, max_marks)
        except ScoringError as e:
            logger.warning("Structured parse failed (%s); using pattern extraction", e)
        except Exception:
            logger.warning("Structured parse raised; using pattern extraction", exc_info=True)

        return self._parse_patterns(response, max_marks)

    # ==========================================================================
    # Structured strategy
    # ==========================================================================

    def _parse_structured(self, response: str, max_marks: int) -> GradingResult:
        json_str = self._extract_json(self._strip_code_fences(response), response)

        try:
            data = json.loads(json_str)
        except (ValueError, RecursionError) as e:
            raise ScoringError(f"Invalid JSON in response: {e}", raw_response=response) from e

        if not isinstance(data, dict):
            raise ScoringError("Response JSON is not an object", raw_response=response)

        return self._convert(data, max_marks)

    @staticmethod
    def _strip_code_fences(response: str) -> str:
        return CODE_FENCE.sub("", response).strip()

    def _extract_json(self, text: str, raw_response: str) -> str:
        """
        Return the first balanced {...} span in the text.

        Braces inside JSON strings are ignored when matching.

        Raises:
            ScoringError: If no balanced object exists.
        """
        start = text.find("{")
        if start == -1:
            raise ScoringError("No JSON object found in response", raw_response=raw_response)

        while start != -1:
            end = self._matching_brace(text, start)
            if end is not None:
                return text[start : end + 1]
            start = text.find("{", start + 1)

        raise ScoringError("Unclosed JSON object in response", raw_response=raw_response)

    @staticmethod
    def _matching_brace(text: str, start: int) -> int | None:
        depth = 0
        in_string = False
        escaped = False

        for i in range(start, len(text)):
            char = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue

            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return i

        return None

    def _convert(self, data: dict[str, Any], max_marks: int) -> GradingResult:
        """Map a parsed object onto a GradingResult, filling defaults."""
        return GradingResult(
            marks=clamp_marks(data.get("marks"), max_marks),
            max_marks=max_marks,
            feedback=self._text(data.get("feedback"), DEFAULT_FEEDBACK),
            strengths=self._text(data.get("strengths"), DEFAULT_STRENGTHS),
            improvements=self._text(data.get("improvements"), DEFAULT_IMPROVEMENTS),
            confidence=clamp_confidence(data.get("confidence"), DEFAULT_CONFIDENCE),
            source=GradingSource.MODEL,
        )

    @staticmethod
    def _text(value: Any, default: str) -> str:
        if isinstance(value, str):
            return value.strip() or default
        if isinstance(value, (list, tuple)):
            joined = "; ".join(str(item).strip() for item in value if str(item).strip())
            return joined or default
        return default

    # ==========================================================================
    # Pattern strategy
    # ==========================================================================

    def _parse_patterns(self, response: str, max_marks: int) -> GradingResult:
        marks_match = MARKS_PATTERN.search(response)
        if marks_match:
            marks = clamp_marks(marks_match.group(1), max_marks)
        else:
            marks = math.floor(max_marks * PATTERN_MARKS_FRACTION)

        feedback_match = FEEDBACK_PATTERN.search(response)
        feedback = feedback_match.group(1).strip().strip("\"'").strip() if feedback_match else ""

        return GradingResult(
            marks=marks,
            max_marks=max_marks,
            feedback=feedback or PATTERN_FEEDBACK,
            strengths=PATTERN_STRENGTHS,
            improvements=PATTERN_IMPROVEMENTS,
            confidence=PATTERN_CONFIDENCE,
            source=GradingSource.MODEL,
        )
