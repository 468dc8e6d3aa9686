"""
Unit tests for the response parser.

The parser is total, so every test checks the value returned rather
than an exception.
"""

import json

import pytest

from answer_grader.grading.parser import (
    DEFAULT_FEEDBACK,
    DEFAULT_IMPROVEMENTS,
    DEFAULT_STRENGTHS,
    PATTERN_FEEDBACK,
    ResponseParser,
    ScoringError,
)
from answer_grader.models import GradingResult, GradingSource


@pytest.fixture
def parser() -> ResponseParser:
    return ResponseParser()


class TestStructuredStrategy:
    """JSON replies."""

    def test_parse_valid_response(self, parser: ResponseParser, sample_llm_response: str) -> None:
        result = parser.parse(sample_llm_response, 5)

        assert isinstance(result, GradingResult)
        assert result.marks == 4
        assert result.feedback == "Accurate description of the process."
        assert result.strengths == "Correct inputs and outputs named"
        assert result.improvements == "Mention the light and dark reactions"
        assert result.confidence == 8
        assert result.source == GradingSource.MODEL

    def test_parse_response_in_markdown_block(self, parser: ResponseParser) -> None:
        body = json.dumps({"marks": 3, "feedback": "Good", "confidence": 7})
        result = parser.parse(f"Here is my grade:\n```json\n{body}\n```\nThanks!", 5)

        assert result.marks == 3
        assert result.feedback == "Good"
        assert result.confidence == 7

    def test_missing_keys_get_defaults(self, parser: ResponseParser) -> None:
        result = parser.parse('{"marks": 2}', 5)

        assert result.marks == 2
        assert result.feedback == DEFAULT_FEEDBACK
        assert result.strengths == DEFAULT_STRENGTHS
        assert result.improvements == DEFAULT_IMPROVEMENTS
        assert result.confidence == 5

    def test_marks_clamped(self, parser: ResponseParser) -> None:
        assert parser.parse('{"marks": 17, "confidence": 5}', 10).marks == 10
        assert parser.parse('{"marks": -3, "confidence": 5}', 10).marks == 0

    def test_confidence_clamped(self, parser: ResponseParser) -> None:
        assert parser.parse('{"marks": 1, "confidence": 40}', 10).confidence == 10
        assert parser.parse('{"marks": 1, "confidence": -2}', 10).confidence == 1

    def test_numeric_strings_accepted(self, parser: ResponseParser) -> None:
        result = parser.parse('{"marks": "7", "confidence": "9"}', 10)
        assert result.marks == 7
        assert result.confidence == 9

    def test_non_numeric_marks_default_to_zero(self, parser: ResponseParser) -> None:
        assert parser.parse('{"marks": "excellent"}', 10).marks == 0

    def test_list_strengths_joined(self, parser: ResponseParser) -> None:
        result = parser.parse('{"marks": 1, "strengths": ["clear", "concise"]}', 5)
        assert result.strengths == "clear; concise"

    def test_first_balanced_object_wins(self, parser: ResponseParser) -> None:
        raw = 'First {"marks": 2, "feedback": "one"} then {"marks": 4, "feedback": "two"}'
        result = parser.parse(raw, 5)

        assert result.marks == 2
        assert result.feedback == "one"

    def test_braces_inside_strings_ignored(self, parser: ResponseParser) -> None:
        raw = '{"marks": 3, "feedback": "Use {braces} carefully }"}'
        result = parser.parse(raw, 5)

        assert result.marks == 3
        assert result.feedback == "Use {braces} carefully }"

    def test_extract_json_without_object_raises_internally(self, parser: ResponseParser) -> None:
        with pytest.raises(ScoringError, match="No JSON object found"):
            parser._extract_json("no braces here", "no braces here")


class TestPatternStrategy:
    """Free-text replies."""

    def test_marks_and_feedback_from_prose(self, parser: ResponseParser) -> None:
        raw = "Marks: 7\nFeedback: Good use of examples. Some detail missing."
        result = parser.parse(raw, 10)

        assert result.marks == 7
        assert result.feedback == "Good use of examples."
        assert result.confidence == 6
        assert result.source == GradingSource.MODEL

    def test_missing_marks_default_to_sixty_percent(self, parser: ResponseParser) -> None:
        result = parser.parse("The student did fine overall", 7)

        assert result.marks == 4
        assert result.feedback == PATTERN_FEEDBACK

    def test_pattern_marks_clamped(self, parser: ResponseParser) -> None:
        assert parser.parse("I award 15 marks? No - marks: 15", 10).marks == 10

    def test_malformed_json_falls_back_to_patterns(self, parser: ResponseParser) -> None:
        raw = '{"marks": 6, "feedback": "Solid answer." "confidence": 8}'
        result = parser.parse(raw, 10)

        assert result.marks == 6
        assert result.feedback == "Solid answer."
        assert result.confidence == 6

    def test_unclosed_object_falls_back(self, parser: ResponseParser) -> None:
        result = parser.parse('{"marks": 3, "feedback": "cut off', 5)
        assert result.marks == 3


class TestTotality:
    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "   ",
            "not json at all",
            "{",
            "}{",
            "[1, 2, 3]",
            '{"marks": 1e999}',
            '{"marks": NaN, "confidence": Infinity}',
            '{"a": {"b": {"c": 1}}} {"marks": 3}',
            "marks: 99999999999999999999",
            "{" * 50 + "}" * 10,
            '{"marks": 1' + "0" * 400 + "}",
            '{"marks": 2, "confidence": 1' + "0" * 400 + "}",
            '{"marks": -1' + "0" * 400 + ', "confidence": -1' + "0" * 400 + "}",
        ],
    )
    @pytest.mark.parametrize("max_marks", [1, 5, 100])
    def test_always_returns_in_range(self, parser: ResponseParser, raw: str, max_marks: int) -> None:
        result = parser.parse(raw, max_marks)

        assert 0 <= result.marks <= max_marks
        assert 1 <= result.confidence <= 10


class TestOversizedNumbers:
    """Integers too large for a float still clamp instead of raising."""

    def test_huge_marks_clamped_to_max(self, parser: ResponseParser) -> None:
        result = parser.parse('{"marks": 1' + "0" * 400 + ', "confidence": 7}', 5)

        assert result.marks == 5
        assert result.confidence == 7
        assert result.source == GradingSource.MODEL

    def test_huge_confidence_clamped(self, parser: ResponseParser) -> None:
        result = parser.parse('{"marks": 2, "confidence": 1' + "0" * 400 + "}", 5)

        assert result.marks == 2
        assert result.confidence == 10

    def test_huge_negative_marks_clamped_to_zero(self, parser: ResponseParser) -> None:
        assert parser.parse('{"marks": -1' + "0" * 400 + "}", 5).marks == 0

    def test_unexpected_structured_failure_falls_back(
        self, parser: ResponseParser, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def explode(data, max_marks):
            raise ArithmeticError("bad number")

        monkeypatch.setattr(parser, "_convert", explode)
        result = parser.parse('{"marks": 3, "feedback": "Fine."}', 5)

        assert result.marks == 3
        assert result.confidence == 6
