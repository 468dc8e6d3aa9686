"""
Heuristic scorer.

Deterministic, rule-based grading used when a language-model judgment
is unavailable, and as a baseline for comparing model grades.

Scoring runs in a fixed order:
1. Base marks from the answer length band
2. Question-type and subject detectors, each adding to (or, for list
   questions, replacing) the running marks
3. A one-mark floor for any non-trivial attempt
4. A clamp to [0, max_marks]
"""

import math
import re
from typing import Callable, NamedTuple

from answer_grader.models import GradingResult, GradingSource, Question, clamp_marks


class LengthBand(NamedTuple):
    """Base score and canned feedback for answers shorter than `below` characters."""

    below: int | None  # None means no upper bound
    fraction: float
    feedback: str
    strengths: str
    improvements: str


class ScoringContext(NamedTuple):
    """Normalised view of one (question, answer) pair."""

    question: str  # lower-cased question text
    subject: str  # lower-cased subject
    answer: str  # stripped answer text
    answer_lower: str
    length: int
    max_marks: int


class Detector(NamedTuple):
    """
    One (predicate, adjustment) rule.

    When `replaces` is set, the adjustment becomes the new running score
    instead of being added to it.
    """

    name: str
    applies: Callable[[ScoringContext], bool]
    adjustment: Callable[[ScoringContext], float]
    strength: str = ""
    replaces: bool = False


class HeuristicRules(NamedTuple):
    """Complete policy table for heuristic scoring."""

    bands: tuple[LengthBand, ...]
    detectors: tuple[Detector, ...]
    floor_above_length: int = 10
    floor_marks: int = 1
    low_confidence: int = 4
    high_confidence: int = 6
    low_confidence_max_length: int = 50


# ==============================================================================
# Text features
# ==============================================================================

LIST_SEPARATORS = re.compile(r"[,\n•●▪\-*]")
DIGIT = re.compile(r"\d")
ARITHMETIC_OPERATOR = re.compile(r"[+\-*/=×÷]")
YEAR = re.compile(r"\b\d{3,4}\b")

CONCLUSION_MARKERS = ("therefore", "answer is")
COMPARISON_MARKERS = ("similar", "different", "both", "however")
CAUSAL_MARKERS = ("because", "due to", "causes")
PERIOD_MARKERS = ("period", "time")
LITERARY_MARKERS = ("author", "character", "theme")

SCIENCE_SUBJECTS = ("science", "biology", "chemistry", "physics")
HISTORY_SUBJECTS = ("history",)
LITERATURE_SUBJECTS = ("english", "literature")


def count_list_items(answer: str) -> int:
    """Count non-empty segments split on commas, newlines and bullets."""
    return sum(1 for item in LIST_SEPARATORS.split(answer) if item.strip())


def _contains_any(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


def _question_mentions(*words: str) -> Callable[[ScoringContext], bool]:
    return lambda ctx: _contains_any(ctx.question, words)


def _subject_is(subjects: tuple[str, ...]) -> Callable[[ScoringContext], bool]:
    return lambda ctx: _contains_any(ctx.subject, subjects)


def _both(
    first: Callable[[ScoringContext], bool], second: Callable[[ScoringContext], bool]
) -> Callable[[ScoringContext], bool]:
    return lambda ctx: first(ctx) and second(ctx)


def _bonus(marks: float) -> Callable[[ScoringContext], float]:
    return lambda ctx: marks


def _list_score(ctx: ScoringContext) -> float:
    return min(count_list_items(ctx.answer) * ctx.max_marks / 5, ctx.max_marks)


_is_list_question = _question_mentions("list", "name")
_is_explain_question = _question_mentions("explain", "describe")
_is_calculation = _question_mentions("calculate", "solve")
_is_comparison = _question_mentions("compare", "contrast")


# ==============================================================================
# Default policy
# ==============================================================================

DEFAULT_BANDS: tuple[LengthBand, ...] = (
    LengthBand(
        below=1,
        fraction=0.0,
        feedback="No answer provided",
        strengths="",
        improvements="Please attempt to answer the question",
    ),
    LengthBand(
        below=20,
        fraction=0.2,
        feedback="Very brief answer, needs more detail",
        strengths="Attempted the question",
        improvements="Provide more detailed explanation",
    ),
    LengthBand(
        below=50,
        fraction=0.4,
        feedback="Basic answer provided, could be more comprehensive",
        strengths="Shows basic understanding",
        improvements="Add more details and examples",
    ),
    LengthBand(
        below=100,
        fraction=0.6,
        feedback="Good attempt with reasonable detail",
        strengths="Provides adequate explanation",
        improvements="Could include more specific details",
    ),
    LengthBand(
        below=None,
        fraction=0.85,
        feedback="Comprehensive answer with good detail",
        strengths="Detailed response showing good understanding",
        improvements="Continue with this level of detail",
    ),
)

# Order matters: the list override resets the score before any bonus is added.
DEFAULT_DETECTORS: tuple[Detector, ...] = (
    Detector(
        name="list_items",
        applies=_is_list_question,
        adjustment=_list_score,
        replaces=True,
    ),
    Detector(
        name="detailed_explanation",
        applies=_both(_is_explain_question, lambda ctx: ctx.length >= 100),
        adjustment=_bonus(1),
        strength="Gives a detailed explanation",
    ),
    Detector(
        name="mathematical_working",
        applies=_both(
            _is_calculation,
            lambda ctx: bool(DIGIT.search(ctx.answer) and ARITHMETIC_OPERATOR.search(ctx.answer)),
        ),
        adjustment=_bonus(2),
        strength="Shows mathematical working",
    ),
    Detector(
        name="stated_conclusion",
        applies=_both(_is_calculation, lambda ctx: _contains_any(ctx.answer_lower, CONCLUSION_MARKERS)),
        adjustment=_bonus(1),
        strength="States a clear final answer",
    ),
    Detector(
        name="comparison",
        applies=_both(_is_comparison, lambda ctx: _contains_any(ctx.answer_lower, COMPARISON_MARKERS)),
        adjustment=_bonus(1),
        strength="Draws comparisons between ideas",
    ),
    Detector(
        name="science_causality",
        applies=_both(
            _subject_is(SCIENCE_SUBJECTS),
            lambda ctx: _contains_any(ctx.answer_lower, CAUSAL_MARKERS),
        ),
        adjustment=_bonus(1),
        strength="Explains causes and effects",
    ),
    Detector(
        name="historical_context",
        applies=_both(
            _subject_is(HISTORY_SUBJECTS),
            lambda ctx: bool(YEAR.search(ctx.answer))
            or _contains_any(ctx.answer_lower, PERIOD_MARKERS),
        ),
        adjustment=_bonus(1),
        strength="Places events in their historical period",
    ),
    Detector(
        name="literary_terms",
        applies=_both(
            _subject_is(LITERATURE_SUBJECTS),
            lambda ctx: _contains_any(ctx.answer_lower, LITERARY_MARKERS),
        ),
        adjustment=_bonus(1),
        strength="Uses literary terminology",
    ),
)

DEFAULT_RULES = HeuristicRules(bands=DEFAULT_BANDS, detectors=DEFAULT_DETECTORS)


class HeuristicScorer:
    """
    Grades an answer from surface features alone.

    Pure and deterministic: identical inputs always give identical marks,
    feedback and confidence. The low confidence values it reports signal
    that no semantic evaluation took place.
    """

    def __init__(self, rules: HeuristicRules = DEFAULT_RULES):
        self._rules = rules

    @property
    def rules(self) -> HeuristicRules:
        return self._rules

    def score(self, question: Question, answer_text: str) -> GradingResult:
        """
        Score an answer against a question.

        Args:
            question: The question being answered.
            answer_text: The student's answer (typically OCR output).

        Returns:
            GradingResult with source HEURISTIC.
        """
        ctx = self._build_context(question, answer_text)
        band = self._select_band(ctx.length)

        marks = float(math.floor(ctx.max_marks * band.fraction))
        strengths = [band.strengths] if band.strengths else []

        for detector in self._rules.detectors:
            if not detector.applies(ctx):
                continue
            value = detector.adjustment(ctx)
            marks = value if detector.replaces else marks + value
            if detector.strength:
                strengths.append(detector.strength)

        if ctx.length > self._rules.floor_above_length:
            marks = max(marks, float(self._rules.floor_marks))

        confidence = (
            self._rules.low_confidence
            if ctx.length <= self._rules.low_confidence_max_length
            else self._rules.high_confidence
        )

        return GradingResult(
            marks=clamp_marks(marks, ctx.max_marks),
            max_marks=ctx.max_marks,
            feedback=band.feedback,
            strengths=". ".join(strengths),
            improvements=band.improvements,
            confidence=confidence,
            source=GradingSource.HEURISTIC,
        )

    def fired_detectors(self, question: Question, answer_text: str) -> list[str]:
        """Names of the detectors that apply to this pair, in evaluation order."""
        ctx = self._build_context(question, answer_text)
        return [d.name for d in self._rules.detectors if d.applies(ctx)]

    def _select_band(self, length: int) -> LengthBand:
        for band in self._rules.bands:
            if band.below is None or length < band.below:
                return band
        return self._rules.bands[-1]

    @staticmethod
    def _build_context(question: Question, answer_text: str) -> ScoringContext:
        answer = (answer_text or "").strip()
        return ScoringContext(
            question=question.text.lower(),
            subject=(question.subject or "").lower(),
            answer=answer,
            answer_lower=answer.lower(),
            length=len(answer),
            max_marks=question.max_marks,
        )
