"""
Pydantic models for the answer grader.

These models define the schemas for:
- Questions and student identity
- OCR extraction results
- Grading results with clamped marks and confidence
- Batch inputs, outputs and summaries

Every score-carrying model clamps its values at construction so that
no upstream source (language model, heuristic, reviewer) can produce
an out-of-range result.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)


DEFAULT_SUBJECT = "General"

# (minimum percentage, letter) in descending order
GRADE_BOUNDARIES: tuple[tuple[float, str], ...] = (
    (90.0, "A"),
    (80.0, "B"),
    (70.0, "C"),
    (60.0, "D"),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_number(value: Any) -> float | None:
    """
    Coerce a loosely-typed value into a float.

    Accepts ints, floats and numeric strings. Integers beyond float range
    become +/-inf. Booleans, NaN and anything unparseable yield None.
    """
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except OverflowError:
        # ints too large for a float; keep the sign so clamping still applies
        return math.inf if value > 0 else -math.inf
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def clamp(value: float, lower: float, upper: float) -> float:
    """Force a value into the closed range [lower, upper]."""
    return max(lower, min(value, upper))


def clamp_marks(value: Any, max_marks: int) -> int:
    """Clamp marks into [0, max_marks], flooring fractional values."""
    number = as_number(value) or 0.0
    return int(math.floor(clamp(number, 0.0, float(max_marks))))


def clamp_confidence(value: Any, default: int = 5) -> int:
    """Clamp a self-reported grading confidence into [1, 10]."""
    number = as_number(value)
    if number is None:
        number = float(default)
    return int(round(clamp(number, 1.0, 10.0)))


def letter_grade(percentage: float) -> str:
    """Map a percentage onto the A-F letter scale."""
    for minimum, letter in GRADE_BOUNDARIES:
        if percentage >= minimum:
            return letter
    return "F"


# ==============================================================================
# Question Models
# ==============================================================================


class Question(BaseModel):
    """
    A single exam question.

    Also accepts the persisted field names `question_number` and
    `question_text`.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    number: int = Field(
        default=1,
        ge=1,
        alias="question_number",
        description="Position of the question in the paper",
    )

    text: str = Field(
        ...,
        min_length=1,
        alias="question_text",
        description="The question as shown to the student",
    )

    subject: str | None = Field(
        default=None,
        description="Subject of the paper (e.g., 'Science', 'History')",
    )

    max_marks: int = Field(
        ...,
        gt=0,
        le=1000,
        description="Maximum marks available for this question",
    )

    answer_key: str | None = Field(
        default=None,
        description="Optional reference answer used as grading context",
    )

    @property
    def subject_name(self) -> str:
        """Subject with the 'General' default applied."""
        if self.subject and self.subject.strip():
            return self.subject.strip()
        return DEFAULT_SUBJECT

    @property
    def has_answer_key(self) -> bool:
        return bool(self.answer_key and self.answer_key.strip())


class StudentInfo(BaseModel):
    """Identity of the student who wrote an answer."""

    model_config = ConfigDict(frozen=True)

    student_name: str = Field(..., min_length=1)
    roll_number: str = Field(..., min_length=1)

    @classmethod
    def default_for(cls, position: int) -> "StudentInfo":
        """Placeholder identity for the Nth (1-based) upload in a batch."""
        return cls(student_name=f"Student {position}", roll_number=f"{position:03d}")


# ==============================================================================
# Extraction Models
# ==============================================================================


class ExtractionResult(BaseModel):
    """
    Result of reading text from an answer image.

    Empty text is a valid result meaning nothing legible was found.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(
        default="",
        description="Extracted text content",
    )

    confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
        description="Mean OCR confidence (0-100)",
    )

    page_count: int = Field(
        default=1,
        ge=0,
        description="Number of pages or images that were read",
    )

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence_range(cls, v: Any) -> float:
        return clamp(as_number(v) or 0.0, 0.0, 100.0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_empty(self) -> bool:
        """Check if extracted text is empty or whitespace-only."""
        return len(self.text.strip()) == 0


# ==============================================================================
# Grading Result Models
# ==============================================================================


class GradingSource(str, Enum):
    """Which path of the pipeline produced a result."""

    MODEL = "model"
    HEURISTIC = "heuristic"
    NO_TEXT = "no_text"
    ERROR = "error"


class GradingResult(BaseModel):
    """
    Grading outcome for one answer image.

    Marks are clamped into [0, max_marks] and confidence into [1, 10]
    at construction. Instances are immutable; use `with_context` and
    `apply_review` to derive updated copies.
    """

    model_config = ConfigDict(frozen=True)

    marks: int = Field(
        ...,
        ge=0,
        description="Marks awarded (0 to max_marks)",
    )

    max_marks: int = Field(
        ...,
        gt=0,
        description="Maximum marks for the question",
    )

    feedback: str = Field(default="", description="Constructive feedback")
    strengths: str = Field(default="", description="What the student did well")
    improvements: str = Field(default="", description="Areas for improvement")

    confidence: int = Field(
        default=5,
        ge=1,
        le=10,
        description="Self-reported reliability of the grade (1-10)",
    )

    ocr_text: str = Field(default="", description="Text the grade was based on")

    ocr_confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=100.0,
        description="OCR confidence of ocr_text (0-100)",
    )

    student_info: StudentInfo | None = Field(default=None)

    source: GradingSource = Field(
        default=GradingSource.MODEL,
        description="Pipeline path that produced this result",
    )

    graded_at: datetime = Field(
        default_factory=_utcnow,
        description="Timestamp when grading was completed",
    )

    @model_validator(mode="before")
    @classmethod
    def clamp_scores(cls, data: Any) -> Any:
        """Clamp marks, confidence and OCR confidence into their ranges."""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        max_marks = as_number(data.get("max_marks"))
        if max_marks is not None and 0 < max_marks < math.inf:
            data["marks"] = clamp_marks(data.get("marks", 0), int(max_marks))
        if "confidence" in data:
            data["confidence"] = clamp_confidence(data["confidence"])
        if "ocr_confidence" in data:
            ocr_confidence = as_number(data["ocr_confidence"]) or 0.0
            data["ocr_confidence"] = clamp(ocr_confidence, 0.0, 100.0)
        return data

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percentage(self) -> float:
        """Marks as a percentage of max_marks."""
        return self.marks / self.max_marks * 100

    @computed_field  # type: ignore[prop-decorator]
    @property
    def letter_grade(self) -> str:
        return letter_grade(self.percentage)

    def _copy_with(self, **changes: Any) -> "GradingResult":
        # model_copy skips validation, so rebuild through the validator instead
        data = self.model_dump(exclude={"percentage", "letter_grade"})
        data.update(changes)
        return GradingResult.model_validate(data)

    def with_context(
        self,
        ocr_text: str,
        ocr_confidence: float,
        student_info: StudentInfo | None = None,
    ) -> "GradingResult":
        """Return a copy carrying the OCR text and student identity."""
        return self._copy_with(
            ocr_text=ocr_text,
            ocr_confidence=ocr_confidence,
            student_info=student_info,
        )

    def apply_review(
        self,
        marks: int | None = None,
        feedback: str | None = None,
        strengths: str | None = None,
        improvements: str | None = None,
    ) -> "GradingResult":
        """
        Return a copy with a human reviewer's edits applied.

        Marks are re-clamped, so a reviewer cannot exceed max_marks either.
        """
        changes: dict[str, Any] = {}
        if marks is not None:
            changes["marks"] = marks
        if feedback is not None:
            changes["feedback"] = feedback
        if strengths is not None:
            changes["strengths"] = strengths
        if improvements is not None:
            changes["improvements"] = improvements
        return self._copy_with(**changes)


# ==============================================================================
# Batch Models
# ==============================================================================


class AnswerImage(BaseModel):
    """One uploaded answer image in a batch."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(..., description="Raw image (or PDF) bytes")
    file_name: str = Field(default="", description="Original upload file name")
    student_info: StudentInfo | None = Field(default=None)


class BatchSummary(BaseModel):
    """Aggregate statistics over a batch of results."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(..., ge=0)
    graded: int = Field(..., ge=0)
    errored: int = Field(..., ge=0)
    cancelled: int = Field(default=0, ge=0)
    average_percentage: float = Field(default=0.0, ge=0.0, le=100.0)

    @classmethod
    def from_results(cls, results: Iterable[GradingResult | None]) -> "BatchSummary":
        """
        Summarize a batch.

        The average is sum(marks) / sum(max_marks) over the items that
        have a result; cancelled items (None) are excluded.
        """
        items = list(results)
        present = [r for r in items if r is not None]
        graded = sum(
            1 for r in present if r.source in (GradingSource.MODEL, GradingSource.HEURISTIC)
        )
        total_marks = sum(r.marks for r in present)
        total_max = sum(r.max_marks for r in present)

        return cls(
            total=len(items),
            graded=graded,
            errored=len(present) - graded,
            cancelled=len(items) - len(present),
            average_percentage=(total_marks / total_max * 100) if total_max else 0.0,
        )


class BatchOutcome(BaseModel):
    """Per-item results in input order, plus their summary."""

    model_config = ConfigDict(frozen=True)

    results: tuple[GradingResult | None, ...]
    summary: BatchSummary
