"""
Submission records.

Shapes a GradingResult plus the identifying fields into the record the
persistence layer stores. The storage itself lives outside this package.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Sequence

from pydantic import BaseModel, ConfigDict, Field

from answer_grader.models import GradingResult, GradingSource

# (minimum percentage, message) in descending order
OVERALL_FEEDBACK: tuple[tuple[float, str], ...] = (
    (90.0, "Excellent work! You have demonstrated a strong understanding of the concepts."),
    (
        80.0,
        "Very good performance! You show good grasp of most concepts with room for "
        "minor improvements.",
    ),
    (
        70.0,
        "Good effort! You understand the basic concepts but could benefit from more "
        "detailed explanations.",
    ),
    (
        60.0,
        "Fair performance. Focus on understanding key concepts and providing more "
        "complete answers.",
    ),
)
LOW_SCORE_FEEDBACK = (
    "Needs improvement. Please review the material and practice more. "
    "Consider seeking additional help."
)


def overall_feedback(percentage: float) -> str:
    """Summary sentence for a percentage score."""
    for minimum, message in OVERALL_FEEDBACK:
        if percentage >= minimum:
            return message
    return LOW_SCORE_FEEDBACK


class OCRText(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    confidence: float


class GradeBlock(BaseModel):
    """Marks and written feedback as stored for AI and final grades."""

    model_config = ConfigDict(frozen=True)

    marks: int
    feedback: str
    strengths: str
    improvements: str
    confidence: int | None = None


class SubmissionRecord(BaseModel):
    """One student's graded answer, ready for storage."""

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(..., min_length=1)
    student_name: str = Field(..., min_length=1)
    roll_number: str = Field(..., min_length=1)
    file_name: str = ""
    question_number: int = 1
    ocr_text: OCRText
    ai_grades: GradeBlock
    final_grades: GradeBlock
    total_marks: int
    max_marks: int
    percentage: float
    grade: str
    overall_feedback: str
    grading_source: GradingSource
    processing_status: str
    is_reviewed: bool = False
    graded_at: datetime


def _grade_block(result: GradingResult, include_confidence: bool) -> GradeBlock:
    return GradeBlock(
        marks=result.marks,
        feedback=result.feedback,
        strengths=result.strengths,
        improvements=result.improvements,
        confidence=result.confidence if include_confidence else None,
    )


def build_submission_record(
    result: GradingResult,
    session_id: str,
    student_name: str | None = None,
    roll_number: str | None = None,
    file_name: str = "",
    question_number: int = 1,
    reviewed: GradingResult | None = None,
) -> SubmissionRecord:
    """
    Build the stored record for a graded answer.

    Args:
        result: The pipeline's grading result (stored as `ai_grades`).
        session_id: Grading session the submission belongs to.
        student_name: Defaults to the name carried on the result.
        roll_number: Defaults to the roll number carried on the result.
        file_name: Original upload file name.
        question_number: Question the answer belongs to.
        reviewed: A reviewer-edited copy of the result, if any; becomes
            `final_grades` and drives the totals.

    Returns:
        SubmissionRecord.

    Raises:
        ValueError: If no student identity is available.
    """
    info = result.student_info
    name = student_name or (info.student_name if info else None)
    roll = roll_number or (info.roll_number if info else None)
    if not name or not roll:
        raise ValueError("student_name and roll_number are required for a submission record")

    final = reviewed or result
    failed = result.source in (GradingSource.NO_TEXT, GradingSource.ERROR)

    return SubmissionRecord(
        session_id=session_id,
        student_name=name,
        roll_number=roll,
        file_name=file_name,
        question_number=question_number,
        ocr_text=OCRText(text=result.ocr_text, confidence=result.ocr_confidence),
        ai_grades=_grade_block(result, include_confidence=True),
        final_grades=_grade_block(final, include_confidence=False),
        total_marks=final.marks,
        max_marks=final.max_marks,
        percentage=final.percentage,
        grade=final.letter_grade,
        overall_feedback=overall_feedback(final.percentage),
        grading_source=result.source,
        processing_status="error" if failed else "graded",
        is_reviewed=reviewed is not None,
        graded_at=result.graded_at,
    )


def save_records(records: Sequence[SubmissionRecord], output_path: Path) -> Path:
    """
    Write records to a JSON file.

    Returns:
        The path written.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = [record.model_dump(mode="json") for record in records]
    output_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return output_path
