"""
Batch grading.

Runs the orchestrator over many answer images on a bounded worker pool.
Items share no state, so each is graded independently; a failure in one
never touches the others, and results come back in input order.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Sequence

from answer_grader.config import Settings, get_settings
from answer_grader.grading.engine import GradingOrchestrator
from answer_grader.models import (
    AnswerImage,
    BatchOutcome,
    BatchSummary,
    GradingResult,
    GradingSource,
    Question,
    StudentInfo,
)

logger = logging.getLogger(__name__)

ERROR_FEEDBACK = "Error processing answer image"
ERROR_IMPROVEMENTS = "Please try uploading the image again"


def error_result(question: Question, student_info: StudentInfo | None = None) -> GradingResult:
    """Terminal result for an item that failed outside the normal pipeline."""
    return GradingResult(
        marks=0,
        max_marks=question.max_marks,
        feedback=ERROR_FEEDBACK,
        strengths="",
        improvements=ERROR_IMPROVEMENTS,
        confidence=1,
        student_info=student_info,
        source=GradingSource.ERROR,
    )


def summarize(results: Sequence[GradingResult | None]) -> BatchSummary:
    """Aggregate statistics over a batch's results."""
    return BatchSummary.from_results(results)


class BatchCoordinator:
    """
    Grades a set of answers to one question.

    At most `max_workers` answers are graded at once; the rest queue.
    """

    def __init__(self, orchestrator: GradingOrchestrator, max_workers: int = 4):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._orchestrator = orchestrator
        self._max_workers = max_workers

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "BatchCoordinator":
        settings = settings or get_settings()
        return cls(GradingOrchestrator.from_settings(settings), max_workers=settings.batch_workers)

    def grade_batch(
        self,
        question: Question,
        images: Sequence[AnswerImage | bytes],
        cancel_event: threading.Event | None = None,
    ) -> BatchOutcome:
        """
        Grade every image against the question.

        Args:
            question: The question all images answer.
            images: AnswerImages, or raw bytes which get placeholder identities.
            cancel_event: When set, items that have not started are skipped
                and have no result. In-flight items finish normally.

        Returns:
            BatchOutcome with one entry per input, in input order.
        """
        items = [self._normalise(position, image) for position, image in enumerate(images, start=1)]
        results: list[GradingResult | None] = [None] * len(items)

        if items:
            logger.info(
                "Grading batch of %d answers for question %d with %d workers",
                len(items),
                question.number,
                min(self._max_workers, len(items)),
            )

            with ThreadPoolExecutor(
                max_workers=min(self._max_workers, len(items)),
                thread_name_prefix="grader",
            ) as executor:
                futures = {
                    executor.submit(self._grade_item, question, item, cancel_event): index
                    for index, item in enumerate(items)
                }
                for future in as_completed(futures):
                    results[futures[future]] = future.result()

        summary = summarize(results)
        logger.info(
            "Batch complete: %d graded, %d errored, %d cancelled, average %.1f%%",
            summary.graded,
            summary.errored,
            summary.cancelled,
            summary.average_percentage,
        )
        return BatchOutcome(results=tuple(results), summary=summary)

    def _grade_item(
        self,
        question: Question,
        item: AnswerImage,
        cancel_event: threading.Event | None,
    ) -> GradingResult | None:
        if cancel_event is not None and cancel_event.is_set():
            logger.debug("Skipping %s: batch cancelled", item.file_name)
            return None

        try:
            return self._orchestrator.grade_answer_image(question, item.data, item.student_info)
        except Exception:
            logger.exception("Unexpected failure grading %s", item.file_name)
            return error_result(question, item.student_info)

    @staticmethod
    def _normalise(position: int, image: AnswerImage | bytes) -> AnswerImage:
        if isinstance(image, AnswerImage):
            if image.student_info is not None:
                return image
            return AnswerImage(
                data=image.data,
                file_name=image.file_name or f"answer_{position:03d}",
                student_info=StudentInfo.default_for(position),
            )

        return AnswerImage(
            data=bytes(image),
            file_name=f"answer_{position:03d}",
            student_info=StudentInfo.default_for(position),
        )
