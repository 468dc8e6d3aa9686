"""
Unit tests for the heuristic scorer.

Tests the length bands, each question-type and subject detector,
the floor and clamp, and determinism.
"""

import pytest

from answer_grader.grading.heuristic import (
    DEFAULT_RULES,
    HeuristicRules,
    HeuristicScorer,
    LengthBand,
    count_list_items,
)
from answer_grader.models import GradingSource, Question


@pytest.fixture
def scorer() -> HeuristicScorer:
    return HeuristicScorer()


def _plain(max_marks: int = 10) -> Question:
    return Question(text="Write about your favourite season", max_marks=max_marks)


class TestLengthBands:
    """Base score by answer length."""

    def test_empty_answer_scores_zero(self, scorer: HeuristicScorer) -> None:
        result = scorer.score(_plain(), "   ")

        assert result.marks == 0
        assert result.feedback == "No answer provided"
        assert result.improvements == "Please attempt to answer the question"

    @pytest.mark.parametrize(
        ("length", "expected_marks"),
        [(15, 2), (30, 4), (80, 6), (150, 8)],
    )
    def test_band_fractions(self, scorer: HeuristicScorer, length: int, expected_marks: int) -> None:
        result = scorer.score(_plain(), "w" * length)
        assert result.marks == expected_marks

    def test_source_is_heuristic(self, scorer: HeuristicScorer) -> None:
        assert scorer.score(_plain(), "some answer").source == GradingSource.HEURISTIC

    @pytest.mark.parametrize(("length", "confidence"), [(5, 4), (50, 4), (51, 6), (200, 6)])
    def test_confidence_by_length(self, scorer: HeuristicScorer, length: int, confidence: int) -> None:
        assert scorer.score(_plain(), "w" * length).confidence == confidence


class TestQuestionTypeDetectors:
    """Question-type bonuses and the list override."""

    def test_list_question_override(self, scorer: HeuristicScorer) -> None:
        question = Question(text="List three primary colours", max_marks=10)
        result = scorer.score(question, "a, b, c")

        assert result.marks == 6

    def test_list_override_replaces_rather_than_adds(self, scorer: HeuristicScorer) -> None:
        # A 79-character single-item answer earns 6 by length alone, but the
        # list rule replaces that with 1 * 10 / 5 = 2.
        question = Question(text="Name the largest planet", max_marks=10)
        answer = "Jupiter is the largest planet in our solar system and it is a huge gas giant..."

        assert scorer.score(_plain(), answer).marks == 6
        assert scorer.score(question, answer).marks == 2

    def test_list_override_capped_at_max_marks(self, scorer: HeuristicScorer) -> None:
        question = Question(text="List the planets", max_marks=5)
        answer = "\n".join(["Mercury", "Venus", "Earth", "Mars", "Jupiter", "Saturn", "Uranus"])

        assert scorer.score(question, answer).marks == 5

    def test_count_list_items(self) -> None:
        assert count_list_items("a, b, c") == 3
        assert count_list_items("• red\n• green\n• blue") == 3
        assert count_list_items(", ,\n") == 0

    def test_explain_bonus_needs_long_answer(self, scorer: HeuristicScorer) -> None:
        question = Question(text="Describe the water cycle", max_marks=10)

        assert scorer.score(question, "w" * 150).marks == 9
        assert scorer.score(question, "w" * 80).marks == 6

    def test_calculation_working_and_conclusion(self, scorer: HeuristicScorer) -> None:
        question = Question(text="Calculate the area", max_marks=10)
        answer = "Area = 8 x 6 = 48, therefore 48 cm2"

        result = scorer.score(question, answer)

        # base floor(10 * 0.4) = 4, working +2, conclusion +1
        assert result.marks == 7
        assert "Shows mathematical working" in result.strengths
        assert "States a clear final answer" in result.strengths

    def test_calculation_without_operator_gets_no_working_bonus(self, scorer: HeuristicScorer) -> None:
        question = Question(text="Solve the puzzle", max_marks=10)
        assert scorer.score(question, "The result is 48 apples").marks == 4

    def test_comparison_bonus(self, scorer: HeuristicScorer) -> None:
        question = Question(text="Compare mitosis and meiosis", max_marks=10)
        answer = "Both divide cells, however meiosis halves chromosomes"

        assert scorer.score(question, answer).marks == 7


class TestSubjectDetectors:
    """Subject-aware bonuses."""

    @pytest.mark.parametrize("subject", ["Science", "Biology", "chemistry", "PHYSICS"])
    def test_science_causal_bonus(self, scorer: HeuristicScorer, subject: str) -> None:
        question = Question(text="Why do leaves wilt?", subject=subject, max_marks=10)
        assert scorer.score(question, "Leaves wilt because they lose water").marks == 5

    def test_history_year_bonus(self, scorer: HeuristicScorer) -> None:
        question = Question(text="When did India gain independence?", subject="History", max_marks=10)
        assert scorer.score(question, "India became independent in 1947").marks == 5

    def test_history_period_bonus(self, scorer: HeuristicScorer) -> None:
        question = Question(text="Describe the era", subject="History", max_marks=10)
        assert scorer.score(question, "It was a peaceful period").marks == 5

    def test_literature_bonus(self, scorer: HeuristicScorer) -> None:
        question = Question(text="Discuss the novel", subject="English Literature", max_marks=10)
        assert scorer.score(question, "The main theme is loss").marks == 5

    def test_no_bonus_for_other_subjects(self, scorer: HeuristicScorer) -> None:
        question = Question(text="Why do leaves wilt?", subject="Art", max_marks=10)
        assert scorer.score(question, "Leaves wilt because they lose water").marks == 4


class TestFloorAndClamp:
    def test_floor_gives_one_mark_for_non_trivial_attempt(self, scorer: HeuristicScorer) -> None:
        # floor(2 * 0.2) = 0, but 11 characters is a real attempt
        assert scorer.score(_plain(max_marks=2), "photosynth.").marks == 1

    def test_no_floor_for_trivial_attempt(self, scorer: HeuristicScorer) -> None:
        assert scorer.score(_plain(max_marks=2), "idk").marks == 0

    def test_bonuses_clamped_to_max_marks(
        self,
        scorer: HeuristicScorer,
        science_question: Question,
        photosynthesis_answer: str,
    ) -> None:
        # floor(0.85 * 5) = 4, explain +1, science +1 -> clamped to 5
        result = scorer.score(science_question, photosynthesis_answer)

        assert len(photosynthesis_answer) == 120
        assert result.marks == 5
        assert scorer.fired_detectors(science_question, photosynthesis_answer) == [
            "detailed_explanation",
            "science_causality",
        ]

    @pytest.mark.parametrize(
        "answer",
        ["", "x", "a, b, c, d, e, f, g, h, i, j, k", "1 + 1 = 2 therefore " * 20, "because " * 50],
    )
    @pytest.mark.parametrize("max_marks", [1, 3, 10])
    def test_marks_always_in_range(self, scorer: HeuristicScorer, answer: str, max_marks: int) -> None:
        question = Question(
            text="List, explain and calculate; compare and contrast",
            subject="Science History Literature",
            max_marks=max_marks,
        )
        result = scorer.score(question, answer)
        assert 0 <= result.marks <= max_marks


class TestDeterminism:
    def test_same_input_same_output(self, scorer: HeuristicScorer, math_question: Question) -> None:
        answer = "2x = 10, x = 5. The answer is 5"
        first = scorer.score(math_question, answer)
        second = scorer.score(math_question, answer)

        assert first.model_dump(exclude={"graded_at"}) == second.model_dump(exclude={"graded_at"})


class TestCustomRules:
    def test_band_table_is_configurable(self) -> None:
        rules = HeuristicRules(
            bands=(
                LengthBand(below=1, fraction=0.0, feedback="none", strengths="", improvements="try"),
                LengthBand(below=None, fraction=0.5, feedback="some", strengths="s", improvements="i"),
            ),
            detectors=(),
        )
        result = HeuristicScorer(rules).score(_plain(), "anything at all")

        assert result.marks == 5
        assert result.feedback == "some"

    def test_default_rules_exposed(self) -> None:
        assert HeuristicScorer().rules is DEFAULT_RULES
