"""
Pytest configuration and fixtures.

Provides common test fixtures for all test modules.
"""

import io
import json
import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

import pytest
from PIL import Image

from answer_grader.config import Settings
from answer_grader.extractors import ScriptedExtractor
from answer_grader.grading import GradingOrchestrator
from answer_grader.models import ExtractionResult, GradingResult, GradingSource, Question, StudentInfo


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ==============================================================================
# Question Fixtures
# ==============================================================================


@pytest.fixture
def science_question() -> Question:
    """Explain-type science question."""
    return Question(number=1, text="Explain photosynthesis", subject="Science", max_marks=5)


@pytest.fixture
def list_question() -> Question:
    """List-type question with no subject."""
    return Question(number=2, text="List the primary colours", max_marks=10)


@pytest.fixture
def math_question() -> Question:
    """Calculation question."""
    return Question(number=3, text="Solve for x: 2x + 5 = 15", subject="Mathematics", max_marks=5)


@pytest.fixture
def keyed_question() -> Question:
    """Question with a reference answer."""
    return Question(
        number=4,
        text="What is the capital of France?",
        subject="Geography",
        max_marks=2,
        answer_key="Paris",
    )


@pytest.fixture
def student() -> StudentInfo:
    return StudentInfo(student_name="Asha Rao", roll_number="042")


# ==============================================================================
# Sample Answer Fixtures
# ==============================================================================


@pytest.fixture
def photosynthesis_answer() -> str:
    """Science answer of 120 characters containing causal language."""
    answer = (
        "Plants make glucose from light, water and carbon dioxide because chlorophyll "
        "captures light energy in leaves to make food."
    )
    return answer.ljust(120, ".")[:120]


@pytest.fixture
def sample_llm_response() -> str:
    """Well-formed model reply."""
    return json.dumps(
        {
            "marks": 4,
            "feedback": "Accurate description of the process.",
            "strengths": "Correct inputs and outputs named",
            "improvements": "Mention the light and dark reactions",
            "confidence": 8,
        }
    )


# ==============================================================================
# Image Fixtures
# ==============================================================================


@pytest.fixture
def png_bytes() -> bytes:
    """A small blank PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (64, 32), color="white").save(buffer, format="PNG")
    return buffer.getvalue()


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Create test settings with mocked values."""
    return Settings(
        llm_api_key="test-api-key-for-testing",
        llm_base_url="https://test.api.local/",
        llm_model="test-model",
        llm_max_retries=2,
        batch_workers=4,
        output_directory=temp_dir / "output",
    )


# ==============================================================================
# Collaborator Fixtures
# ==============================================================================


@pytest.fixture
def mock_model(sample_llm_response: str) -> MagicMock:
    """Model client returning a well-formed reply."""
    model = MagicMock()
    model.generate.return_value = sample_llm_response
    model.health_check.return_value = True
    return model


@pytest.fixture
def failing_model() -> MagicMock:
    """Model client whose call always fails."""
    model = MagicMock()
    model.generate.side_effect = TimeoutError("model call timed out")
    return model


@pytest.fixture
def legible_extractor(photosynthesis_answer: str) -> ScriptedExtractor:
    """Extractor reading the photosynthesis answer from every image."""
    return ScriptedExtractor(
        default=ExtractionResult(text=photosynthesis_answer, confidence=88.5)
    )


@pytest.fixture
def orchestrator(legible_extractor: ScriptedExtractor, mock_model: MagicMock) -> GradingOrchestrator:
    return GradingOrchestrator(extractor=legible_extractor, model=mock_model)


@pytest.fixture
def sample_grading_result(student: StudentInfo) -> GradingResult:
    return GradingResult(
        marks=4,
        max_marks=5,
        feedback="Accurate description of the process.",
        strengths="Correct inputs and outputs named",
        improvements="Mention the light and dark reactions",
        confidence=8,
        ocr_text="Plants make glucose...",
        ocr_confidence=88.5,
        student_info=student,
        source=GradingSource.MODEL,
    )
