"""
Unit tests for configuration loading.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from answer_grader.config import OCREngine, Settings


class TestSettings:
    def test_trailing_slash_stripped(self, test_settings: Settings) -> None:
        assert test_settings.llm_base_url == "https://test.api.local"

    def test_defaults(self, test_settings: Settings) -> None:
        assert test_settings.ocr_engine == OCREngine.TESSERACT
        assert test_settings.llm_requests_per_minute == 0
        assert test_settings.log_level == "INFO"

    def test_output_directory_created(self, test_settings: Settings) -> None:
        assert test_settings.output_directory.is_dir()

    def test_log_level_normalised(self, temp_dir: Path) -> None:
        settings = Settings(llm_api_key="test-api-key-for-testing", log_level="debug", output_directory=temp_dir)
        assert settings.log_level == "DEBUG"

    def test_unknown_log_level_rejected(self, temp_dir: Path) -> None:
        with pytest.raises(ValidationError, match="Unknown log level"):
            Settings(llm_api_key="test-api-key-for-testing", log_level="chatty", output_directory=temp_dir)

    def test_api_key_required(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        with pytest.raises(ValidationError):
            Settings(output_directory=temp_dir)

    @pytest.mark.parametrize("workers", [0, 17])
    def test_batch_workers_bounded(self, temp_dir: Path, workers: int) -> None:
        with pytest.raises(ValidationError):
            Settings(llm_api_key="test-api-key-for-testing", batch_workers=workers, output_directory=temp_dir)

    def test_environment_variables_read(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LLM_API_KEY", "env-api-key-value")
        monkeypatch.setenv("LLM_REQUESTS_PER_MINUTE", "30")

        settings = Settings(output_directory=temp_dir)

        assert settings.llm_api_key == "env-api-key-value"
        assert settings.llm_requests_per_minute == 30
