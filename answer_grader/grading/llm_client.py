"""
LLM Client for OpenAI-compatible endpoints.

Provides a wrapper around the OpenAI SDK for the grading model call.
Includes retry logic, error handling, and client-side rate limiting.
"""

import logging
import threading
import time
from typing import Protocol

from openai import APIConnectionError, APIStatusError, OpenAI, RateLimitError

from answer_grader.config import Settings, get_settings

logger = logging.getLogger(__name__)


class ModelCallError(Exception):
    """Raised when the model call fails."""

    def __init__(self, message: str, cause: Exception | None = None, retryable: bool = False):
        self.cause = cause
        self.retryable = retryable
        super().__init__(message)


class ModelClient(Protocol):
    """Anything that turns a prompt into a free-text reply."""

    def generate(self, prompt: str) -> str: ...


class RateLimiter:
    """
    Spaces requests at least `60 / requests_per_minute` seconds apart.

    Shared by every worker thread of a batch; the lock is the only
    synchronisation in the grading pipeline.
    """

    def __init__(self, requests_per_minute: int, clock=time.monotonic, sleep=time.sleep):
        self._interval = 60.0 / requests_per_minute if requests_per_minute > 0 else 0.0
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_slot = 0.0

    def acquire(self) -> float:
        """
        Block until the caller may send a request.

        Returns:
            Seconds spent waiting.
        """
        if self._interval == 0.0:
            return 0.0

        with self._lock:
            now = self._clock()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self._interval

        wait = slot - now
        if wait > 0:
            self._sleep(wait)
        return wait


class LLMClient:
    """
    Grading model client for any OpenAI-compatible chat endpoint.

    Transient failures (rate limits, dropped connections, 5xx replies)
    are retried with exponential backoff; everything else fails at once.
    The SDK's own retries are disabled so there is one retry policy.
    """

    BASE_DELAY = 1.0
    MAX_DELAY = 30.0

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._client = OpenAI(
            api_key=self._settings.llm_api_key,
            base_url=self._settings.llm_base_url,
            timeout=self._settings.llm_timeout_seconds,
            max_retries=0,
        )
        self._rate_limiter = RateLimiter(self._settings.llm_requests_per_minute)
        self._max_retries = self._settings.llm_max_retries

    def generate(
        self,
        prompt: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """
        Send a grading prompt and return the model's reply text.

        Args:
            prompt: The complete grading prompt, sent as a single user turn.
            temperature: Overrides `llm_temperature` when given.
            max_tokens: Overrides `llm_max_tokens` when given.

        Raises:
            ModelCallError: If the call fails, or keeps failing after retries.
        """
        request = {
            "model": self._settings.llm_model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self._settings.llm_temperature if temperature is None else temperature,
            "max_tokens": self._settings.llm_max_tokens if max_tokens is None else max_tokens,
        }

        attempts = self._max_retries + 1
        for attempt in range(attempts):
            try:
                return self._complete(request)
            except ModelCallError:
                raise
            except Exception as e:
                error = self._classify(e)
                if not error.retryable:
                    raise error from e
                if attempt + 1 == attempts:
                    raise ModelCallError(
                        f"{error} after {self._max_retries} retries", cause=e, retryable=True
                    ) from e
                self._backoff(attempt, str(error))

        raise ModelCallError("No attempts were made")

    def _complete(self, request: dict) -> str:
        self._rate_limiter.acquire()
        response = self._client.chat.completions.create(**request)
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ModelCallError("Empty response from model")
        return content

    @staticmethod
    def _classify(error: Exception) -> ModelCallError:
        """Map an SDK exception onto a ModelCallError, marking transient ones retryable."""
        if isinstance(error, RateLimitError):
            return ModelCallError("Rate limit exceeded", cause=error, retryable=True)
        if isinstance(error, APIConnectionError):
            return ModelCallError("Connection failed", cause=error, retryable=True)
        if isinstance(error, APIStatusError):
            # 429 is covered above; other 4xx replies will not improve on retry
            retryable = error.status_code >= 500
            return ModelCallError(f"API error {error.status_code}: {error.message}", cause=error, retryable=retryable)
        return ModelCallError(f"Unexpected error: {error}", cause=error)

    def _backoff(self, attempt: int, reason: str) -> None:
        delay = self._calculate_delay(attempt)
        logger.warning(
            "%s (attempt %d/%d); retrying in %.1fs",
            reason,
            attempt + 1,
            self._max_retries + 1,
            delay,
        )
        time.sleep(delay)

    def _calculate_delay(self, attempt: int) -> float:
        """Exponential backoff delay for a 0-indexed attempt, capped at MAX_DELAY."""
        return min(self.BASE_DELAY * 2**attempt, self.MAX_DELAY)

    def health_check(self) -> bool:
        """Send a tiny request; True if the endpoint answers at all."""
        try:
            response = self._client.chat.completions.create(
                model=self._settings.llm_model,
                messages=[{"role": "user", "content": "ping"}],
                max_tokens=5,
            )
        except Exception:
            logger.debug("Model health check failed", exc_info=True)
            return False
        return bool(response.choices)
