"""
Grading Module.

Per-answer grading pipeline (OCR, language model, lenient parsing,
heuristic fallback) and the batch coordinator that runs it at scale.
"""

from answer_grader.grading.batch import BatchCoordinator, error_result, summarize
from answer_grader.grading.engine import GradingOrchestrator, no_text_result
from answer_grader.grading.heuristic import HeuristicRules, HeuristicScorer
from answer_grader.grading.llm_client import LLMClient, ModelCallError, ModelClient, RateLimiter
from answer_grader.grading.parser import ResponseParser, ScoringError
from answer_grader.grading.prompt_builder import PromptBuilder

__all__ = [
    "BatchCoordinator",
    "GradingOrchestrator",
    "HeuristicRules",
    "HeuristicScorer",
    "LLMClient",
    "ModelCallError",
    "ModelClient",
    "PromptBuilder",
    "RateLimiter",
    "ResponseParser",
    "ScoringError",
    "error_result",
    "no_text_result",
    "summarize",
]
