"""
Answer Grader - automated grading of handwritten answers.

This package reads photographed answers with OCR, asks a language model
for a grade, parses its reply leniently, and falls back to a
deterministic heuristic whenever OCR or the model is unusable.
"""

__version__ = "1.0.0"
__author__ = "Answer Grader Team"
