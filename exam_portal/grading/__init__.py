"""
Grading Engine Module.

Deterministic scoring of single-choice, multi-choice and fill-in answers,
plus the review data built from a graded submission.
"""

from exam_portal.grading.answers import NormalizedAnswer, normalize_answer
from exam_portal.grading.engine import GradingEngine, MalformedExamError, grade, round_points
from exam_portal.grading.review import build_review

__all__ = [
    "GradingEngine",
    "MalformedExamError",
    "NormalizedAnswer",
    "build_review",
    "grade",
    "normalize_answer",
    "round_points",
]
