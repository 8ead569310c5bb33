"""
Exam Definition Module.

Provides loading and validation of exam definitions.
"""

from exam_portal.exams.loader import ExamLoadError, ExamStore
from exam_portal.exams.validator import ExamValidationError, ExamValidator

__all__ = [
    "ExamLoadError",
    "ExamStore",
    "ExamValidationError",
    "ExamValidator",
]
