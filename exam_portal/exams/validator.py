"""
Exam validation module.

Structural checks a caller runs before grading, so that an exam with a
broken answer key is rejected up front instead of silently scoring zero.
"""

from exam_portal.grading.answers import key_blanks, key_label, key_labels, key_text
from exam_portal.models import RESERVED_TOTAL_KEY, ExamDefinition, Problem, ProblemType


class ExamValidationError(Exception):
    """Raised when exam validation fails."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        message = "Exam validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        super().__init__(message)


class ExamValidator:
    """
    Validates exam definitions for gradability.

    Checks:
    1. The exam has at least one problem
    2. Problem ids are unique and never the reserved 'total' key
    3. Choice problems declare unique option labels
    4. Every answer key matches its problem type and options

    Problems of an unknown type are reported as warnings only: they score
    zero and never block grading.
    """

    def validate(self, exam: ExamDefinition) -> tuple[bool, list[str]]:
        """
        Validate an exam and return any issues found.

        Args:
            exam: The exam to validate.

        Returns:
            Tuple of (is_valid, list of issues). Warnings are listed after
            the errors and do not affect is_valid.
        """
        errors = self.errors(exam)
        return len(errors) == 0, errors + self.warnings(exam)

    def errors(self, exam: ExamDefinition) -> list[str]:
        """Issues that make the exam unfit for grading."""
        errors: list[str] = []

        if exam.problem_count == 0:
            errors.append("Exam has no problems")

        errors.extend(self._check_ids(exam))

        for problem in exam.iter_problems():
            errors.extend(self._validate_problem(problem))

        return errors

    def warnings(self, exam: ExamDefinition) -> list[str]:
        """Issues that grading tolerates."""
        return [
            f"Problem {p.id}: Unknown type '{p.type}', it will score zero"
            for p in exam.iter_problems()
            if p.kind is None
        ]

    def validate_or_raise(self, exam: ExamDefinition) -> None:
        """
        Validate an exam and raise if invalid.

        Args:
            exam: The exam to validate.

        Raises:
            ExamValidationError: If validation fails.
        """
        errors = self.errors(exam)
        if errors:
            raise ExamValidationError(errors)

    def _check_ids(self, exam: ExamDefinition) -> list[str]:
        """Check for duplicate and reserved problem ids."""
        issues: list[str] = []
        seen: dict[str, int] = {}

        for position, problem in enumerate(exam.iter_problems(), start=1):
            if problem.id == RESERVED_TOTAL_KEY:
                issues.append(f"Problem id '{RESERVED_TOTAL_KEY}' is reserved for the total score")
            if problem.id in seen:
                issues.append(
                    f"Duplicate problem id: '{problem.id}' "
                    f"(appears at positions {seen[problem.id]} and {position})"
                )
            else:
                seen[problem.id] = position

        return issues

    def _validate_problem(self, problem: Problem) -> list[str]:
        """Validate a single problem against its type."""
        prefix = f"Problem {problem.id}"
        kind = problem.kind

        if kind is None:
            return []

        if kind is ProblemType.FILL:
            return self._validate_fill(problem, prefix)

        issues: list[str] = []
        labels = problem.labels
        if not labels:
            issues.append(f"{prefix}: {kind.value}-choice problem has no options")
            return issues

        if len(labels) != len(set(labels)):
            duplicates = sorted({label for label in labels if labels.count(label) > 1})
            issues.append(f"{prefix}: Duplicate option labels {duplicates}")

        if kind is ProblemType.SINGLE:
            key = key_label(problem)
            if key is None:
                issues.append(f"{prefix}: Missing correct answer")
            elif key not in labels:
                issues.append(f"{prefix}: Correct answer '{key}' is not one of the options")
        else:
            unknown = sorted(key_labels(problem) - set(labels))
            if unknown:
                issues.append(f"{prefix}: Correct answer names unknown options {unknown}")

        return issues

    def _validate_fill(self, problem: Problem, prefix: str) -> list[str]:
        if problem.is_multi_part:
            blanks = key_blanks(problem)
            if not blanks:
                return [f"{prefix}: Multi-part fill problem has no blanks"]
            empty = sorted(sub_key for sub_key, text in blanks.items() if not text.strip())
            if empty:
                return [f"{prefix}: Blank correct answer for {empty}"]
            return []

        key = key_text(problem)
        if key is None:
            return [f"{prefix}: Missing correct answer"]
        if not key.strip():
            return [f"{prefix}: Correct answer is blank"]
        return []
