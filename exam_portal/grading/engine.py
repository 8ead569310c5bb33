"""
Grading engine - the core scorer.

Maps an exam definition and a set of submitted answers to a score report.
Grading is pure: no I/O, no shared state, and the same inputs always
produce the same report.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping

from exam_portal.grading.answers import (
    FillAnswer,
    FillPartsAnswer,
    MultiAnswer,
    SingleAnswer,
    key_blanks,
    key_label,
    key_labels,
    key_text,
    normalize_answer,
)
from exam_portal.models import ExamDefinition, Problem, ProblemScore, ScoreReport

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
ZERO = Decimal(0)


class MalformedExamError(Exception):
    """Raised when a problem is structurally unfit for grading."""

    def __init__(self, message: str, problem_id: str | None = None):
        self.problem_id = problem_id
        if problem_id is not None:
            message = f"Problem {problem_id}: {message}"
        super().__init__(message)


def round_points(value: Decimal) -> Decimal:
    """Round points to two decimal places, halves away from zero."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class GradingEngine:
    """
    Scores submitted answers against an exam definition.

    Rules per problem type:
    1. single: full allocation for an exact label match, otherwise zero
    2. multi: every option is a picked/not-picked decision; the score is
       allocation * (right - wrong) / options, floored at zero
    3. fill: trimmed exact match; multi-part keys split the allocation
       evenly across blanks
    """

    def grade(self, exam: ExamDefinition, answers: Mapping[str, Any]) -> ScoreReport:
        """
        Grade a set of answers.

        Args:
            exam: The exam definition with answer keys.
            answers: Raw answers keyed by problem id. Missing ids score zero.

        Returns:
            ScoreReport with per-problem points and the total.

        Raises:
            MalformedExamError: If a problem cannot be graded as defined.
        """
        lookup = {str(k): v for k, v in answers.items()}

        problem_scores: list[ProblemScore] = []
        running_total = ZERO

        for problem in exam.iter_problems():
            earned = self.score_problem(problem, lookup.get(problem.id))
            running_total += earned
            problem_scores.append(
                ProblemScore(
                    problem_id=problem.id,
                    problem_type=problem.type,
                    allocation=problem.max_points,
                    earned=min(round_points(earned), problem.max_points),
                )
            )

        # Total comes from the unrounded values
        return ScoreReport(
            problem_scores=tuple(problem_scores),
            total=round_points(running_total),
        )

    def score_problem(self, problem: Problem, raw_answer: Any) -> Decimal:
        """
        Score one problem without rounding.

        Args:
            problem: The problem to score.
            raw_answer: The raw submitted answer, None when absent.

        Returns:
            Earned points, between zero and the problem's allocation.
        """
        answer = normalize_answer(problem, raw_answer)

        if isinstance(answer, SingleAnswer):
            return self._score_single(problem, answer)
        if isinstance(answer, MultiAnswer):
            return self._score_multi(problem, answer)
        if isinstance(answer, FillPartsAnswer):
            return self._score_fill_parts(problem, answer)
        if isinstance(answer, FillAnswer):
            return self._score_fill(problem, answer)

        logger.debug("Problem %s has ungraded type %r", problem.id, problem.type)
        return ZERO

    def _score_single(self, problem: Problem, answer: SingleAnswer) -> Decimal:
        key = key_label(problem)
        if key is not None and answer.label == key:
            return problem.max_points
        return ZERO

    def _score_multi(self, problem: Problem, answer: MultiAnswer) -> Decimal:
        all_labels = problem.labels
        if not all_labels:
            raise MalformedExamError("multi-choice problem has no options", problem.id)

        key = key_labels(problem)
        correct_decisions = sum(
            1 for label in all_labels if (label in answer.labels) == (label in key)
        )
        incorrect_decisions = len(all_labels) - correct_decisions

        raw = problem.max_points * (correct_decisions - incorrect_decisions) / len(all_labels)
        return max(ZERO, raw)

    def _score_fill(self, problem: Problem, answer: FillAnswer) -> Decimal:
        if _blank_matches(answer.text, key_text(problem)):
            return problem.max_points
        return ZERO

    def _score_fill_parts(self, problem: Problem, answer: FillPartsAnswer) -> Decimal:
        key = key_blanks(problem)
        if not key:
            raise MalformedExamError("multi-part fill problem has no blanks", problem.id)

        matches = sum(
            1 for sub_key, expected in key.items() if _blank_matches(answer.get(sub_key), expected)
        )
        return problem.max_points * matches / len(key)


def _blank_matches(submitted: str, expected: str | None) -> bool:
    """Trimmed equality; an empty submission never matches, even an empty key."""
    text = submitted.strip()
    return bool(text) and expected is not None and text == expected.strip()


def grade(exam: ExamDefinition, answers: Mapping[str, Any]) -> ScoreReport:
    """Grade answers with a default engine."""
    return GradingEngine().grade(exam, answers)
