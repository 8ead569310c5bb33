"""
Review builder.

Pairs an exam with a submission and its score report so a student can see,
per problem, what they answered, what the key says and how many points they
earned. Answers and scores are looked up by problem id, never by position.
"""

from decimal import Decimal
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
from exam_portal.models import (
    BlockReview,
    ExamDefinition,
    ExamReview,
    OptionReview,
    Problem,
    ProblemReview,
    ProblemScore,
    ProblemType,
    ReviewStatus,
    ScoreReport,
)


def review_status(earned: Decimal, allocation: Decimal) -> ReviewStatus:
    """Classify earned points as correct, partial or wrong."""
    if earned <= 0:
        return ReviewStatus.WRONG
    if earned >= allocation:
        return ReviewStatus.CORRECT
    return ReviewStatus.PARTIAL


def _selected_labels(problem: Problem, raw: Any) -> frozenset[str]:
    answer = normalize_answer(problem, raw)
    if isinstance(answer, MultiAnswer):
        return answer.labels
    if isinstance(answer, SingleAnswer) and answer.label is not None:
        return frozenset({answer.label})
    return frozenset()


def _key_labels(problem: Problem) -> frozenset[str]:
    if problem.kind is ProblemType.SINGLE:
        label = key_label(problem)
        return frozenset({label}) if label is not None else frozenset()
    return key_labels(problem)


def _canonical(problem: Problem, raw: Any) -> tuple[Any, Any]:
    """Submitted answer and key in display form."""
    answer = normalize_answer(problem, raw)
    if isinstance(answer, SingleAnswer):
        return answer.label, key_label(problem)
    if isinstance(answer, MultiAnswer):
        return sorted(answer.labels), sorted(key_labels(problem))
    if isinstance(answer, FillPartsAnswer):
        key = key_blanks(problem)
        return {k: answer.get(k) for k in key}, key
    if isinstance(answer, FillAnswer):
        return answer.text, key_text(problem)
    return raw, problem.correct_answer


def review_problem(problem: Problem, raw: Any, score: ProblemScore | None) -> ProblemReview:
    """Build the review entry of a single problem."""
    earned = score.earned if score is not None else Decimal(0)
    allocation = score.allocation if score is not None else problem.max_points

    options: tuple[OptionReview, ...] = ()
    if problem.options:
        selected = _selected_labels(problem, raw)
        correct = _key_labels(problem)
        options = tuple(
            OptionReview(
                label=o.label,
                text=o.text,
                explanation=o.explanation,
                selected=o.label in selected,
                correct=o.label in correct,
            )
            for o in problem.options
        )

    submitted, key = _canonical(problem, raw)

    return ProblemReview(
        problem_id=problem.id,
        problem_type=problem.type,
        question=problem.question,
        explanation=problem.explanation,
        submitted=submitted,
        correct_answer=key,
        earned=earned,
        allocation=allocation,
        status=review_status(earned, allocation),
        options=options,
    )


def build_review(
    exam: ExamDefinition, answers: Mapping[str, Any], report: ScoreReport
) -> ExamReview:
    """
    Merge an exam, the submitted answers and their score report.

    Args:
        exam: The exam definition.
        answers: Raw answers keyed by problem id.
        report: The score report of those answers.

    Returns:
        ExamReview with one entry per problem, in document order.
    """
    lookup = {str(k): v for k, v in answers.items()}
    scores = {s.problem_id: s for s in report.problem_scores}
    blocks = tuple(
        BlockReview(
            title=block.title,
            problems=tuple(
                review_problem(p, lookup.get(p.id), scores.get(p.id)) for p in block.problems
            ),
        )
        for block in exam.blocks
    )
    return ExamReview(blocks=blocks, total=report.total, max_total=report.max_total)
