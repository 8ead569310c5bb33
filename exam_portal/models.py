"""
Pydantic models for the Exam Portal.

These models define the schemas for:
- Exam definitions (blocks, problems, options, answer keys)
- Score reports with per-problem earned points
- Persisted submissions
- Review data that pairs a submission with the answer key

Exam models are frozen: an exam definition is read-only input to grading.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Mapping

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

RESERVED_TOTAL_KEY = "total"


def _to_decimal(v: Any) -> Any:
    if v is None or isinstance(v, Decimal):
        return v
    return Decimal(str(v))


def _to_text(v: Any) -> Any:
    if isinstance(v, (int, float, Decimal)) and not isinstance(v, bool):
        return str(v)
    return v


# ==============================================================================
# Exam Definition Models
# ==============================================================================


class ProblemType(str, Enum):
    """Gradable problem kinds. Each kind has its own scoring rule."""

    SINGLE = "single"  # One label, all-or-nothing
    MULTI = "multi"  # Set of labels, signed partial credit
    FILL = "fill"  # Free text, one or several blanks


DEFAULT_ALLOCATIONS: dict[ProblemType, Decimal] = {
    ProblemType.SINGLE: Decimal("3"),
    ProblemType.MULTI: Decimal("5"),
    ProblemType.FILL: Decimal("3"),
}

FALLBACK_ALLOCATION = Decimal("5")


class ExamOption(BaseModel):
    """A labelled choice offered by a single- or multi-choice problem."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    label: str = Field(
        default="",
        description="Short token identifying the option (e.g. 'A')",
    )

    text: str = Field(
        default="",
        description="Option text shown to the student",
    )

    explanation: str = Field(
        default="",
        description="Why this option is right or wrong, shown on review",
    )

    percent: str | None = Field(
        default=None,
        description="Share of students who picked this option, display only",
    )

    @field_validator("label", "percent", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        """Accept numeric labels and percentages from JSON."""
        return _to_text(v)


class Problem(BaseModel):
    """
    A single gradable question.

    The answer key shape depends on the problem type:
    a label for ``single``, a collection of labels for ``multi``,
    and either a string or a sub-key mapping for ``fill``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Problem identifier, unique across the whole exam",
    )

    type: str = Field(
        ...,
        description="Problem type: 'single', 'multi' or 'fill'",
    )

    allocation: Decimal | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("allocation", "points"),
        description="Maximum points; a type-dependent default applies when absent",
    )

    options: tuple[ExamOption, ...] = Field(
        default=(),
        description="Ordered options for choice problems",
    )

    correct_answer: str | tuple[str, ...] | dict[str, str] | None = Field(
        default=None,
        validation_alias=AliasChoices("correctAnswer", "correct_answer", "answer"),
        description="Answer key",
    )

    explanation: str = Field(default="", description="Shown after grading")
    question: str = Field(default="", description="Question text, display only")
    tags: tuple[str, ...] = Field(default=(), description="Topic tags, display only")
    image: str | None = Field(default=None, description="Figure URL, display only")
    stats: dict[str, Any] = Field(default_factory=dict, description="Display statistics")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Problem ids are compared as strings."""
        return _to_text(v)

    @field_validator("allocation", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Any:
        """Convert numeric values to Decimal for precision."""
        return _to_decimal(v)

    @field_validator("allocation")
    @classmethod
    def check_precision(cls, v: Decimal | None) -> Decimal | None:
        """Scores are reported to the cent, so allocations must be too."""
        if v is not None and v != v.quantize(Decimal("0.01")):
            raise ValueError(f"Allocation {v} has more than two decimal places")
        return v

    @field_validator("options", mode="before")
    @classmethod
    def assign_positional_labels(cls, v: Any) -> Any:
        """Give unlabelled options their positional letter (A, B, C, ...)."""
        if not isinstance(v, (list, tuple)):
            return v
        labelled = []
        for idx, option in enumerate(v):
            if isinstance(option, Mapping) and not option.get("label"):
                option = {**option, "label": chr(65 + idx)}
            elif isinstance(option, ExamOption) and not option.label:
                option = option.model_copy(update={"label": chr(65 + idx)})
            labelled.append(option)
        return labelled

    @field_validator("correct_answer", mode="before")
    @classmethod
    def coerce_answer_key(cls, v: Any) -> Any:
        """Normalize numbers to strings inside any answer-key shape."""
        if isinstance(v, Mapping):
            return {str(k): _to_text(val) for k, val in v.items()}
        if isinstance(v, (set, frozenset)):
            return tuple(sorted(_to_text(x) for x in v))
        if isinstance(v, (list, tuple)):
            return tuple(_to_text(x) for x in v)
        return _to_text(v)

    @property
    def kind(self) -> ProblemType | None:
        """The problem type, or None for types the engine does not grade."""
        try:
            return ProblemType(self.type)
        except ValueError:
            return None

    @property
    def max_points(self) -> Decimal:
        """Allocation, falling back to the type-dependent default."""
        if self.allocation is not None:
            return self.allocation
        kind = self.kind
        if kind is None:
            return FALLBACK_ALLOCATION
        return DEFAULT_ALLOCATIONS[kind]

    @property
    def labels(self) -> tuple[str, ...]:
        """All declared option labels in order."""
        return tuple(o.label for o in self.options)

    @property
    def is_multi_part(self) -> bool:
        """True for a fill problem keyed by sub-key."""
        return isinstance(self.correct_answer, dict)


class Block(BaseModel):
    """A titled group of problems (one section of an exam)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(
        default="",
        validation_alias=AliasChoices("title", "blockTitle", "name"),
        description="Section title",
    )

    problems: tuple[Problem, ...] = Field(
        ...,
        description="Ordered problems of this block",
    )


class ExamDefinition(BaseModel):
    """
    A complete exam: ordered blocks of problems.

    Problems are visited in document order: block by block,
    then problem by problem inside each block.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(default="", description="Optional exam title")

    blocks: tuple[Block, ...] = Field(
        ...,
        description="Ordered blocks of the exam",
    )

    def iter_problems(self) -> Iterator[Problem]:
        """Yield every problem in document order."""
        for block in self.blocks:
            yield from block.problems

    def get_problem(self, problem_id: str) -> Problem | None:
        """Look a problem up by its string id."""
        for problem in self.iter_problems():
            if problem.id == str(problem_id):
                return problem
        return None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def problem_count(self) -> int:
        """Number of problems across all blocks."""
        return sum(len(b.problems) for b in self.blocks)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_allocation(self) -> Decimal:
        """Maximum obtainable score."""
        return sum((p.max_points for p in self.iter_problems()), Decimal(0))


# ==============================================================================
# Score Models
# ==============================================================================


class ProblemScore(BaseModel):
    """Points earned on one problem."""

    model_config = ConfigDict(frozen=True)

    problem_id: str = Field(..., description="Id of the graded problem")

    problem_type: str = Field(..., description="Type of the graded problem")

    allocation: Decimal = Field(..., ge=0, description="Maximum points")

    earned: Decimal = Field(
        ...,
        ge=0,
        description="Points earned, rounded to two decimal places",
    )

    @field_validator("allocation", "earned", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Any:
        """Convert numeric values to Decimal for precision."""
        return _to_decimal(v)

    @model_validator(mode="after")
    def validate_points_range(self) -> "ProblemScore":
        """Ensure earned points don't exceed the allocation."""
        if self.earned > self.allocation:
            raise ValueError(
                f"Earned points ({self.earned}) cannot exceed "
                f"allocation ({self.allocation}) for problem {self.problem_id}"
            )
        return self


class ScoreReport(BaseModel):
    """
    Result of grading one set of answers against an exam.

    ``total`` is the sum of the unrounded per-problem values, rounded to
    two decimal places, so it can differ by a few hundredths from the sum
    of the rounded ``earned`` values.
    """

    model_config = ConfigDict(frozen=True)

    problem_scores: tuple[ProblemScore, ...] = Field(
        default=(),
        description="Per-problem scores in document order",
    )

    total: Decimal = Field(..., ge=0, description="Total earned points")

    @field_validator("total", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Any:
        """Convert numeric values to Decimal for precision."""
        return _to_decimal(v)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def max_total(self) -> Decimal:
        """Sum of all allocations."""
        return sum((s.allocation for s in self.problem_scores), Decimal(0))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def percentage(self) -> float:
        """Total as a percentage of the maximum."""
        if self.max_total == 0:
            return 0.0
        return float(self.total / self.max_total * 100)

    @property
    def scores(self) -> dict[str, Decimal]:
        """Earned points keyed by problem id."""
        return {s.problem_id: s.earned for s in self.problem_scores}

    def get(self, problem_id: str) -> ProblemScore | None:
        """Return the score entry of one problem."""
        for score in self.problem_scores:
            if score.problem_id == str(problem_id):
                return score
        return None

    def as_mapping(self) -> dict[str, float]:
        """Flat ``{problem_id: points, ..., "total": points}`` mapping for JSON."""
        mapping = {s.problem_id: float(s.earned) for s in self.problem_scores}
        mapping[RESERVED_TOTAL_KEY] = float(self.total)
        return mapping


# ==============================================================================
# Submission Models
# ==============================================================================


class Submission(BaseModel):
    """
    A graded submission as persisted by a submission store.

    At most one submission exists per (user_id, exam_id) pair.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1, description="Submitting user")

    exam_id: str = Field(..., min_length=1, description="Exam the answers belong to")

    answers: dict[str, Any] = Field(
        default_factory=dict,
        description="Raw submitted answers keyed by problem id",
    )

    report: ScoreReport = Field(..., description="Score report computed at submission")

    submitted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the submission was accepted",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def scores(self) -> dict[str, float]:
        """Flat score mapping including the reserved ``total`` key."""
        return self.report.as_mapping()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_score(self) -> float:
        """Total earned points."""
        return float(self.report.total)


# ==============================================================================
# Review Models
# ==============================================================================


class ReviewStatus(str, Enum):
    """Outcome of a problem as shown on review."""

    CORRECT = "correct"
    PARTIAL = "partial"
    WRONG = "wrong"


class OptionReview(BaseModel):
    """One option of a choice problem, seen against the submission."""

    model_config = ConfigDict(frozen=True)

    label: str
    text: str = ""
    explanation: str = ""
    selected: bool = False
    correct: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def wrong_selection(self) -> bool:
        """Picked by the student but not part of the key."""
        return self.selected and not self.correct


class ProblemReview(BaseModel):
    """A problem paired with the submitted answer and its score."""

    model_config = ConfigDict(frozen=True)

    problem_id: str
    problem_type: str
    question: str = ""
    explanation: str = ""
    submitted: Any = None
    correct_answer: Any = None
    earned: Decimal
    allocation: Decimal
    status: ReviewStatus
    options: tuple[OptionReview, ...] = ()


class BlockReview(BaseModel):
    """Review entries for one block."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    problems: tuple[ProblemReview, ...] = ()


class ExamReview(BaseModel):
    """Review of a whole submission, block by block."""

    model_config = ConfigDict(frozen=True)

    blocks: tuple[BlockReview, ...] = ()
    total: Decimal
    max_total: Decimal

    def iter_problems(self) -> Iterator[ProblemReview]:
        """Yield every problem review in document order."""
        for block in self.blocks:
            yield from block.problems
