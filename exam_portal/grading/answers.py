"""
Answer normalization.

Submitted answers arrive in whatever shape the client produced: a label,
a list of labels, a comma-delimited string, a mapping of blanks. Before
grading, each raw answer is turned into one canonical variant chosen by
the problem type. Answer keys go through the same rules.

Interpretations:
- Numbers become strings via ``str()``; ``6`` matches ``"6"`` but ``"6.0"`` does not.
- ``single``: a string, or a one-element list; anything else is no answer.
- ``multi``: a list of labels, or a comma-delimited string. Labels are trimmed.
- ``fill``: a string, or a one-element list. A mapping is no answer.
- multi-part ``fill``: a mapping of sub-key to string. A scalar is no answer.
"""

from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from exam_portal.models import Problem, ProblemType


class SingleAnswer(BaseModel):
    """A single chosen label, or None when nothing usable was submitted."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["single"] = "single"
    label: str | None = None


class MultiAnswer(BaseModel):
    """The set of picked labels."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["multi"] = "multi"
    labels: frozenset[str] = frozenset()


class FillAnswer(BaseModel):
    """Text typed into a single blank."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["fill"] = "fill"
    text: str = ""


class FillPartsAnswer(BaseModel):
    """Text typed into each blank of a multi-part fill problem."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["fill_parts"] = "fill_parts"
    parts: dict[str, str] = Field(default_factory=dict)

    def get(self, sub_key: str) -> str:
        """Submitted text for a blank, empty when missing."""
        return self.parts.get(sub_key, "")


NormalizedAnswer = Annotated[
    Union[SingleAnswer, MultiAnswer, FillAnswer, FillPartsAnswer],
    Field(discriminator="kind"),
]

ANSWER_ADAPTER: TypeAdapter[NormalizedAnswer] = TypeAdapter(NormalizedAnswer)


def to_text(value: Any) -> str | None:
    """Scalar to string; None for missing values and containers."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        return None
    return str(value)


def scalar_text(value: Any) -> str | None:
    """Like ``to_text`` but unwraps a one-element list."""
    if isinstance(value, (list, tuple)):
        if len(value) != 1:
            return None
        return to_text(value[0])
    return to_text(value)


def split_labels(value: Any) -> frozenset[str]:
    """Collect trimmed labels from a list or a comma-delimited string."""
    if value is None or isinstance(value, Mapping):
        return frozenset()
    if isinstance(value, str):
        parts: list[str | None] = list(value.split(","))
    elif isinstance(value, (list, tuple, set, frozenset)):
        parts = [to_text(v) for v in value]
    else:
        parts = [to_text(value)]
    return frozenset(p.strip() for p in parts if p and p.strip())


def blank_texts(value: Any) -> dict[str, str]:
    """Sub-key to text mapping; empty for anything but a mapping."""
    if not isinstance(value, Mapping):
        return {}
    return {str(k): to_text(v) or "" for k, v in value.items()}


def normalize_answer(problem: Problem, raw: Any) -> NormalizedAnswer | None:
    """
    Normalize a raw submitted answer for the given problem.

    Args:
        problem: The problem the answer belongs to.
        raw: The raw answer value, or None when the problem was skipped.

    Returns:
        The canonical answer variant, or None for problem types that are not graded.
    """
    kind = problem.kind
    if kind is ProblemType.SINGLE:
        payload: dict[str, Any] = {"kind": "single", "label": scalar_text(raw)}
    elif kind is ProblemType.MULTI:
        payload = {"kind": "multi", "labels": split_labels(raw)}
    elif kind is ProblemType.FILL and problem.is_multi_part:
        payload = {"kind": "fill_parts", "parts": blank_texts(raw)}
    elif kind is ProblemType.FILL:
        payload = {"kind": "fill", "text": scalar_text(raw) or ""}
    else:
        return None
    return ANSWER_ADAPTER.validate_python(payload)


def key_label(problem: Problem) -> str | None:
    """Answer key of a single-choice problem."""
    return scalar_text(problem.correct_answer)


def key_labels(problem: Problem) -> frozenset[str]:
    """Answer key of a multi-choice problem."""
    return split_labels(problem.correct_answer)


def key_text(problem: Problem) -> str | None:
    """Answer key of a scalar fill problem."""
    return scalar_text(problem.correct_answer)


def key_blanks(problem: Problem) -> dict[str, str]:
    """Answer key of a multi-part fill problem."""
    return blank_texts(problem.correct_answer)
