"""
Base classes for submission storage.

Defines the interface every submission store implements. A store keeps at
most one submission per (user, exam) pair; ``save`` is an atomic
check-and-insert.
"""

import re
from abc import ABC, abstractmethod
from pathlib import Path

from exam_portal.models import Submission

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


class StorageError(Exception):
    """
    Raised when a submission cannot be read or written.

    Contains the offending path when one is involved.
    """

    def __init__(self, message: str, path: str | Path | None = None, cause: Exception | None = None):
        self.path = str(path) if path is not None else None
        self.cause = cause
        if path is not None:
            message = f"{message} ({path})"
        super().__init__(message)


class AlreadySubmittedError(StorageError):
    """Raised when a (user, exam) pair already has a submission."""

    def __init__(self, user_id: str, exam_id: str):
        self.user_id = user_id
        self.exam_id = exam_id
        super().__init__(f"Exam '{exam_id}' already submitted by user '{user_id}'")


def check_identifier(value: str, field_name: str) -> str:
    """
    Ensure an id is safe to use as a storage key.

    Raises:
        StorageError: If the id is empty or has characters outside [A-Za-z0-9_.-].
    """
    if not value or value in {".", ".."} or not _SAFE_ID.match(value):
        raise StorageError(f"Invalid {field_name}: '{value}'")
    return value


class SubmissionStore(ABC):
    """
    Abstract base class for submission stores.

    Implementations must make ``save`` fail with AlreadySubmittedError when a
    submission for the same (user_id, exam_id) exists, even under concurrent calls.
    """

    @abstractmethod
    def get(self, user_id: str, exam_id: str) -> Submission | None:
        """
        Fetch a stored submission.

        Args:
            user_id: Submitting user.
            exam_id: Exam identifier.

        Returns:
            The submission, or None if there is none.

        Raises:
            StorageError: If a stored submission cannot be read.
        """
        ...

    @abstractmethod
    def save(self, submission: Submission) -> None:
        """
        Persist a submission exactly once.

        Args:
            submission: The graded submission.

        Raises:
            AlreadySubmittedError: If the pair already has a submission.
            StorageError: If writing fails.
        """
        ...

    def exists(self, user_id: str, exam_id: str) -> bool:
        """Check whether the pair already has a submission."""
        return self.get(user_id, exam_id) is not None
