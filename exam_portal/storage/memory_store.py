"""
In-memory submission store.

Useful for tests and single-process tools. A lock makes the existence
check and the insert one atomic step.
"""

import threading

from exam_portal.models import Submission
from exam_portal.storage.base import AlreadySubmittedError, SubmissionStore


class InMemorySubmissionStore(SubmissionStore):
    """Keeps submissions in a dict keyed by (user_id, exam_id)."""

    def __init__(self) -> None:
        self._submissions: dict[tuple[str, str], Submission] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str, exam_id: str) -> Submission | None:
        with self._lock:
            return self._submissions.get((user_id, exam_id))

    def save(self, submission: Submission) -> None:
        key = (submission.user_id, submission.exam_id)
        with self._lock:
            if key in self._submissions:
                raise AlreadySubmittedError(submission.user_id, submission.exam_id)
            self._submissions[key] = submission

    def __len__(self) -> int:
        with self._lock:
            return len(self._submissions)
