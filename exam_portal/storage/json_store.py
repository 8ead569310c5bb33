"""
JSON file submission store.

Each submission lives at ``<results_dir>/<exam_id>/<user_id>.json``.
Files are opened with exclusive creation, so when two saves race for the
same pair exactly one succeeds.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from exam_portal.models import Submission
from exam_portal.storage.base import (
    AlreadySubmittedError,
    StorageError,
    SubmissionStore,
    check_identifier,
)

logger = logging.getLogger(__name__)


class JsonSubmissionStore(SubmissionStore):
    """Stores submissions as one JSON document per (exam, user) pair."""

    def __init__(self, results_dir: Path | str):
        """
        Initialize the store.

        Args:
            results_dir: Root directory for submission files.
        """
        self._root = Path(results_dir)

    def path_for(self, user_id: str, exam_id: str) -> Path:
        """File holding the submission of a pair."""
        exam_dir = check_identifier(exam_id, "exam id")
        file_stem = check_identifier(user_id, "user id")
        return self._root / exam_dir / f"{file_stem}.json"

    def get(self, user_id: str, exam_id: str) -> Submission | None:
        path = self.path_for(user_id, exam_id)
        if not path.exists():
            return None

        try:
            return Submission.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as e:
            raise StorageError("Stored submission is invalid", path, cause=e) from e
        except OSError as e:
            raise StorageError(f"Could not read submission: {e}", path, cause=e) from e

    def exists(self, user_id: str, exam_id: str) -> bool:
        return self.path_for(user_id, exam_id).exists()

    def save(self, submission: Submission) -> None:
        path = self.path_for(submission.user_id, submission.exam_id)
        payload = submission.model_dump_json(indent=2)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "x", encoding="utf-8") as f:
                f.write(payload)
        except FileExistsError as e:
            raise AlreadySubmittedError(submission.user_id, submission.exam_id) from e
        except OSError as e:
            raise StorageError(f"Could not write submission: {e}", path, cause=e) from e

        logger.info(
            "Stored submission of %s for %s at %s",
            submission.user_id,
            submission.exam_id,
            path,
        )
