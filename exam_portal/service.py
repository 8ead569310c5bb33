"""
Exam portal service.

Ties the exam store, the grading engine and a submission store together
for the two operations a student performs: submitting an exam once and
looking at the result afterwards.
"""

import logging
from typing import Any, Mapping

from exam_portal.config import Settings, get_settings
from exam_portal.exams import ExamStore, ExamValidator
from exam_portal.grading import GradingEngine, build_review
from exam_portal.models import ExamReview, Submission
from exam_portal.storage import AlreadySubmittedError, JsonSubmissionStore, SubmissionStore

logger = logging.getLogger(__name__)


class InvalidSubmissionError(Exception):
    """Raised when a submission request is missing required fields."""


class SubmissionNotFoundError(Exception):
    """Raised when a user has no submission for an exam."""

    def __init__(self, user_id: str, exam_id: str):
        self.user_id = user_id
        self.exam_id = exam_id
        super().__init__(f"No submission of exam '{exam_id}' for user '{user_id}'")


class ExamPortal:
    """
    Submission workflow around the grading engine.

    All state lives in the injected stores; one instance can serve
    any number of users.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        exam_store: ExamStore | None = None,
        submission_store: SubmissionStore | None = None,
        engine: GradingEngine | None = None,
    ):
        """
        Initialize the portal.

        Args:
            settings: Configuration settings. Uses global settings if not provided.
            exam_store: Source of exam definitions. Built from settings if not provided.
            submission_store: Submission persistence. A JSON store under
                ``settings.results_dir`` if not provided.
            engine: Grading engine. A default engine if not provided.
        """
        self._settings = settings if settings is not None else get_settings()
        self._exam_store = exam_store if exam_store is not None else ExamStore(self._settings)
        if submission_store is None:
            submission_store = JsonSubmissionStore(self._settings.results_dir)
        self._submission_store = submission_store
        self._engine = engine if engine is not None else GradingEngine()
        self._validator = ExamValidator()

    def submit(self, user_id: str, exam_id: str, answers: Mapping[str, Any]) -> Submission:
        """
        Grade and persist a user's answers.

        Args:
            user_id: Submitting user; its admission year selects the exam file.
            exam_id: Exam identifier.
            answers: Raw answers keyed by problem id.

        Returns:
            The persisted Submission.

        Raises:
            InvalidSubmissionError: If ids are empty or answers is not a mapping.
            AlreadySubmittedError: If the user already submitted this exam.
            ExamLoadError: If the exam definition cannot be loaded.
            ExamValidationError: If the exam definition is malformed.
        """
        if not user_id or not exam_id or answers is None:
            raise InvalidSubmissionError("Missing required fields")
        if not isinstance(answers, Mapping):
            raise InvalidSubmissionError(
                f"Answers must be an object keyed by problem id, got {type(answers).__name__}"
            )

        if self._submission_store.exists(user_id, exam_id):
            logger.warning("Rejected repeat submission of %s by %s", exam_id, user_id)
            raise AlreadySubmittedError(user_id, exam_id)

        exam = self._exam_store.load_for_user(user_id)
        self._validator.validate_or_raise(exam)

        report = self._engine.grade(exam, answers)
        submission = Submission(
            user_id=user_id,
            exam_id=exam_id,
            answers={str(k): v for k, v in answers.items()},
            report=report,
        )

        self._submission_store.save(submission)
        logger.info(
            "User %s submitted %s: %s / %s",
            user_id,
            exam_id,
            report.total,
            report.max_total,
        )
        return submission

    def check_status(self, user_id: str, exam_id: str | None = None) -> Submission | None:
        """
        Look up a user's submission.

        Args:
            user_id: The user.
            exam_id: Exam identifier; the configured default exam if not provided.

        Returns:
            The submission, or None if the user has not submitted yet.
        """
        if not user_id:
            raise InvalidSubmissionError("User ID required")
        return self._submission_store.get(user_id, exam_id or self._settings.default_exam_id)

    def review(self, user_id: str, exam_id: str | None = None) -> ExamReview:
        """
        Build the review of a user's submission.

        Raises:
            SubmissionNotFoundError: If the user has not submitted the exam.
        """
        exam_id = exam_id or self._settings.default_exam_id
        submission = self.check_status(user_id, exam_id)
        if submission is None:
            raise SubmissionNotFoundError(user_id, exam_id)

        exam = self._exam_store.load_for_user(user_id)
        return build_review(exam, submission.answers, submission.report)
