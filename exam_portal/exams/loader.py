"""
Exam definition loader.

Reads exam definitions from JSON documents. The document is either a list
of blocks or an object whose values are blocks. The file for a user is
chosen by the admission year, the leading characters of the user id.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from exam_portal.config import Settings, get_settings
from exam_portal.models import ExamDefinition

logger = logging.getLogger(__name__)


class ExamLoadError(Exception):
    """Raised when an exam definition cannot be read or parsed."""

    def __init__(self, message: str, path: str | Path | None = None, cause: Exception | None = None):
        self.path = str(path) if path is not None else None
        self.cause = cause
        if path is not None:
            message = f"Failed to load exam '{path}': {message}"
        super().__init__(message)


class ExamStore:
    """
    Supplies exam definitions keyed by admission year.

    Parsed exams are cached per resolved path for the lifetime of the store.
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize the exam store.

        Args:
            settings: Configuration settings. Uses global settings if not provided.
        """
        self._settings = settings if settings is not None else get_settings()
        self._cache: dict[Path, ExamDefinition] = {}

    def admission_year(self, user_id: str) -> str:
        """Leading characters of the user id naming the admission year."""
        length = self._settings.admission_year_length
        if len(user_id) < length:
            raise ExamLoadError(
                f"User id '{user_id}' is shorter than the admission year ({length} characters)"
            )
        return user_id[:length]

    def path_for(self, user_id: str) -> Path:
        """Exam definition file for a user."""
        file_name = self._settings.exam_file_template.format(
            admission_year=self.admission_year(user_id)
        )
        return self._settings.exam_data_dir / file_name

    def load_for_user(self, user_id: str) -> ExamDefinition:
        """Load the exam a user sits."""
        return self.load(self.path_for(user_id))

    def load(self, path: Path | str) -> ExamDefinition:
        """
        Load an exam definition from a JSON file.

        Args:
            path: Path to the JSON document.

        Returns:
            Parsed ExamDefinition.

        Raises:
            ExamLoadError: If the file is missing, not JSON, or not an exam.
        """
        path = Path(path)
        key = path.resolve()
        if key in self._cache:
            return self._cache[key]

        if not path.is_file():
            raise ExamLoadError("File does not exist", path)

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ExamLoadError(f"Invalid JSON: {e}", path, cause=e) from e
        except (OSError, UnicodeDecodeError) as e:
            raise ExamLoadError(f"Could not read file: {e}", path, cause=e) from e

        exam = self.parse(data, source=path)
        logger.info("Loaded exam %s with %d problems", path.name, exam.problem_count)
        self._cache[key] = exam
        return exam

    @staticmethod
    def parse(data: Any, source: Path | str | None = None) -> ExamDefinition:
        """
        Build an exam definition from decoded JSON.

        Args:
            data: A list of blocks, an object of blocks, or ``{"blocks": [...]}``.
            source: Where the data came from, for error messages.

        Returns:
            Parsed ExamDefinition.

        Raises:
            ExamLoadError: If the data does not describe an exam.
        """
        title = ""
        if isinstance(data, dict) and "blocks" in data:
            title = str(data.get("title", ""))
            data = data["blocks"]
        if isinstance(data, dict):
            data = list(data.values())
        if not isinstance(data, list):
            raise ExamLoadError(
                f"Expected a list or object of blocks, got {type(data).__name__}", source
            )

        try:
            return ExamDefinition.model_validate({"title": title, "blocks": data})
        except ValidationError as e:
            raise ExamLoadError(f"Invalid exam definition: {e}", source, cause=e) from e
