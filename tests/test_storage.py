"""
Unit tests for submission stores.

Both stores must keep at most one submission per (user, exam) pair,
including when saves race each other.
"""

import json
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from pathlib import Path

import pytest

from exam_portal.grading import GradingEngine
from exam_portal.models import Submission
from exam_portal.storage import (
    AlreadySubmittedError,
    InMemorySubmissionStore,
    JsonSubmissionStore,
    StorageError,
    SubmissionStore,
)


@pytest.fixture
def sample_submission(engine: GradingEngine, sample_exam, sample_answers) -> Submission:
    """A graded submission for user 1150042."""
    return Submission(
        user_id="1150042",
        exam_id="exam_summer_115",
        answers=sample_answers,
        report=engine.grade(sample_exam, sample_answers),
    )


@pytest.fixture(params=["json", "memory"])
def store(request: pytest.FixtureRequest, temp_dir: Path) -> SubmissionStore:
    """Each store implementation in turn."""
    if request.param == "json":
        return JsonSubmissionStore(temp_dir / "results")
    return InMemorySubmissionStore()


class TestSubmissionStores:
    """Behaviour shared by every store."""

    def test_get_missing(self, store: SubmissionStore) -> None:
        assert store.get("1150042", "exam_summer_115") is None
        assert not store.exists("1150042", "exam_summer_115")

    def test_save_and_get(self, store: SubmissionStore, sample_submission: Submission) -> None:
        store.save(sample_submission)
        loaded = store.get("1150042", "exam_summer_115")

        assert loaded is not None
        assert loaded.answers == sample_submission.answers
        assert loaded.report.scores == sample_submission.report.scores
        assert loaded.report.total == Decimal("8")
        assert loaded.submitted_at == sample_submission.submitted_at
        assert store.exists("1150042", "exam_summer_115")

    def test_second_save_rejected(self, store: SubmissionStore, sample_submission: Submission) -> None:
        store.save(sample_submission)

        with pytest.raises(AlreadySubmittedError) as exc_info:
            store.save(sample_submission.model_copy(update={"answers": {}}))

        assert exc_info.value.user_id == "1150042"
        assert store.get("1150042", "exam_summer_115").answers == sample_submission.answers  # type: ignore[union-attr]

    def test_other_exam_is_independent(
        self, store: SubmissionStore, sample_submission: Submission
    ) -> None:
        store.save(sample_submission)
        store.save(sample_submission.model_copy(update={"exam_id": "exam_winter_115"}))

        assert store.exists("1150042", "exam_winter_115")

    def test_concurrent_saves(self, store: SubmissionStore, sample_submission: Submission) -> None:
        def attempt(_: int) -> bool:
            try:
                store.save(sample_submission)
            except AlreadySubmittedError:
                return False
            return True

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(attempt, range(16)))

        assert outcomes.count(True) == 1


class TestJsonSubmissionStore:
    """Tests specific to the JSON file store."""

    def test_file_layout(self, temp_dir: Path, sample_submission: Submission) -> None:
        store = JsonSubmissionStore(temp_dir)
        store.save(sample_submission)

        path = temp_dir / "exam_summer_115" / "1150042.json"
        assert path.exists()
        assert store.path_for("1150042", "exam_summer_115") == path

    def test_record_has_flat_scores(self, temp_dir: Path, sample_submission: Submission) -> None:
        store = JsonSubmissionStore(temp_dir)
        store.save(sample_submission)
        record = json.loads((temp_dir / "exam_summer_115" / "1150042.json").read_text())

        assert record["scores"] == {"1": 0.0, "2": 3.0, "3": 3.0, "30": 2.0, "total": 8.0}
        assert record["total_score"] == 8.0
        assert record["user_id"] == "1150042"

    @pytest.mark.parametrize("user_id", ["../escape", "a/b", "", ".."])
    def test_unsafe_ids_rejected(self, temp_dir: Path, user_id: str) -> None:
        with pytest.raises(StorageError, match="Invalid user id"):
            JsonSubmissionStore(temp_dir).get(user_id, "exam_summer_115")

    def test_corrupted_file(self, temp_dir: Path) -> None:
        path = temp_dir / "exam_summer_115" / "1150042.json"
        path.parent.mkdir(parents=True)
        path.write_text("{}", encoding="utf-8")

        with pytest.raises(StorageError, match="invalid"):
            JsonSubmissionStore(temp_dir).get("1150042", "exam_summer_115")


class TestInMemorySubmissionStore:
    """Tests specific to the in-memory store."""

    def test_len(self, memory_store: InMemorySubmissionStore, sample_submission: Submission) -> None:
        assert len(memory_store) == 0
        memory_store.save(sample_submission)
        assert len(memory_store) == 1
