"""
Pytest configuration and fixtures.

Provides common test fixtures for all test modules.
"""

import json
import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest

from exam_portal.config import Settings, get_settings
from exam_portal.exams import ExamStore
from exam_portal.grading import GradingEngine
from exam_portal.models import ExamDefinition
from exam_portal.storage import InMemorySubmissionStore


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ==============================================================================
# Sample Exam Fixtures
# ==============================================================================


@pytest.fixture
def sample_exam_data() -> list[dict[str, Any]]:
    """Exam document in the JSON shape the portal stores on disk."""
    return [
        {
            "blockTitle": "Block 1: Basic Concepts",
            "problems": [
                {
                    "id": 1,
                    "type": "single",
                    "allocation": 3,
                    "question": "Which element has the highest electronegativity?",
                    "correctAnswer": "A",
                    "options": [
                        {"label": "A", "text": "Fluorine (F)", "percent": "85%",
                         "explanation": "Fluorine is the most electronegative element."},
                        {"label": "B", "text": "Chlorine (Cl)", "percent": "10%",
                         "explanation": "Chlorine is high, but less than Fluorine."},
                        {"label": "C", "text": "Oxygen (O)", "percent": "3%"},
                        {"label": "D", "text": "Neon (Ne)", "percent": "2%"},
                    ],
                },
                {
                    "id": 2,
                    "type": "multi",
                    "allocation": 5,
                    "question": "Which of the following are strong acids?",
                    "correctAnswer": ["A", "C"],
                    "options": [
                        {"label": "A", "text": "HCl"},
                        {"label": "B", "text": "CH3COOH"},
                        {"label": "C", "text": "H2SO4"},
                        {"label": "D", "text": "HF"},
                        {"label": "E", "text": "NH3"},
                    ],
                },
                {
                    "id": 3,
                    "type": "fill",
                    "allocation": 3,
                    "question": "Calculate the molar mass of water (H2O).",
                    "correctAnswer": "18",
                    "explanation": "2 * 1.008 (H) + 16.00 (O) = 18.02 g/mol",
                },
            ],
        },
        {
            "blockTitle": "Block 2: Stoichiometry",
            "problems": [
                {
                    "id": 30,
                    "type": "fill",
                    "allocation": 4,
                    "question": "Balance the combustion of propane.",
                    "correctAnswer": {"30-1": "1", "30-2": "5", "30-3": "3", "30-4": "4"},
                },
            ],
        },
    ]


@pytest.fixture
def sample_exam(sample_exam_data: list[dict[str, Any]]) -> ExamDefinition:
    """Parsed sample exam."""
    return ExamStore.parse(sample_exam_data)


@pytest.fixture
def sample_answers() -> dict[str, Any]:
    """Answers that get some problems right and some partly right."""
    return {
        "1": "B",
        "2": ["A"],
        "3": " 18 ",
        "30": {"30-1": "1", "30-2": "5", "30-3": "2", "30-4": ""},
    }


@pytest.fixture
def three_problem_exam() -> ExamDefinition:
    """One problem of each type."""
    return ExamStore.parse(
        [
            {
                "title": "Mixed",
                "problems": [
                    {
                        "id": "s1",
                        "type": "single",
                        "allocation": 3,
                        "correctAnswer": "B",
                        "options": [{"label": "A"}, {"label": "B"}, {"label": "C"}],
                    },
                    {
                        "id": "m1",
                        "type": "multi",
                        "allocation": 5,
                        "correctAnswer": ["A", "B"],
                        "options": [
                            {"label": "A"},
                            {"label": "B"},
                            {"label": "C"},
                            {"label": "D"},
                            {"label": "E"},
                        ],
                    },
                    {"id": "f1", "type": "fill", "allocation": 3, "correctAnswer": "42"},
                ],
            }
        ]
    )


# ==============================================================================
# Engine, Store and Settings Fixtures
# ==============================================================================


@pytest.fixture
def engine() -> GradingEngine:
    """A grading engine."""
    return GradingEngine()


@pytest.fixture
def exam_data_dir(temp_dir: Path, sample_exam_data: list[dict[str, Any]]) -> Path:
    """Directory holding the sample exam for admission year 115."""
    data_dir = temp_dir / "data"
    data_dir.mkdir()
    (data_dir / "115_exam_summer.json").write_text(json.dumps(sample_exam_data), encoding="utf-8")
    return data_dir


@pytest.fixture
def test_settings(temp_dir: Path, exam_data_dir: Path) -> Settings:
    """Create test settings pointing at temporary directories."""
    return Settings(
        exam_data_dir=exam_data_dir,
        results_dir=temp_dir / "results",
        default_exam_id="exam_summer_115",
    )


@pytest.fixture
def memory_store() -> InMemorySubmissionStore:
    """Empty in-memory submission store."""
    return InMemorySubmissionStore()


@pytest.fixture
def portal_env(
    monkeypatch: pytest.MonkeyPatch, temp_dir: Path, exam_data_dir: Path
) -> Generator[Path, None, None]:
    """Point the global settings at temporary directories."""
    results_dir = temp_dir / "results"
    monkeypatch.setenv("EXAM_PORTAL_EXAM_DATA_DIR", str(exam_data_dir))
    monkeypatch.setenv("EXAM_PORTAL_RESULTS_DIR", str(results_dir))
    get_settings.cache_clear()
    yield results_dir
    get_settings.cache_clear()


# ==============================================================================
# File Fixtures
# ==============================================================================


@pytest.fixture
def exam_file(exam_data_dir: Path) -> Path:
    """Path of the sample exam document."""
    return exam_data_dir / "115_exam_summer.json"


@pytest.fixture
def answers_file(temp_dir: Path, sample_answers: dict[str, Any]) -> Path:
    """Sample answers written to disk."""
    file_path = temp_dir / "answers.json"
    file_path.write_text(json.dumps(sample_answers), encoding="utf-8")
    return file_path
