"""
Submission Storage Module.

Persists graded submissions with at most one submission per (user, exam):
- JSON files on disk (JsonSubmissionStore)
- In-memory (InMemorySubmissionStore)
"""

from exam_portal.storage.base import AlreadySubmittedError, StorageError, SubmissionStore
from exam_portal.storage.json_store import JsonSubmissionStore
from exam_portal.storage.memory_store import InMemorySubmissionStore

__all__ = [
    "AlreadySubmittedError",
    "InMemorySubmissionStore",
    "JsonSubmissionStore",
    "StorageError",
    "SubmissionStore",
]
