"""Shared fixtures: isolated working dir, database, object store and LLM mocks."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import fitz
import pytest

from examdesk.config import clear_config_cache
from examdesk.core.evaluation_workflow import reset_evaluation_tracker
from examdesk.db.academics_repository import create_class, create_subject
from examdesk.db.database import init_db
from examdesk.db.students_repository import create_student
from examdesk.db.tests_repository import create_test
from examdesk.prompts.registry import clear_cache
from examdesk.storage.object_store import LocalObjectStore
from examdesk.web.dependencies import reset_object_store

STORE_BASE_URL = "http://testserver/files"
TEST_SECRET = "test-secret"


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Run every test in its own directory with default config."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("EXAMDESK_CONFIG", raising=False)
    monkeypatch.setenv("EXAMDESK_SECRET", TEST_SECRET)
    clear_config_cache()
    clear_cache()
    reset_evaluation_tracker()
    reset_object_store()
    yield
    clear_config_cache()
    reset_evaluation_tracker()
    reset_object_store()


@pytest.fixture
def db(tmp_path):
    """Fresh SQLite database with the full schema."""
    db_path = tmp_path / "db" / "test.db"
    init_db(db_path)
    return db_path


@pytest.fixture
def store(tmp_path) -> LocalObjectStore:
    return LocalObjectStore(tmp_path / "storage", STORE_BASE_URL, TEST_SECRET)


@pytest.fixture
def mock_llm_client():
    """LLM client double; tests set return values per method."""
    client = MagicMock()
    client.simple_chat.return_value = ""
    client.chat_json.return_value = {}
    client.vision_text.return_value = ""
    return client


@pytest.fixture
def school(db):
    """A class, a subject, a test for both and one student in the class."""
    cls = create_class("Class A", department="Computer Science", year=2)
    subject = create_subject("Physics", "PHY101", 3)
    test = create_test("Unit Test 1", subject.id, cls.id, "2024-03-05", 20)
    student = create_student(
        name="Asha Patel",
        gr_number="GR100",
        roll_number="12",
        department="Computer Science",
        class_id=cls.id,
    )
    return SimpleNamespace(cls=cls, subject=subject, test=test, student=student)


@pytest.fixture
def make_pdf():
    """Build a PDF with one page per text (empty text = blank page)."""

    def _make(*pages: str) -> bytes:
        doc = fitz.open()
        for text in pages:
            page = doc.new_page()
            if text:
                page.insert_text((72, 72), text)
        data = doc.tobytes()
        doc.close()
        return data

    return _make


@pytest.fixture
def sample_evaluation() -> dict:
    """Evaluator reply for a two-question paper."""
    return {
        "student_name": "Asha Patel",
        "roll_no": "12",
        "class": "Class A",
        "subject": "Physics",
        "answers": [
            {
                "question_no": "1",
                "question": "State Newton's first law.",
                "answer": "A body stays at rest unless acted on.",
                "score": [4, 5],
                "remarks": "Missing uniform motion.",
                "confidence": 0.9,
            },
            {
                "question_no": "2",
                "question": "Define momentum.",
                "answer": "Mass times velocity.",
                "score": [5, 5],
                "remarks": "Correct.",
                "confidence": 0.95,
            },
        ],
    }
