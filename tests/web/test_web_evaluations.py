"""Tests for evaluation endpoints."""

import pytest

from examdesk.core.test_files import assign_topic_to_test, upload_subject_file
from examdesk.db.evaluations_repository import get_evaluation
from examdesk.db.students_repository import create_student
from examdesk.db.tests_repository import get_grade, upsert_answer_sheet
from examdesk.llm.client import LLMConnectionError

QP_TEXT = "Q1. State Newton's first law of motion. Q2. Define momentum and give its SI unit."
AK_TEXT = "A1. A body stays at rest or in uniform motion unless acted on. A2. p = mv, kg m/s."
ANSWER_TEXT = "1. Things keep doing what they already do unless pushed. 2. Mass times velocity."


@pytest.fixture
def assigned(school, store, make_pdf):
    """Topic Motion assigned to the test and an answer sheet for the student."""
    for kind, text in (("questionPaper", QP_TEXT), ("answerKey", AK_TEXT)):
        upload_subject_file(
            store, school.subject.id, "Motion", kind, f"{kind}.pdf", make_pdf(text), "application/pdf"
        )
    assign_topic_to_test(store, school.test.id, school.subject.id, "Motion")
    sheet = store.put(f"answer-sheets/{school.test.id}/sheet.pdf", make_pdf(ANSWER_TEXT))
    upsert_answer_sheet(school.test.id, school.student.id, school.subject.id, sheet.url)
    return school


class TestEvaluateOne:
    """Tests for POST /api/evaluations."""

    def test_success(self, client, assigned, mock_llm_client, sample_evaluation):
        mock_llm_client.chat_json.return_value = sample_evaluation

        response = client.post(
            "/api/evaluations",
            json={"test_id": assigned.test.id, "student_id": assigned.student.id, "topic": "Motion"},
        )

        assert response.status_code == 200
        assert response.json()["summary"] == {"totalScore": [9, 10], "percentage": 90}
        assert get_grade(assigned.test.id, assigned.student.id).marks == 9

        [listed] = client.get(f"/api/evaluations/tests/{assigned.test.id}").json()
        assert listed["status"] == "completed"

    def test_unknown_test(self, client, db):
        response = client.post(
            "/api/evaluations",
            json={"test_id": "missing", "student_id": "x", "topic": "Motion"},
        )
        assert response.status_code == 404

    def test_topic_not_assigned(self, client, assigned):
        response = client.post(
            "/api/evaluations",
            json={"test_id": assigned.test.id, "student_id": assigned.student.id, "topic": "Optics"},
        )
        assert response.status_code == 400

    def test_no_answer_sheet(self, client, assigned):
        other = create_student(name="Ravi", gr_number="GR200", department="CS")
        response = client.post(
            "/api/evaluations",
            json={"test_id": assigned.test.id, "student_id": other.id, "topic": "Motion"},
        )
        assert response.status_code == 404

    def test_model_failure(self, client, assigned, mock_llm_client):
        mock_llm_client.chat_json.side_effect = LLMConnectionError("refused")

        response = client.post(
            "/api/evaluations",
            json={"test_id": assigned.test.id, "student_id": assigned.student.id, "topic": "Motion"},
        )

        assert response.status_code == 502
        assert get_evaluation(assigned.test.id, assigned.student.id).status == "failed"


class TestBatch:
    """Tests for batch evaluation and progress polling."""

    def test_batch_for_all_sheets(self, client, assigned, mock_llm_client, sample_evaluation):
        mock_llm_client.chat_json.return_value = sample_evaluation

        started = client.post(
            "/api/evaluations/batch", json={"test_id": assigned.test.id, "topic": "Motion"}
        )

        assert started.status_code == 202
        assert started.json()["total"] == 1
        progress = client.get(f"/api/evaluations/batch/{started.json()['batch_id']}").json()
        assert progress["done"] is True
        assert progress["completed"] == 1
        assert progress["percentage"] == 100
        assert progress["results"][assigned.student.id]["summary"]["percentage"] == 90

    def test_batch_records_failures(self, client, assigned, mock_llm_client, sample_evaluation):
        mock_llm_client.chat_json.return_value = sample_evaluation
        other = create_student(name="Ravi", gr_number="GR200", department="CS")

        started = client.post(
            "/api/evaluations/batch",
            json={
                "test_id": assigned.test.id,
                "topic": "Motion",
                "student_ids": [assigned.student.id, other.id],
            },
        ).json()

        progress = client.get(f"/api/evaluations/batch/{started['batch_id']}").json()
        assert progress["completed"] == 1
        assert progress["failed"] == 1
        assert other.id in progress["errors"]

    def test_batch_without_students(self, client, school):
        response = client.post(
            "/api/evaluations/batch", json={"test_id": school.test.id, "topic": "Motion"}
        )
        assert response.status_code == 400

    def test_batch_unknown_test(self, client, db):
        response = client.post(
            "/api/evaluations/batch", json={"test_id": "missing", "topic": "Motion"}
        )
        assert response.status_code == 404

    def test_unknown_batch(self, client):
        assert client.get("/api/evaluations/batch/missing").status_code == 404


class TestResetEvaluation:
    def test_reset(self, client, assigned, mock_llm_client, sample_evaluation):
        mock_llm_client.chat_json.return_value = sample_evaluation
        client.post(
            "/api/evaluations",
            json={"test_id": assigned.test.id, "student_id": assigned.student.id, "topic": "Motion"},
        )
        url = f"/api/evaluations/tests/{assigned.test.id}/students/{assigned.student.id}"

        assert client.delete(url).status_code == 204
        assert get_evaluation(assigned.test.id, assigned.student.id) is None
        assert get_grade(assigned.test.id, assigned.student.id).marks == 0
        assert client.delete(url).status_code == 404
