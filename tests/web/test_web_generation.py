"""Tests for question generation and paper assembly endpoints."""

import json

from examdesk.llm.client import LLMConnectionError

QUESTIONS = [
    {"text": "What is inertia?", "type": "Multiple Choice", "level": "remember"},
    {"text": "Explain F = ma.", "type": "Short Answer", "level": "understand"},
]


class TestGenerateQuestions:
    """Tests for POST /api/generate/questions."""

    def test_success(self, client, school, mock_llm_client):
        mock_llm_client.simple_chat.return_value = json.dumps(QUESTIONS)

        response = client.post(
            "/api/generate/questions",
            json={
                "subject": "Physics",
                "topic": "Laws of Motion",
                "blooms_taxonomy": {"remember": 50, "understand": 50},
                "difficulty": 1,
                "subject_id": school.subject.id,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["questions"] == QUESTIONS
        assert data["question_set_id"] is not None
        assert data["message"] == "Generated 2 questions"
        user_message = mock_llm_client.simple_chat.call_args.kwargs["user_message"]
        assert "Difficulty level: Easy" in user_message

    def test_unparseable_reply(self, client, mock_llm_client):
        mock_llm_client.simple_chat.return_value = "I would rather not."

        response = client.post(
            "/api/generate/questions", json={"subject": "Physics", "topic": "Optics"}
        )

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["raw_content"] == "I would rather not."

    def test_llm_down(self, client, mock_llm_client):
        mock_llm_client.simple_chat.side_effect = LLMConnectionError("refused")
        response = client.post(
            "/api/generate/questions", json={"subject": "Physics", "topic": "Optics"}
        )
        assert response.status_code == 502

    def test_difficulty_range(self, client):
        response = client.post(
            "/api/generate/questions",
            json={"subject": "Physics", "topic": "Optics", "difficulty": 5},
        )
        assert response.status_code == 422


class TestGeneratePaper:
    """Tests for POST /api/generate/paper."""

    def test_assembles_and_stores(self, client, school, store):
        questions = [dict(q, selected=True) for q in QUESTIONS]
        response = client.post(
            "/api/generate/paper",
            json={
                "subject": "Physics",
                "topic": "Laws of Motion",
                "subject_code": "PHY101",
                "questions": questions,
                "subject_id": school.subject.id,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert "PHYSICS (PHY101)" in data["content"]
        assert data["file_name"].startswith("laws_of_motion_physics_paper_")
        assert data["paper_id"] is not None
        key = store.key_from_url(data["paper_url"])
        assert store.get(key).decode("utf-8") == data["content"]

    def test_custom_header(self, client, store):
        header = store.put("headers/school.txt", b"ST. XAVIER'S COLLEGE", "text/plain")
        response = client.post(
            "/api/generate/paper",
            json={
                "subject": "Physics",
                "topic": "Optics",
                "header_url": header.url,
                "questions": [{"text": "Define focal length.", "type": "Short Answer", "selected": True}],
            },
        )
        assert response.status_code == 200
        assert response.json()["content"].startswith("ST. XAVIER'S COLLEGE")
        assert response.json()["paper_id"] is None

    def test_nothing_selected(self, client, store):
        response = client.post(
            "/api/generate/paper",
            json={"subject": "Physics", "topic": "Optics", "questions": QUESTIONS},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "At least one question must be selected"

    def test_empty_questions(self, client):
        response = client.post(
            "/api/generate/paper",
            json={"subject": "Physics", "topic": "Optics", "questions": []},
        )
        assert response.status_code == 422

    def test_topic_with_slashes(self, client, store):
        response = client.post(
            "/api/generate/paper",
            json={
                "subject": "Physics",
                "topic": "Vectors // Scalars",
                "questions": [{"text": "Define velocity.", "type": "Short Answer", "selected": True}],
            },
        )

        assert response.status_code == 200
        assert response.json()["file_name"].startswith("vectors_scalars_physics_paper_")
