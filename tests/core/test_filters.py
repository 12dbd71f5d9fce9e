"""Tests for listing search and filter helpers."""

from examdesk.core.filters import (
    filter_questions,
    is_multiple_choice,
    search_answer_sheets,
    search_students,
)

QUESTIONS = [
    {"text": "What is inertia?", "type": "Multiple Choice", "level": "remember"},
    {"text": "Explain Newton's second law.", "type": "Essay", "level": "understand"},
    {"text": "Pick the SI unit of force.", "type": "short answer", "options": ["N", "J"]},
    {"text": "Derive the equation of motion.", "type": "Long Answer", "level": "apply"},
]


class TestFilterQuestions:
    """Tests for filter_questions."""

    def test_all_mode_returns_everything(self):
        assert filter_questions(QUESTIONS) == QUESTIONS

    def test_multiple_choice_mode(self):
        """Type name or options make a question multiple choice."""
        result = filter_questions(QUESTIONS, question_mode="multiple-choice")
        assert [q["text"] for q in result] == [
            "What is inertia?",
            "Pick the SI unit of force.",
        ]

    def test_theory_mode(self):
        result = filter_questions(QUESTIONS, question_mode="theory")
        assert len(result) == 2
        assert all(not is_multiple_choice(q) for q in result)

    def test_search_is_case_insensitive(self):
        result = filter_questions(QUESTIONS, search_query="  NEWTON ")
        assert [q["text"] for q in result] == ["Explain Newton's second law."]

    def test_mode_and_search_combine(self):
        result = filter_questions(QUESTIONS, search_query="motion", question_mode="multiple-choice")
        assert result == []

    def test_missing_text(self):
        assert filter_questions([{"type": "Essay"}], search_query="x") == []


class TestSearchStudents:
    STUDENTS = [
        {"name": "Asha Patel", "gr_number": "GR100", "roll_number": "12", "email": None},
        {"name": "Ravi Kumar", "gr_number": "GR200", "roll_number": "7", "email": "ravi@school.edu"},
    ]

    def test_by_name(self):
        assert search_students(self.STUDENTS, "asha") == [self.STUDENTS[0]]

    def test_by_gr_number(self):
        assert search_students(self.STUDENTS, "gr200") == [self.STUDENTS[1]]

    def test_by_email(self):
        assert search_students(self.STUDENTS, "school.edu") == [self.STUDENTS[1]]

    def test_empty_query(self):
        assert search_students(self.STUDENTS, " ") == self.STUDENTS

    def test_records_with_to_dict(self, school):
        """Records are searched through their to_dict."""
        assert search_students([school.student], "patel") == [school.student]


class TestSearchAnswerSheets:
    def test_by_name_or_roll(self):
        rows = [
            {"student_name": "Asha Patel", "roll_number": "12"},
            {"student_name": "Ravi Kumar", "roll_number": "7"},
            {"student_name": None, "roll_number": None},
        ]
        assert search_answer_sheets(rows, "ravi") == [rows[1]]
        assert search_answer_sheets(rows, "12") == [rows[0]]
        assert search_answer_sheets(rows, "") == rows
