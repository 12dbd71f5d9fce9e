"""Search and filter helpers for listings.

All functions are pure: they take plain dicts (or records with
``to_dict``) and return a filtered list in the original order.
"""

from __future__ import annotations

from typing import Any, Iterable, Literal

QuestionMode = Literal["all", "multiple-choice", "theory"]


def _as_dict(item: Any) -> dict[str, Any]:
    if isinstance(item, dict):
        return item
    return item.to_dict()


def is_multiple_choice(question: dict[str, Any]) -> bool:
    """Multiple choice by type name, or by having options."""
    qtype = str(question.get("type") or "").lower()
    return "multiple choice" in qtype or bool(question.get("options"))


def filter_questions(
    questions: Iterable[dict[str, Any]],
    search_query: str = "",
    question_mode: QuestionMode = "all",
) -> list[dict[str, Any]]:
    """Filter questions by mode, then by text search.

    Args:
        questions: Question dicts with ``text``, ``type`` and optional ``options``
        search_query: Case-insensitive substring of the question text
        question_mode: "all", "multiple-choice" or "theory"
    """
    filtered = list(questions)

    if question_mode == "multiple-choice":
        filtered = [q for q in filtered if is_multiple_choice(q)]
    elif question_mode == "theory":
        filtered = [q for q in filtered if not is_multiple_choice(q)]

    query = search_query.strip().lower()
    if query:
        filtered = [q for q in filtered if query in str(q.get("text") or "").lower()]

    return filtered


def _matches(values: Iterable[Any], query: str) -> bool:
    return any(query in str(v).lower() for v in values if v is not None)


def search_students(students: Iterable[Any], query: str) -> list[Any]:
    """Students whose name, GR number, roll number or email contains ``query``."""
    q = query.strip().lower()
    items = list(students)
    if not q:
        return items
    return [
        s
        for s in items
        if _matches(
            (
                _as_dict(s).get("name"),
                _as_dict(s).get("gr_number"),
                _as_dict(s).get("roll_number"),
                _as_dict(s).get("email"),
            ),
            q,
        )
    ]


def search_answer_sheets(rows: Iterable[dict[str, Any]], query: str) -> list[dict[str, Any]]:
    """Answer-sheet rows whose student name or roll number contains ``query``."""
    q = query.strip().lower()
    items = list(rows)
    if not q:
        return items
    return [
        r
        for r in items
        if _matches((r.get("student_name"), r.get("roll_number")), q)
    ]
