"""Repository functions for generated questions, generated papers
and paper analysis history.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

import structlog

from examdesk.db.database import get_db, new_id

logger = structlog.get_logger(__name__)


@dataclass
class QuestionSetRecord:
    """A saved batch of generated questions."""

    id: str
    subject_id: str
    topic: str
    question_mode: str
    questions: list[dict[str, Any]] = field(default_factory=list)
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PaperRecord:
    """A generated question paper."""

    id: str
    subject_id: str
    topic: str
    paper_url: str
    questions: list[dict[str, Any]] = field(default_factory=list)
    header_url: str | None = None
    footer_url: str | None = None
    content_url: str | None = None
    question_mode: str = "all"
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AnalysisRecord:
    """A saved question-paper analysis."""

    id: str
    title: str
    analysis: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# GENERATED QUESTIONS
# =============================================================================


def save_question_set(
    subject_id: str,
    topic: str,
    questions: list[dict[str, Any]],
    question_mode: str = "all",
) -> QuestionSetRecord:
    set_id = new_id()
    with get_db() as conn:
        row = conn.execute(
            """
            INSERT INTO generated_questions (id, subject_id, topic, question_mode, questions)
            VALUES (?, ?, ?, ?, ?)
            RETURNING *
            """,
            (set_id, subject_id, topic, question_mode, json.dumps(questions)),
        ).fetchone()
    logger.debug("generated_questions.inserted", set_id=set_id, count=len(questions))
    return _row_to_question_set(row)


def get_question_set(set_id: str) -> QuestionSetRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM generated_questions WHERE id = ?", (set_id,)
        ).fetchone()
    return _row_to_question_set(row) if row else None


def list_question_sets(subject_id: str | None = None) -> list[QuestionSetRecord]:
    with get_db() as conn:
        if subject_id:
            rows = conn.execute(
                """
                SELECT * FROM generated_questions WHERE subject_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (subject_id,),
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM generated_questions ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
    return [_row_to_question_set(r) for r in rows]


def delete_question_set(set_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM generated_questions WHERE id = ?", (set_id,))
    return cursor.rowcount > 0


# =============================================================================
# GENERATED PAPERS
# =============================================================================


def save_paper(
    subject_id: str,
    topic: str,
    paper_url: str,
    questions: list[dict[str, Any]],
    header_url: str | None = None,
    footer_url: str | None = None,
    content_url: str | None = None,
    question_mode: str = "all",
) -> PaperRecord:
    paper_id = new_id()
    with get_db() as conn:
        row = conn.execute(
            """
            INSERT INTO generated_papers (
                id, subject_id, topic, paper_url, questions,
                header_url, footer_url, content_url, question_mode
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING *
            """,
            (
                paper_id,
                subject_id,
                topic,
                paper_url,
                json.dumps(questions),
                header_url,
                footer_url,
                content_url,
                question_mode,
            ),
        ).fetchone()
    logger.debug("generated_papers.inserted", paper_id=paper_id)
    return _row_to_paper(row)


def get_paper(paper_id: str) -> PaperRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM generated_papers WHERE id = ?", (paper_id,)
        ).fetchone()
    return _row_to_paper(row) if row else None


def list_papers(subject_id: str | None = None) -> list[PaperRecord]:
    with get_db() as conn:
        if subject_id:
            rows = conn.execute(
                """
                SELECT * FROM generated_papers WHERE subject_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (subject_id,),
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM generated_papers ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
    return [_row_to_paper(r) for r in rows]


def delete_paper(paper_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM generated_papers WHERE id = ?", (paper_id,))
    return cursor.rowcount > 0


# =============================================================================
# ANALYSIS HISTORY
# =============================================================================


def save_analysis(title: str, analysis: dict[str, Any]) -> AnalysisRecord:
    analysis_id = new_id()
    with get_db() as conn:
        row = conn.execute(
            "INSERT INTO analysis_history (id, title, analysis) VALUES (?, ?, ?) RETURNING *",
            (analysis_id, title, json.dumps(analysis)),
        ).fetchone()
    return _row_to_analysis(row)


def get_analysis(analysis_id: str) -> AnalysisRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM analysis_history WHERE id = ?", (analysis_id,)
        ).fetchone()
    return _row_to_analysis(row) if row else None


def list_analyses() -> list[AnalysisRecord]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM analysis_history ORDER BY created_at DESC, rowid DESC"
        ).fetchall()
    return [_row_to_analysis(r) for r in rows]


def delete_analysis(analysis_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM analysis_history WHERE id = ?", (analysis_id,))
    return cursor.rowcount > 0


def _row_to_question_set(row) -> QuestionSetRecord:
    return QuestionSetRecord(
        id=row["id"],
        subject_id=row["subject_id"],
        topic=row["topic"],
        question_mode=row["question_mode"],
        questions=json.loads(row["questions"]) if row["questions"] else [],
        created_at=row["created_at"],
    )


def _row_to_paper(row) -> PaperRecord:
    return PaperRecord(
        id=row["id"],
        subject_id=row["subject_id"],
        topic=row["topic"],
        paper_url=row["paper_url"],
        questions=json.loads(row["questions"]) if row["questions"] else [],
        header_url=row["header_url"],
        footer_url=row["footer_url"],
        content_url=row["content_url"],
        question_mode=row["question_mode"],
        created_at=row["created_at"],
    )


def _row_to_analysis(row) -> AnalysisRecord:
    return AnalysisRecord(
        id=row["id"],
        title=row["title"],
        analysis=json.loads(row["analysis"]) if row["analysis"] else {},
        created_at=row["created_at"],
    )
