"""Repository functions for tests, test grades and answer sheets."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import structlog

from examdesk.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class TestRecord:
    """Test (exam sitting) record from database."""

    __test__ = False  # not a pytest class

    id: str
    name: str
    subject_id: str
    class_id: str
    test_date: str
    max_marks: float
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GradeRecord:
    """Marks for one student in one test."""

    id: str
    test_id: str
    student_id: str
    marks: float
    remarks: str | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AnswerSheetRecord:
    """Uploaded answer sheet for one student in one test."""

    id: str
    test_id: str
    student_id: str
    subject_id: str
    answer_sheet_url: str | None
    text_content: str | None
    status: str | None
    created_at: str
    updated_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# TESTS
# =============================================================================


def create_test(
    name: str,
    subject_id: str,
    class_id: str,
    test_date: str,
    max_marks: float,
) -> TestRecord:
    test_id = new_id()
    with get_db() as conn:
        row = conn.execute(
            """
            INSERT INTO tests (id, name, subject_id, class_id, test_date, max_marks)
            VALUES (?, ?, ?, ?, ?, ?)
            RETURNING *
            """,
            (test_id, name, subject_id, class_id, test_date, max_marks),
        ).fetchone()
    logger.debug("tests.inserted", test_id=test_id)
    return _row_to_test(row)


def get_test(test_id: str) -> TestRecord | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM tests WHERE id = ?", (test_id,)).fetchone()
    return _row_to_test(row) if row else None


def list_tests(subject_id: str | None = None, class_id: str | None = None) -> list[TestRecord]:
    """List tests, newest date first, optionally filtered."""
    query = "SELECT * FROM tests WHERE 1=1"
    params: list[Any] = []
    if subject_id:
        query += " AND subject_id = ?"
        params.append(subject_id)
    if class_id:
        query += " AND class_id = ?"
        params.append(class_id)
    query += " ORDER BY test_date DESC"

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()
    return [_row_to_test(r) for r in rows]


def update_test(test_id: str, **fields: Any) -> TestRecord | None:
    allowed = ("name", "subject_id", "class_id", "test_date", "max_marks")
    updates = {k: v for k, v in fields.items() if k in allowed}
    if updates:
        assignments = ", ".join(f"{k} = ?" for k in updates)
        with get_db() as conn:
            conn.execute(
                f"UPDATE tests SET {assignments} WHERE id = ?",
                (*updates.values(), test_id),
            )
    return get_test(test_id)


def delete_test(test_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM tests WHERE id = ?", (test_id,))
    return cursor.rowcount > 0


# =============================================================================
# GRADES
# =============================================================================


def upsert_grade(
    test_id: str,
    student_id: str,
    marks: float,
    remarks: str | None = None,
) -> GradeRecord:
    """Insert or update a student's marks for a test."""
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO test_grades (id, test_id, student_id, marks, remarks)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(test_id, student_id)
            DO UPDATE SET marks = excluded.marks, remarks = excluded.remarks
            """,
            (new_id(), test_id, student_id, marks, remarks),
        )
        row = conn.execute(
            "SELECT * FROM test_grades WHERE test_id = ? AND student_id = ?",
            (test_id, student_id),
        ).fetchone()

    logger.debug("grades.upserted", test_id=test_id, student_id=student_id, marks=marks)
    return _row_to_grade(row)


def get_grade(test_id: str, student_id: str) -> GradeRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM test_grades WHERE test_id = ? AND student_id = ?",
            (test_id, student_id),
        ).fetchone()
    return _row_to_grade(row) if row else None


def list_grades(test_id: str) -> list[GradeRecord]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM test_grades WHERE test_id = ?", (test_id,)
        ).fetchall()
    return [_row_to_grade(r) for r in rows]


# =============================================================================
# ANSWER SHEETS
# =============================================================================


def upsert_answer_sheet(
    test_id: str,
    student_id: str,
    subject_id: str,
    answer_sheet_url: str,
) -> AnswerSheetRecord:
    """Record (or replace) a student's answer sheet for a test.

    Replacing a sheet clears any previously extracted text.
    """
    now = utc_now()
    with get_db() as conn:
        row = conn.execute(
            """
            INSERT INTO test_answers (
                id, test_id, student_id, subject_id, answer_sheet_url,
                status, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, 'uploaded', ?, ?)
            ON CONFLICT(test_id, student_id) DO UPDATE SET
                answer_sheet_url = excluded.answer_sheet_url,
                subject_id = excluded.subject_id,
                text_content = NULL,
                status = 'uploaded',
                updated_at = excluded.updated_at
            RETURNING *
            """,
            (new_id(), test_id, student_id, subject_id, answer_sheet_url, now, now),
        ).fetchone()
    return _row_to_answer(row)


def get_answer_sheet(test_id: str, student_id: str) -> AnswerSheetRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM test_answers WHERE test_id = ? AND student_id = ?",
            (test_id, student_id),
        ).fetchone()
    return _row_to_answer(row) if row else None


def list_answer_sheets(test_id: str) -> list[AnswerSheetRecord]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM test_answers WHERE test_id = ? ORDER BY created_at",
            (test_id,),
        ).fetchall()
    return [_row_to_answer(r) for r in rows]


def save_extracted_text(test_id: str, student_id: str, text: str | None) -> None:
    with get_db() as conn:
        conn.execute(
            """
            UPDATE test_answers SET text_content = ?, updated_at = ?
            WHERE test_id = ? AND student_id = ?
            """,
            (text, utc_now(), test_id, student_id),
        )


def delete_answer_sheet(test_id: str, student_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM test_answers WHERE test_id = ? AND student_id = ?",
            (test_id, student_id),
        )
    return cursor.rowcount > 0


def _row_to_test(row) -> TestRecord:
    return TestRecord(
        id=row["id"],
        name=row["name"],
        subject_id=row["subject_id"],
        class_id=row["class_id"],
        test_date=row["test_date"],
        max_marks=row["max_marks"],
        created_at=row["created_at"],
    )


def _row_to_grade(row) -> GradeRecord:
    return GradeRecord(
        id=row["id"],
        test_id=row["test_id"],
        student_id=row["student_id"],
        marks=row["marks"],
        remarks=row["remarks"],
    )


def _row_to_answer(row) -> AnswerSheetRecord:
    return AnswerSheetRecord(
        id=row["id"],
        test_id=row["test_id"],
        student_id=row["student_id"],
        subject_id=row["subject_id"],
        answer_sheet_url=row["answer_sheet_url"],
        text_content=row["text_content"],
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
