"""Repository functions for classes, subjects and course outcomes."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import structlog

from examdesk.db.database import get_db, new_id

logger = structlog.get_logger(__name__)


@dataclass
class ClassRecord:
    """Class (cohort) record from database."""

    id: str
    name: str
    department: str | None
    year: int | None
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SubjectRecord:
    """Subject record from database."""

    id: str
    name: str
    subject_code: str
    semester: int
    information_pdf_url: str | None
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CourseOutcomeRecord:
    """Course outcome (CO) attached to a subject."""

    id: str
    subject_id: str
    co_number: int
    description: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# CLASSES
# =============================================================================


def create_class(name: str, department: str | None = None, year: int | None = None) -> ClassRecord:
    class_id = new_id()
    with get_db() as conn:
        row = conn.execute(
            "INSERT INTO classes (id, name, department, year) VALUES (?, ?, ?, ?) RETURNING *",
            (class_id, name, department, year),
        ).fetchone()
    logger.debug("classes.inserted", class_id=class_id)
    return _row_to_class(row)


def get_class(class_id: str) -> ClassRecord | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM classes WHERE id = ?", (class_id,)).fetchone()
    return _row_to_class(row) if row else None


def list_classes() -> list[ClassRecord]:
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM classes ORDER BY name").fetchall()
    return [_row_to_class(r) for r in rows]


def update_class(class_id: str, **fields: Any) -> ClassRecord | None:
    updates = {k: v for k, v in fields.items() if k in ("name", "department", "year")}
    if updates:
        assignments = ", ".join(f"{k} = ?" for k in updates)
        with get_db() as conn:
            conn.execute(
                f"UPDATE classes SET {assignments} WHERE id = ?",
                (*updates.values(), class_id),
            )
    return get_class(class_id)


def delete_class(class_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM classes WHERE id = ?", (class_id,))
    return cursor.rowcount > 0


# =============================================================================
# SUBJECTS
# =============================================================================


def create_subject(
    name: str,
    subject_code: str,
    semester: int,
    information_pdf_url: str | None = None,
) -> SubjectRecord:
    subject_id = new_id()
    with get_db() as conn:
        row = conn.execute(
            """
            INSERT INTO subjects (id, name, subject_code, semester, information_pdf_url)
            VALUES (?, ?, ?, ?, ?)
            RETURNING *
            """,
            (subject_id, name, subject_code, semester, information_pdf_url),
        ).fetchone()
    logger.debug("subjects.inserted", subject_id=subject_id)
    return _row_to_subject(row)


def get_subject(subject_id: str) -> SubjectRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM subjects WHERE id = ?", (subject_id,)
        ).fetchone()
    return _row_to_subject(row) if row else None


def list_subjects() -> list[SubjectRecord]:
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM subjects ORDER BY semester, name").fetchall()
    return [_row_to_subject(r) for r in rows]


def update_subject(subject_id: str, **fields: Any) -> SubjectRecord | None:
    allowed = ("name", "subject_code", "semester", "information_pdf_url")
    updates = {k: v for k, v in fields.items() if k in allowed}
    if updates:
        assignments = ", ".join(f"{k} = ?" for k in updates)
        with get_db() as conn:
            conn.execute(
                f"UPDATE subjects SET {assignments} WHERE id = ?",
                (*updates.values(), subject_id),
            )
    return get_subject(subject_id)


def delete_subject(subject_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM subjects WHERE id = ?", (subject_id,))
    return cursor.rowcount > 0


# =============================================================================
# COURSE OUTCOMES
# =============================================================================


def add_course_outcome(subject_id: str, co_number: int, description: str) -> CourseOutcomeRecord:
    outcome_id = new_id()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO course_outcomes (id, subject_id, co_number, description)
            VALUES (?, ?, ?, ?)
            """,
            (outcome_id, subject_id, co_number, description),
        )
    return CourseOutcomeRecord(
        id=outcome_id,
        subject_id=subject_id,
        co_number=co_number,
        description=description,
    )


def list_course_outcomes(subject_id: str) -> list[CourseOutcomeRecord]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM course_outcomes WHERE subject_id = ? ORDER BY co_number",
            (subject_id,),
        ).fetchall()
    return [
        CourseOutcomeRecord(
            id=r["id"],
            subject_id=r["subject_id"],
            co_number=r["co_number"],
            description=r["description"],
        )
        for r in rows
    ]


def delete_course_outcome(outcome_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM course_outcomes WHERE id = ?", (outcome_id,))
    return cursor.rowcount > 0


def _row_to_class(row) -> ClassRecord:
    return ClassRecord(
        id=row["id"],
        name=row["name"],
        department=row["department"],
        year=row["year"],
        created_at=row["created_at"],
    )


def _row_to_subject(row) -> SubjectRecord:
    return SubjectRecord(
        id=row["id"],
        name=row["name"],
        subject_code=row["subject_code"],
        semester=row["semester"],
        information_pdf_url=row["information_pdf_url"],
        created_at=row["created_at"],
    )
