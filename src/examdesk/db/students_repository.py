"""Repository functions for the students table.

Provides CRUD operations for students plus GR number checks
and subject enrollments.
"""

from __future__ import annotations

import sqlite3
from dataclasses import asdict, dataclass, field
from typing import Any

import structlog

from examdesk.db.database import get_db, new_id

logger = structlog.get_logger(__name__)

# Columns a caller may set on create/update
STUDENT_FIELDS = (
    "name",
    "gr_number",
    "roll_number",
    "year",
    "class_id",
    "department",
    "overall_percentage",
    "email",
    "parent_name",
    "parent_contact",
)


class DuplicateGrNumberError(Exception):
    """Raised when a GR number is already registered."""

    def __init__(self, gr_number: str):
        self.gr_number = gr_number
        super().__init__(f"GR number '{gr_number}' already exists")


@dataclass
class StudentRecord:
    """Student record from database."""

    id: str
    name: str
    gr_number: str
    department: str
    roll_number: str | None = None
    year: int | None = None
    class_id: str | None = None
    overall_percentage: float | None = None
    email: str | None = None
    parent_name: str | None = None
    parent_contact: str | None = None
    created_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class BulkCreateResult:
    """Outcome of a bulk insert."""

    created: list[StudentRecord] = field(default_factory=list)
    skipped: list[dict[str, Any]] = field(default_factory=list)


def gr_number_exists(gr_number: str, exclude_id: str | None = None) -> bool:
    """Check whether a GR number is taken.

    Args:
        gr_number: GR number to look up
        exclude_id: Student ID to ignore (the one being edited)
    """
    query = "SELECT id FROM students WHERE gr_number = ?"
    params: list[Any] = [gr_number]
    if exclude_id:
        query += " AND id != ?"
        params.append(exclude_id)

    with get_db() as conn:
        row = conn.execute(query, params).fetchone()
    return row is not None


def create_student(**fields: Any) -> StudentRecord:
    """Insert a new student.

    Raises:
        DuplicateGrNumberError: If gr_number already exists
    """
    values = {k: fields.get(k) for k in STUDENT_FIELDS}
    student_id = new_id()

    try:
        with get_db() as conn:
            row = conn.execute(
                f"""
                INSERT INTO students (id, {", ".join(STUDENT_FIELDS)})
                VALUES (?, {", ".join("?" for _ in STUDENT_FIELDS)})
                RETURNING *
                """,
                (student_id, *values.values()),
            ).fetchone()
    except sqlite3.IntegrityError as e:
        if "gr_number" in str(e):
            raise DuplicateGrNumberError(values["gr_number"]) from e
        raise

    logger.debug("students.inserted", student_id=student_id)
    return _row_to_record(row)


def bulk_create_students(rows: list[dict[str, Any]]) -> BulkCreateResult:
    """Insert many students, skipping rows whose GR number is taken."""
    result = BulkCreateResult()
    for row in rows:
        try:
            result.created.append(create_student(**row))
        except DuplicateGrNumberError:
            result.skipped.append(row)

    logger.info(
        "students.bulk_created",
        created=len(result.created),
        skipped=len(result.skipped),
    )
    return result


def get_student(student_id: str) -> StudentRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM students WHERE id = ?", (student_id,)
        ).fetchone()
    return _row_to_record(row) if row else None


def list_students(class_id: str | None = None) -> list[StudentRecord]:
    """List students ordered by name, optionally within a class."""
    with get_db() as conn:
        if class_id:
            rows = conn.execute(
                "SELECT * FROM students WHERE class_id = ? ORDER BY name",
                (class_id,),
            ).fetchall()
        else:
            rows = conn.execute("SELECT * FROM students ORDER BY name").fetchall()
    return [_row_to_record(r) for r in rows]


def update_student(student_id: str, **fields: Any) -> StudentRecord | None:
    """Update the given columns of a student.

    Returns:
        Updated record, or None if the student doesn't exist

    Raises:
        DuplicateGrNumberError: If the new gr_number is taken
    """
    updates = {k: v for k, v in fields.items() if k in STUDENT_FIELDS}
    if updates:
        assignments = ", ".join(f"{k} = ?" for k in updates)
        try:
            with get_db() as conn:
                conn.execute(
                    f"UPDATE students SET {assignments} WHERE id = ?",
                    (*updates.values(), student_id),
                )
        except sqlite3.IntegrityError as e:
            if "gr_number" in str(e):
                raise DuplicateGrNumberError(updates["gr_number"]) from e
            raise
        logger.debug("students.updated", student_id=student_id)

    return get_student(student_id)


def delete_student(student_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM students WHERE id = ?", (student_id,))

    deleted = cursor.rowcount > 0
    if deleted:
        logger.debug("students.deleted", student_id=student_id)
    return deleted


# =============================================================================
# ENROLLMENTS
# =============================================================================


def enroll_student(student_id: str, subject_id: str) -> bool:
    """Enroll a student in a subject.

    Returns:
        True if enrolled, False if already enrolled
    """
    with get_db() as conn:
        cursor = conn.execute(
            """
            INSERT OR IGNORE INTO subject_enrollments (id, student_id, subject_id)
            VALUES (?, ?, ?)
            """,
            (new_id(), student_id, subject_id),
        )
    return cursor.rowcount > 0


def unenroll_student(student_id: str, subject_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM subject_enrollments WHERE student_id = ? AND subject_id = ?",
            (student_id, subject_id),
        )
    return cursor.rowcount > 0


def list_subject_ids_for_student(student_id: str) -> list[str]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT subject_id FROM subject_enrollments WHERE student_id = ?",
            (student_id,),
        ).fetchall()
    return [r["subject_id"] for r in rows]


def list_students_for_subject(subject_id: str) -> list[StudentRecord]:
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT s.* FROM students s
            JOIN subject_enrollments e ON e.student_id = s.id
            WHERE e.subject_id = ?
            ORDER BY s.name
            """,
            (subject_id,),
        ).fetchall()
    return [_row_to_record(r) for r in rows]


def _row_to_record(row) -> StudentRecord:
    """Convert database row to StudentRecord."""
    return StudentRecord(
        id=row["id"],
        name=row["name"],
        gr_number=row["gr_number"],
        department=row["department"],
        roll_number=row["roll_number"],
        year=row["year"],
        class_id=row["class_id"],
        overall_percentage=row["overall_percentage"],
        email=row["email"],
        parent_name=row["parent_name"],
        parent_contact=row["parent_contact"],
        created_at=row["created_at"],
    )
