"""Repository functions for the paper_evaluations table."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Literal

import structlog

from examdesk.db.database import get_db, new_id, utc_now

logger = structlog.get_logger(__name__)

EvaluationStatus = Literal["pending", "in_progress", "completed", "failed"]


@dataclass
class EvaluationRecord:
    """Stored evaluation of one student's paper."""

    id: str
    test_id: str
    student_id: str
    subject_id: str
    status: str
    evaluation_data: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def get_or_create_in_progress(test_id: str, student_id: str, subject_id: str) -> EvaluationRecord:
    """Find the evaluation for (test, student) and reset it to in_progress.

    Creates the row when none exists. Existing data is cleared.
    """
    now = utc_now()
    with get_db() as conn:
        row = conn.execute(
            """
            INSERT INTO paper_evaluations (
                id, test_id, student_id, subject_id, status,
                evaluation_data, created_at, updated_at
            ) VALUES (?, ?, ?, ?, 'in_progress', '{}', ?, ?)
            ON CONFLICT(test_id, student_id) DO UPDATE SET
                status = 'in_progress',
                evaluation_data = '{}',
                updated_at = excluded.updated_at
            RETURNING *
            """,
            (new_id(), test_id, student_id, subject_id, now, now),
        ).fetchone()

    record = _row_to_record(row)
    logger.debug("evaluations.in_progress", evaluation_id=record.id)
    return record


def set_status(
    evaluation_id: str,
    status: EvaluationStatus,
    evaluation_data: dict[str, Any] | None = None,
) -> None:
    with get_db() as conn:
        conn.execute(
            """
            UPDATE paper_evaluations
            SET status = ?, evaluation_data = ?, updated_at = ?
            WHERE id = ?
            """,
            (status, json.dumps(evaluation_data or {}), utc_now(), evaluation_id),
        )
    logger.debug("evaluations.status_updated", evaluation_id=evaluation_id, status=status)


def get_evaluation(test_id: str, student_id: str) -> EvaluationRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM paper_evaluations WHERE test_id = ? AND student_id = ?",
            (test_id, student_id),
        ).fetchone()
    return _row_to_record(row) if row else None


def list_evaluations(test_id: str) -> list[EvaluationRecord]:
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM paper_evaluations WHERE test_id = ? ORDER BY updated_at DESC",
            (test_id,),
        ).fetchall()
    return [_row_to_record(r) for r in rows]


def delete_evaluation(test_id: str, student_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM paper_evaluations WHERE test_id = ? AND student_id = ?",
            (test_id, student_id),
        )
    return cursor.rowcount > 0


def _row_to_record(row) -> EvaluationRecord:
    return EvaluationRecord(
        id=row["id"],
        test_id=row["test_id"],
        student_id=row["student_id"],
        subject_id=row["subject_id"],
        status=row["status"],
        evaluation_data=json.loads(row["evaluation_data"]) if row["evaluation_data"] else {},
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
