"""Repository functions for the file_uploads table.

Each row points at a stored object. Its purpose is encoded in upload_type:
``{scope}_{kind}_{owner_id}_{topic}`` where scope is "subject" or "test".
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import structlog

from examdesk.db.database import get_db, new_id

logger = structlog.get_logger(__name__)


@dataclass
class FileUploadRecord:
    """File upload record from database."""

    id: str
    file_name: str
    file_type: str
    file_size: int
    file_url: str
    upload_type: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def insert_file_upload(
    file_name: str,
    file_type: str,
    file_size: int,
    file_url: str,
    upload_type: str,
) -> FileUploadRecord:
    file_id = new_id()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO file_uploads (id, file_name, file_type, file_size, file_url, upload_type)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (file_id, file_name, file_type, file_size, file_url, upload_type),
        )
        row = conn.execute("SELECT * FROM file_uploads WHERE id = ?", (file_id,)).fetchone()

    logger.debug("file_uploads.inserted", file_id=file_id, upload_type=upload_type)
    return _row_to_record(row)


def list_file_uploads(upload_type_prefix: str) -> list[FileUploadRecord]:
    """List uploads whose upload_type starts with a prefix, newest first."""
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT * FROM file_uploads WHERE substr(upload_type, 1, ?) = ?
            ORDER BY created_at DESC, rowid DESC
            """,
            (len(upload_type_prefix), upload_type_prefix),
        ).fetchall()
    return [_row_to_record(r) for r in rows]


def delete_file_upload(file_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM file_uploads WHERE id = ?", (file_id,))
    deleted = cursor.rowcount > 0
    if deleted:
        logger.debug("file_uploads.deleted", file_id=file_id)
    return deleted


def get_file_upload(file_id: str) -> FileUploadRecord | None:
    with get_db() as conn:
        row = conn.execute("SELECT * FROM file_uploads WHERE id = ?", (file_id,)).fetchone()
    return _row_to_record(row) if row else None


def _row_to_record(row) -> FileUploadRecord:
    return FileUploadRecord(
        id=row["id"],
        file_name=row["file_name"],
        file_type=row["file_type"],
        file_size=row["file_size"],
        file_url=row["file_url"],
        upload_type=row["upload_type"],
        created_at=row["created_at"],
    )
