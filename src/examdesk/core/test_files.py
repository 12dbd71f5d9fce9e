"""Subject and test paper files.

A subject keeps, per topic, a question paper, an answer key and an
optional handwritten (model) paper. Assigning a topic to a test copies
those objects under test-specific keys. Every stored file has a
file_uploads row whose upload_type reads
``{scope}_{kind}_{owner_id}_{topic}`` (scope: subject | test).
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Literal

import structlog

from examdesk.core.documents import (
    extract_filename_from_url,
    get_file_extension,
    sanitize_topic,
)
from examdesk.db.files_repository import (
    FileUploadRecord,
    delete_file_upload,
    insert_file_upload,
    list_file_uploads,
)
from examdesk.storage.object_store import LocalObjectStore, StorageError
from examdesk.storage.upload_router import upload

logger = structlog.get_logger(__name__)

Scope = Literal["subject", "test"]

FILE_KINDS = ("questionPaper", "answerKey", "handwrittenPaper")
_URL_FIELDS = {
    "questionPaper": "question_paper_url",
    "answerKey": "answer_key_url",
    "handwrittenPaper": "handwritten_paper_url",
}

SUBJECT_UPLOAD_ENDPOINT = "studyMaterialUploader"
GRADING_UPLOAD_ENDPOINT = "gradingDocumentUploader"
GRADING_KINDS = ("questionPaper", "answerKey")


class AssignmentError(Exception):
    """Raised when subject files cannot be assigned to a test."""

    pass


@dataclass
class FileGroup:
    """Files for one topic of a subject or test."""

    scope: str
    owner_id: str
    topic: str
    question_paper_url: str | None = None
    answer_key_url: str | None = None
    handwritten_paper_url: str | None = None
    created_at: str = ""

    @property
    def id(self) -> str:
        return f"{self.owner_id}_{self.topic}"

    @property
    def is_complete(self) -> bool:
        return bool(self.question_paper_url and self.answer_key_url)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            f"{self.scope}_id": self.owner_id,
            "topic": self.topic,
            "question_paper_url": self.question_paper_url,
            "answer_key_url": self.answer_key_url,
            "handwritten_paper_url": self.handwritten_paper_url,
            "created_at": self.created_at,
        }


def upload_type_for(scope: Scope, kind: str, owner_id: str, topic: str) -> str:
    return f"{scope}_{kind}_{owner_id}_{topic}"


def _parse_upload_type(upload_type: str, scope: Scope, owner_id: str) -> tuple[str, str] | None:
    """Split an upload_type into (kind, topic) if it belongs to owner_id."""
    for kind in FILE_KINDS:
        prefix = f"{scope}_{kind}_{owner_id}_"
        if upload_type.startswith(prefix):
            topic = upload_type[len(prefix):]
            if topic:
                return kind, topic
    return None


def group_file_uploads(
    records: list[FileUploadRecord],
    scope: Scope,
    owner_id: str,
) -> list[FileGroup]:
    """Group upload rows by topic.

    Rows are expected newest first; the newest file of each kind wins.
    Groups come back in the order of their newest file.
    """
    groups: dict[str, FileGroup] = {}
    for record in records:
        parsed = _parse_upload_type(record.upload_type, scope, owner_id)
        if parsed is None:
            continue
        kind, topic = parsed

        group = groups.get(topic)
        if group is None:
            group = FileGroup(scope=scope, owner_id=owner_id, topic=topic, created_at=record.created_at)
            groups[topic] = group

        field_name = _URL_FIELDS[kind]
        if getattr(group, field_name) is None:
            setattr(group, field_name, record.file_url)

    return list(groups.values())


def _fetch_groups(scope: Scope, owner_id: str) -> list[FileGroup]:
    try:
        records = list_file_uploads(f"{scope}_")
    except Exception as e:
        logger.error("test_files.fetch_failed", scope=scope, owner_id=owner_id, error=str(e))
        return []
    return group_file_uploads(records, scope, owner_id)


def fetch_subject_files(subject_id: str) -> list[FileGroup]:
    """All topics with files for a subject, newest first."""
    return _fetch_groups("subject", subject_id)


def fetch_test_files(test_id: str) -> list[FileGroup]:
    """Topics assigned to a test that have both a question paper and an answer key."""
    return [g for g in _fetch_groups("test", test_id) if g.is_complete]


def upload_subject_file(
    store: LocalObjectStore,
    subject_id: str,
    topic: str,
    file_kind: str,
    file_name: str,
    data: bytes,
    content_type: str,
) -> FileUploadRecord:
    """Store a subject file and record it under its topic.

    Raises:
        ValueError: Unknown file kind or empty topic
        UploadRejectedError: File fails the upload policy; question papers and answer keys
            must be PDF or image
    """
    if file_kind not in FILE_KINDS:
        raise ValueError(f"Unknown file kind: {file_kind}")
    if not topic.strip():
        raise ValueError("Topic is required")

    endpoint = GRADING_UPLOAD_ENDPOINT if file_kind in GRADING_KINDS else SUBJECT_UPLOAD_ENDPOINT
    result = upload(
        store,
        endpoint,
        file_name,
        data,
        content_type,
        key_prefix=f"subjects/{subject_id}",
    )
    record = insert_file_upload(
        file_name=result.file_name,
        file_type=result.content_type,
        file_size=result.file_size,
        file_url=result.url,
        upload_type=upload_type_for("subject", file_kind, subject_id, topic.strip()),
    )
    logger.info("test_files.subject_file_uploaded", subject_id=subject_id, topic=topic, kind=file_kind)
    return record


def _verify_source_files(store: LocalObjectStore, group: FileGroup) -> bool:
    if not group.is_complete:
        return False
    for url in (group.question_paper_url, group.answer_key_url):
        key = store.key_from_url(url or "")
        if key is None or not store.exists(key):
            return False
    return True


def _copy_and_record(
    store: LocalObjectStore,
    source_url: str,
    dest_base: str,
    test_id: str,
    kind: str,
    topic: str,
) -> FileUploadRecord:
    source_key = store.key_from_url(source_url)
    if source_key is None:
        raise AssignmentError("Could not extract path from source URL")

    ext = get_file_extension(extract_filename_from_url(source_url))
    dest_key = f"{dest_base}.{ext}"
    stored = store.copy(source_key, dest_key)

    return insert_file_upload(
        file_name=dest_key,
        file_type=stored.content_type,
        file_size=stored.size,
        file_url=stored.url,
        upload_type=upload_type_for("test", kind, test_id, topic),
    )


def assign_subject_files_to_test(
    store: LocalObjectStore,
    test_id: str,
    subject_file: FileGroup,
) -> list[FileGroup]:
    """Copy a subject topic's files to a test.

    Returns:
        The refreshed test file listing

    Raises:
        AssignmentError: Question paper or answer key missing, or copy failed
    """
    if not _verify_source_files(store, subject_file):
        raise AssignmentError("Source files not available or incomplete")

    timestamp = int(time.time() * 1000)
    dest_prefix = f"test_{test_id}_{sanitize_topic(subject_file.topic)}"

    try:
        for kind in FILE_KINDS:
            url = getattr(subject_file, _URL_FIELDS[kind])
            if url:
                _copy_and_record(
                    store,
                    url,
                    f"{dest_prefix}_{kind}_{timestamp}",
                    test_id,
                    kind,
                    subject_file.topic,
                )
    except (StorageError, ValueError) as e:
        raise AssignmentError(f"Failed to assign files: {e}") from e

    logger.info("test_files.assigned", test_id=test_id, topic=subject_file.topic)
    return fetch_test_files(test_id)


def assign_topic_to_test(
    store: LocalObjectStore,
    test_id: str,
    subject_id: str,
    topic: str,
) -> list[FileGroup]:
    """Assign the files of a subject topic (looked up by name) to a test."""
    for group in fetch_subject_files(subject_id):
        if group.topic == topic:
            return assign_subject_files_to_test(store, test_id, group)
    raise AssignmentError(f"No files found for topic '{topic}'")


def delete_file_group(store: LocalObjectStore, prefix: str, topic: str) -> int:
    """Delete every file of a topic.

    Args:
        store: Object store holding the files
        prefix: ``test_{test_id}`` for test files, otherwise the subject ID
            (``subject_{subject_id}`` is also accepted)
        topic: Topic whose files are removed

    Returns:
        Number of files removed
    """
    if prefix.startswith("test_"):
        scope: Scope = "test"
        owner_id = prefix[len("test_"):]
    else:
        scope = "subject"
        owner_id = prefix[len("subject_"):] if prefix.startswith("subject_") else prefix

    removed = 0
    for record in list_file_uploads(f"{scope}_"):
        parsed = _parse_upload_type(record.upload_type, scope, owner_id)
        if parsed is None or parsed[1] != topic:
            continue

        key = store.key_from_url(record.file_url)
        if key is not None:
            store.delete(key)
        delete_file_upload(record.id)
        removed += 1

    logger.info("test_files.group_deleted", scope=scope, owner_id=owner_id, topic=topic, files=removed)
    return removed
