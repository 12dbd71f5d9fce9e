"""Tests for subject/test file groups and topic assignment."""

import sqlite3

import pytest

from examdesk.core.test_files import (
    AssignmentError,
    FileGroup,
    assign_subject_files_to_test,
    assign_topic_to_test,
    delete_file_group,
    fetch_subject_files,
    fetch_test_files,
    group_file_uploads,
    upload_subject_file,
    upload_type_for,
)
from examdesk.db.files_repository import insert_file_upload, list_file_uploads
from examdesk.storage.upload_router import DOCX_TYPE, PPTX_TYPE, UnsupportedFileTypeError


def _upload(store, subject_id, topic, kind, name="paper.pdf", data=b"%PDF-1.4"):
    return upload_subject_file(store, subject_id, topic, kind, name, data, "application/pdf")


class TestGrouping:
    """Tests for upload_type parsing and grouping."""

    def test_upload_type_for(self):
        assert upload_type_for("subject", "answerKey", "s1", "Laws of Motion") == (
            "subject_answerKey_s1_Laws of Motion"
        )

    def test_group_newest_wins(self, db):
        """Rows come newest first, so the first URL per kind is kept."""
        insert_file_upload("old.pdf", "application/pdf", 1, "http://x/old.pdf", "subject_questionPaper_s1_Motion")
        insert_file_upload("new.pdf", "application/pdf", 1, "http://x/new.pdf", "subject_questionPaper_s1_Motion")
        insert_file_upload("key.pdf", "application/pdf", 1, "http://x/key.pdf", "subject_answerKey_s1_Motion")
        insert_file_upload("other.pdf", "application/pdf", 1, "http://x/o.pdf", "subject_answerKey_s2_Motion")

        groups = group_file_uploads(list_file_uploads("subject_"), "subject", "s1")

        assert len(groups) == 1
        group = groups[0]
        assert group.question_paper_url == "http://x/new.pdf"
        assert group.answer_key_url == "http://x/key.pdf"
        assert group.handwritten_paper_url is None
        assert group.is_complete

    def test_topic_with_underscores(self, db):
        insert_file_upload("a.pdf", "application/pdf", 1, "http://x/a.pdf", "subject_questionPaper_s1_unit_1_part_2")
        groups = fetch_subject_files("s1")
        assert groups[0].topic == "unit_1_part_2"

    def test_group_id_and_dict(self):
        group = FileGroup(scope="test", owner_id="t1", topic="Motion", question_paper_url="q")
        data = group.to_dict()
        assert data["id"] == "t1_Motion"
        assert data["test_id"] == "t1"
        assert not group.is_complete

    def test_fetch_failure_returns_empty(self, monkeypatch):
        """Listing errors are logged and give an empty list."""

        def broken(prefix):
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr("examdesk.core.test_files.list_file_uploads", broken)
        assert fetch_subject_files("s1") == []
        assert fetch_test_files("t1") == []


class TestUploadSubjectFile:
    def test_records_upload(self, school, store):
        record = _upload(store, school.subject.id, " Motion ", "questionPaper", name="Unit 1.pdf")

        assert record.upload_type == f"subject_questionPaper_{school.subject.id}_Motion"
        assert store.key_from_url(record.file_url).startswith(f"subjects/{school.subject.id}/")
        assert record.file_name == "Unit 1.pdf"

        groups = fetch_subject_files(school.subject.id)
        assert [g.topic for g in groups] == ["Motion"]
        assert not groups[0].is_complete

    def test_unknown_kind(self, school, store):
        with pytest.raises(ValueError):
            _upload(store, school.subject.id, "Motion", "syllabus")

    def test_empty_topic(self, school, store):
        with pytest.raises(ValueError):
            _upload(store, school.subject.id, "  ", "answerKey")

    @pytest.mark.parametrize("kind", ["questionPaper", "answerKey"])
    @pytest.mark.parametrize("content_type", [DOCX_TYPE, PPTX_TYPE])
    def test_grading_documents_reject_office_files(self, school, store, kind, content_type):
        with pytest.raises(UnsupportedFileTypeError):
            upload_subject_file(
                store, school.subject.id, "Motion", kind, "paper.docx", b"PK\x03\x04", content_type
            )

        assert fetch_subject_files(school.subject.id) == []
        assert store.list(f"subjects/{school.subject.id}") == []

    def test_grading_documents_accept_images(self, school, store):
        record = upload_subject_file(
            store, school.subject.id, "Motion", "answerKey", "key.png", b"\x89PNG", "image/png"
        )
        assert record.file_type == "image/png"

    def test_handwritten_paper_accepts_docx(self, school, store):
        record = upload_subject_file(
            store, school.subject.id, "Motion", "handwrittenPaper", "model.docx", b"PK\x03\x04", DOCX_TYPE
        )
        assert record.upload_type == f"subject_handwrittenPaper_{school.subject.id}_Motion"


class TestAssignment:
    """Tests for copying subject files to a test."""

    def test_assign_copies_files(self, school, store):
        subject_id, test_id = school.subject.id, school.test.id
        _upload(store, subject_id, "Laws of Motion", "questionPaper", data=b"questions")
        _upload(store, subject_id, "Laws of Motion", "answerKey", data=b"answers")
        _upload(store, subject_id, "Laws of Motion", "handwrittenPaper", data=b"model")

        groups = assign_topic_to_test(store, test_id, subject_id, "Laws of Motion")

        assert len(groups) == 1
        group = groups[0]
        assert group.topic == "Laws of Motion"
        assert group.to_dict()["test_id"] == test_id

        key = store.key_from_url(group.question_paper_url)
        assert key.startswith(f"test_{test_id}_Laws_of_Motion_questionPaper_")
        assert key.endswith(".pdf")
        assert store.get(key) == b"questions"
        assert store.get(store.key_from_url(group.answer_key_url)) == b"answers"
        assert store.get(store.key_from_url(group.handwritten_paper_url)) == b"model"

        assert fetch_test_files(test_id) == groups

    def test_incomplete_group_rejected(self, school, store):
        _upload(store, school.subject.id, "Optics", "questionPaper")
        with pytest.raises(AssignmentError, match="not available or incomplete"):
            assign_topic_to_test(store, school.test.id, school.subject.id, "Optics")
        assert fetch_test_files(school.test.id) == []

    def test_missing_object_rejected(self, school, store):
        """Rows whose objects are gone cannot be assigned."""
        qp = _upload(store, school.subject.id, "Optics", "questionPaper")
        _upload(store, school.subject.id, "Optics", "answerKey")
        store.delete(store.key_from_url(qp.file_url))

        with pytest.raises(AssignmentError):
            assign_topic_to_test(store, school.test.id, school.subject.id, "Optics")

    def test_unknown_topic(self, school, store):
        with pytest.raises(AssignmentError, match="No files found for topic 'Waves'"):
            assign_topic_to_test(store, school.test.id, school.subject.id, "Waves")

    def test_assign_group_directly(self, store, db):
        qp = store.put("elsewhere/q.pdf", b"q")
        ak = store.put("elsewhere/k.pdf", b"k")
        group = FileGroup(
            scope="subject",
            owner_id="s1",
            topic="Heat",
            question_paper_url=qp.url,
            answer_key_url=ak.url,
        )
        groups = assign_subject_files_to_test(store, "t9", group)
        assert [g.topic for g in groups] == ["Heat"]
        assert groups[0].handwritten_paper_url is None


class TestDeleteFileGroup:
    def test_delete_test_topic(self, school, store):
        subject_id, test_id = school.subject.id, school.test.id
        _upload(store, subject_id, "Motion", "questionPaper")
        _upload(store, subject_id, "Motion", "answerKey")
        groups = assign_topic_to_test(store, test_id, subject_id, "Motion")
        test_key = store.key_from_url(groups[0].question_paper_url)

        removed = delete_file_group(store, f"test_{test_id}", "Motion")

        assert removed == 2
        assert fetch_test_files(test_id) == []
        assert not store.exists(test_key)
        assert fetch_subject_files(subject_id)[0].is_complete

    def test_delete_subject_topic(self, school, store):
        subject_id = school.subject.id
        _upload(store, subject_id, "Motion", "questionPaper")
        _upload(store, subject_id, "Optics", "questionPaper")

        assert delete_file_group(store, subject_id, "Motion") == 1
        assert [g.topic for g in fetch_subject_files(subject_id)] == ["Optics"]
        assert delete_file_group(store, f"subject_{subject_id}", "Optics") == 1
        assert store.list(f"subjects/{subject_id}/") == []

    def test_nothing_to_delete(self, db, store):
        assert delete_file_group(store, "test_t1", "Motion") == 0
