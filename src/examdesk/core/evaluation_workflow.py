"""Answer-sheet evaluation workflow.

Responsibilities:
- Assemble an evaluation request from a test, student and assigned topic
- Track evaluation state in paper_evaluations (in_progress/completed/failed)
- Retry transient download/OCR failures with exponential backoff
- Write back the grade and the OCR text on success
- Track progress of batch runs in memory
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

import structlog

from examdesk.config import load_app_config
from examdesk.core.documents import add_cache_buster
from examdesk.core.paper_evaluator import EvaluationError, evaluate_paper
from examdesk.core.test_files import fetch_test_files
from examdesk.db.academics_repository import get_class, get_subject
from examdesk.db.database import utc_now
from examdesk.db.evaluations_repository import (
    delete_evaluation,
    get_or_create_in_progress,
    set_status,
)
from examdesk.db.students_repository import get_student
from examdesk.db.tests_repository import (
    get_answer_sheet,
    get_grade,
    get_test,
    save_extracted_text,
    upsert_grade,
)
from examdesk.llm.client import LLMClient
from examdesk.storage.object_store import LocalObjectStore, StorageError

logger = structlog.get_logger(__name__)

RETRYABLE_MARKERS = (
    "Timeout while downloading",
    "invalid_image_url",
    "Failed to download",
    "OCR extraction failed",
)
RESET_REMARKS = "Reset due to answer sheet reupload"


def is_retryable_error(message: str) -> bool:
    return any(marker in message for marker in RETRYABLE_MARKERS)


@dataclass
class EvaluationRequest:
    """Everything needed to evaluate one student's answer sheet."""

    test_id: str
    student_id: str
    subject_id: str
    question_paper: dict[str, Any]
    answer_key: dict[str, Any]
    student_info: dict[str, Any]


def build_evaluation_request(test_id: str, student_id: str, topic: str) -> EvaluationRequest:
    """Load the test, student and assigned topic files for an evaluation.

    Raises:
        EvaluationError: Test, student or topic files not found
    """
    test = get_test(test_id)
    if test is None:
        raise EvaluationError(f"Test '{test_id}' not found")

    student = get_student(student_id)
    if student is None:
        raise EvaluationError(f"Student '{student_id}' not found")

    group = next((g for g in fetch_test_files(test_id) if g.topic == topic), None)
    if group is None:
        raise EvaluationError(f"No question paper and answer key assigned for topic '{topic}'")

    subject = get_subject(test.subject_id)
    class_id = student.class_id or test.class_id
    cls = get_class(class_id) if class_id else None

    return EvaluationRequest(
        test_id=test_id,
        student_id=student_id,
        subject_id=test.subject_id,
        question_paper={"url": group.question_paper_url, "topic": topic},
        answer_key={"url": group.answer_key_url, "topic": topic},
        student_info={
            "name": student.name,
            "roll_number": student.roll_number,
            "class": cls.name if cls else None,
            "subject": subject.name if subject else None,
        },
    )


def evaluate_student(
    request: EvaluationRequest,
    client: LLMClient,
    store: LocalObjectStore,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Callable[[int, str], None] | None = None,
) -> dict[str, Any]:
    """Evaluate one student and persist the outcome.

    Args:
        request: Documents and student details
        client: LLM client for OCR and grading
        store: Object store holding the documents
        sleep: Called with the backoff delay between attempts
        on_retry: Called with (attempt, error) before each retry

    Returns:
        The evaluation dict

    Raises:
        EvaluationError: No answer sheet, or the final attempt failed
    """
    config = load_app_config().evaluation

    sheet = get_answer_sheet(request.test_id, request.student_id)
    if sheet is None or not sheet.answer_sheet_url:
        raise EvaluationError("No answer sheet found for this student")

    record = get_or_create_in_progress(request.test_id, request.student_id, request.subject_id)

    timestamp = int(time.time() * 1000)
    question_paper = {
        **request.question_paper,
        "url": add_cache_buster(request.question_paper["url"], timestamp),
    }
    answer_key = {
        **request.answer_key,
        "url": add_cache_buster(request.answer_key["url"], timestamp),
    }
    student_answer = {"url": add_cache_buster(sheet.answer_sheet_url, timestamp)}

    retry_count = 0
    while True:
        try:
            evaluation = evaluate_paper(
                question_paper,
                answer_key,
                student_answer,
                request.student_info,
                client=client,
                store=store,
            )
            break
        except (EvaluationError, StorageError) as e:
            error = str(e)
            if is_retryable_error(error) and retry_count < config.max_retries:
                retry_count += 1
                set_status(
                    record.id,
                    "in_progress",
                    {
                        "error": error,
                        "retry_attempt": retry_count,
                        "last_error_timestamp": utc_now(),
                    },
                )
                delay = config.base_retry_delay_s * 2 ** (retry_count - 1)
                logger.warning(
                    "evaluation.retrying",
                    student_id=request.student_id,
                    attempt=retry_count,
                    delay_s=delay,
                    error=error,
                )
                if on_retry is not None:
                    on_retry(retry_count, error)
                sleep(delay)
                continue

            set_status(record.id, "failed", {"error": error, "retries_attempted": retry_count})
            logger.error(
                "evaluation.failed",
                student_id=request.student_id,
                retries=retry_count,
                error=error,
            )
            if isinstance(e, EvaluationError):
                raise
            raise EvaluationError(error) from e
        except Exception as e:
            set_status(record.id, "failed", {"error": str(e), "retries_attempted": retry_count})
            logger.exception(
                "evaluation.crashed",
                student_id=request.student_id,
                retries=retry_count,
            )
            raise

    set_status(record.id, "completed", evaluation)

    assigned, possible = evaluation["summary"]["totalScore"]
    upsert_grade(
        request.test_id,
        request.student_id,
        marks=assigned,
        remarks=f"Auto-evaluated: {assigned}/{possible}",
    )
    if evaluation.get("text"):
        save_extracted_text(request.test_id, request.student_id, evaluation["text"])

    logger.info(
        "evaluation.completed",
        test_id=request.test_id,
        student_id=request.student_id,
        percentage=evaluation["summary"]["percentage"],
        retries=retry_count,
    )
    return evaluation


def reset_evaluation(test_id: str, student_id: str) -> bool:
    """Forget an evaluation so the student can be evaluated again.

    Removes the evaluation row and extracted text, and zeroes an existing grade.
    Returns True when an evaluation row was deleted.
    """
    deleted = delete_evaluation(test_id, student_id)
    save_extracted_text(test_id, student_id, None)
    if get_grade(test_id, student_id) is not None:
        upsert_grade(test_id, student_id, marks=0, remarks=RESET_REMARKS)
    logger.info("evaluation.reset", test_id=test_id, student_id=student_id, deleted=deleted)
    return deleted


# =============================================================================
# BATCH PROGRESS
# =============================================================================


@dataclass
class BatchProgress:
    """Snapshot of a batch run."""

    batch_id: str
    test_id: str
    total: int
    completed: int = 0
    failed: int = 0
    evaluating: list[str] = field(default_factory=list)
    results: dict[str, dict[str, Any]] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    retry_counts: dict[str, int] = field(default_factory=dict)

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 100
        return round((self.completed + self.failed) / self.total * 100)

    @property
    def done(self) -> bool:
        return self.completed + self.failed >= self.total

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "test_id": self.test_id,
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "evaluating": list(self.evaluating),
            "percentage": self.percentage,
            "results": dict(self.results),
            "errors": dict(self.errors),
            "retry_counts": dict(self.retry_counts),
            "done": self.done,
        }


class EvaluationTracker:
    """In-memory progress of batch evaluations.

    Thread-safe: batches run in background threads while the API polls.
    """

    def __init__(self):
        self._batches: dict[str, BatchProgress] = {}
        self._lock = threading.Lock()

    def start_batch(self, test_id: str, student_ids: list[str]) -> str:
        batch_id = uuid.uuid4().hex[:12]
        with self._lock:
            self._batches[batch_id] = BatchProgress(
                batch_id=batch_id,
                test_id=test_id,
                total=len(student_ids),
            )
        logger.info("evaluation_batch.started", batch_id=batch_id, total=len(student_ids))
        return batch_id

    def mark_started(self, batch_id: str, student_id: str) -> None:
        with self._lock:
            batch = self._batches[batch_id]
            if student_id not in batch.evaluating:
                batch.evaluating.append(student_id)

    def mark_completed(self, batch_id: str, student_id: str, result: dict[str, Any]) -> None:
        with self._lock:
            batch = self._batches[batch_id]
            if student_id in batch.evaluating:
                batch.evaluating.remove(student_id)
            batch.completed += 1
            batch.results[student_id] = result

    def mark_failed(self, batch_id: str, student_id: str, error: str) -> None:
        with self._lock:
            batch = self._batches[batch_id]
            if student_id in batch.evaluating:
                batch.evaluating.remove(student_id)
            batch.failed += 1
            batch.errors[student_id] = error

    def record_retry(self, batch_id: str, student_id: str) -> None:
        with self._lock:
            batch = self._batches[batch_id]
            batch.retry_counts[student_id] = batch.retry_counts.get(student_id, 0) + 1

    def progress(self, batch_id: str) -> BatchProgress | None:
        """Copy of the batch state, or None for an unknown batch."""
        with self._lock:
            batch = self._batches.get(batch_id)
            if batch is None:
                return None
            return BatchProgress(
                batch_id=batch.batch_id,
                test_id=batch.test_id,
                total=batch.total,
                completed=batch.completed,
                failed=batch.failed,
                evaluating=list(batch.evaluating),
                results=dict(batch.results),
                errors=dict(batch.errors),
                retry_counts=dict(batch.retry_counts),
            )


def run_batch(
    tracker: EvaluationTracker,
    batch_id: str,
    test_id: str,
    student_ids: list[str],
    topic: str,
    client: LLMClient,
    store: LocalObjectStore,
    sleep: Callable[[float], None] = time.sleep,
) -> BatchProgress | None:
    """Evaluate students one after another, recording every outcome.

    A failing student is recorded and the batch moves on.
    """
    for student_id in student_ids:
        tracker.mark_started(batch_id, student_id)
        try:
            request = build_evaluation_request(test_id, student_id, topic)
            result = evaluate_student(
                request,
                client,
                store,
                sleep=sleep,
                on_retry=lambda attempt, error, sid=student_id: tracker.record_retry(batch_id, sid),
            )
        except EvaluationError as e:
            tracker.mark_failed(batch_id, student_id, str(e))
            continue
        except Exception as e:
            logger.exception("evaluation_batch.student_crashed", student_id=student_id)
            tracker.mark_failed(batch_id, student_id, str(e))
            continue
        tracker.mark_completed(batch_id, student_id, result)

    progress = tracker.progress(batch_id)
    if progress is not None:
        logger.info(
            "evaluation_batch.finished",
            batch_id=batch_id,
            completed=progress.completed,
            failed=progress.failed,
        )
    return progress


_tracker: EvaluationTracker | None = None


def get_evaluation_tracker() -> EvaluationTracker:
    """Get the global evaluation tracker instance."""
    global _tracker
    if _tracker is None:
        _tracker = EvaluationTracker()
    return _tracker


def reset_evaluation_tracker() -> None:
    """Reset the global tracker (for testing)."""
    global _tracker
    _tracker = None
