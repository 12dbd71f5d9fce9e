"""Answer-sheet evaluation call.

Responsibilities:
- OCR the student's answer sheet when it is a scan (image or PDF)
- Resolve question paper / answer key text from the object store
- Ask the evaluator model to grade every answer (JSON mode)
- Compute the score summary

Output structure (dict):
- student_name, roll_no, class, subject
- answers: [{question_no, question, answer, score: [assigned, total],
  remarks, confidence}]
- summary: {totalScore: [assigned, possible], percentage}
- text: OCR text of the answer sheet (when OCR ran)
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from examdesk.config import load_app_config
from examdesk.core.documents import needs_ocr
from examdesk.core.text_extraction import (
    TextExtractionError,
    VisionOcr,
    extract_text,
    member_document_type,
)
from examdesk.llm.client import LLMClient, LLMError, Message
from examdesk.prompts.registry import get_prompt
from examdesk.storage.object_store import LocalObjectStore, StorageError

logger = structlog.get_logger(__name__)


class EvaluationError(Exception):
    """Raised when an answer sheet cannot be evaluated."""

    pass


def _to_number(value: Any) -> float | int | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return int(number) if number.is_integer() else number


def summarize_scores(evaluation: dict[str, Any]) -> dict[str, Any]:
    """Add ``summary`` with total score and rounded percentage.

    Only ``score`` values that are two-element lists count.
    """
    assigned: float | int = 0
    possible: float | int = 0

    answers = evaluation.get("answers")
    if isinstance(answers, list):
        for answer in answers:
            score = answer.get("score") if isinstance(answer, dict) else None
            if isinstance(score, list) and len(score) == 2:
                got, total = _to_number(score[0]), _to_number(score[1])
                if got is None or total is None:
                    continue
                assigned += got
                possible += total

    evaluation["summary"] = {
        "totalScore": [assigned, possible],
        "percentage": round(assigned / possible * 100) if possible > 0 else 0,
    }
    return evaluation


def _extract_stored_text(
    store: LocalObjectStore,
    key: str,
    ocr: VisionOcr | None,
) -> str:
    data = store.get(key)
    return extract_text(data, member_document_type(key), ocr=ocr, file_name=key).text


def _ocr_student_answer(
    student_answer: dict[str, Any],
    store: LocalObjectStore | None,
    ocr: VisionOcr,
) -> str:
    """Text of a scanned answer sheet.

    Raises:
        EvaluationError: "OCR extraction failed: ..." on any failure
    """
    url = student_answer.get("url") or ""
    key = store.key_from_url(url) if store is not None else None
    try:
        if key is not None:
            return _extract_stored_text(store, key, ocr)
        return ocr.from_url(url)
    except (TextExtractionError, StorageError, LLMError) as e:
        raise EvaluationError(f"OCR extraction failed: {e}") from e


def _resolve_document_text(
    document: dict[str, Any],
    store: LocalObjectStore | None,
    ocr: VisionOcr,
    label: str,
) -> dict[str, Any]:
    """Attach ``text`` to a question paper / answer key when readable."""
    if document.get("text") or store is None:
        return document
    key = store.key_from_url(document.get("url") or "")
    if key is None:
        return document
    try:
        text = _extract_stored_text(store, key, ocr)
    except (TextExtractionError, StorageError, LLMError) as e:
        logger.warning("paper_evaluator.document_unreadable", document=label, error=str(e))
        return document
    return {**document, "text": text}


def build_evaluation_prompt(
    question_paper: dict[str, Any],
    answer_key: dict[str, Any],
    student_answer: dict[str, Any],
    student_info: dict[str, Any],
) -> str:
    return get_prompt(
        "evaluation/user",
        question_paper=json.dumps(question_paper),
        answer_key=json.dumps(answer_key),
        student_answer=json.dumps(student_answer),
        student_info=json.dumps(student_info),
        student_name=student_info.get("name") or "Unknown",
        roll_no=student_info.get("roll_number") or "Unknown",
        class_name=student_info.get("class") or "Unknown",
        subject=student_info.get("subject") or "Unknown",
    )


def evaluate_paper(
    question_paper: dict[str, Any],
    answer_key: dict[str, Any],
    student_answer: dict[str, Any],
    student_info: dict[str, Any],
    client: LLMClient,
    store: LocalObjectStore | None = None,
    ocr: VisionOcr | None = None,
) -> dict[str, Any]:
    """Grade one student's answer sheet.

    Args:
        question_paper: ``{url, topic[, text]}``
        answer_key: ``{url, topic[, text]}``
        student_answer: ``{url[, text]}``
        student_info: ``{name, roll_number, class, subject}``
        client: LLM client for OCR and grading
        store: Object store used to read stored documents
        ocr: OCR implementation (vision model by default)

    Returns:
        Evaluation dict with answers, summary and OCR text

    Raises:
        EvaluationError: OCR, model call or reply parsing failed
    """
    config = load_app_config().evaluation
    if ocr is None:
        ocr = VisionOcr(client)

    processed_answer = dict(student_answer)
    extracted_text = None

    if not processed_answer.get("text") and needs_ocr(processed_answer.get("url") or ""):
        logger.info("paper_evaluator.ocr_started", student=student_info.get("name"))
        extracted_text = _ocr_student_answer(processed_answer, store, ocr)
        processed_answer["text"] = extracted_text
        processed_answer["isOcrProcessed"] = True
        logger.info("paper_evaluator.ocr_completed", chars=len(extracted_text))

    question_paper = _resolve_document_text(question_paper, store, ocr, "question_paper")
    answer_key = _resolve_document_text(answer_key, store, ocr, "answer_key")

    messages = [
        Message(role="system", content=get_prompt("evaluation/system")),
        Message(
            role="user",
            content=build_evaluation_prompt(
                question_paper, answer_key, processed_answer, student_info
            ),
        ),
    ]

    try:
        evaluation = client.chat_json(
            messages,
            temperature=config.evaluation_temperature,
            model=config.evaluation_model,
        )
    except LLMError as e:
        logger.error("paper_evaluator.llm_failed", error=str(e))
        raise EvaluationError(f"Evaluation failed: {e}") from e

    if not isinstance(evaluation, dict):
        raise EvaluationError("Failed to parse evaluation results")

    summarize_scores(evaluation)
    if extracted_text is not None:
        evaluation["text"] = extracted_text
        evaluation["isOcrProcessed"] = True

    summary = evaluation["summary"]
    logger.info(
        "paper_evaluator.completed",
        student=student_info.get("name"),
        total=summary["totalScore"],
        percentage=summary["percentage"],
    )
    return evaluation
