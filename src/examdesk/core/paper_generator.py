"""Question paper assembly.

Builds a plain-text paper from selected questions, grouped by question
type, with an optional custom header/footer taken from stored text
files. The paper is saved to the object store under ``papers/``.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import structlog

from examdesk.db.papers_repository import save_paper
from examdesk.storage.object_store import LocalObjectStore, StorageError

logger = structlog.get_logger(__name__)

RULE = "==========================================="
INSTRUCTIONS = (
    "INSTRUCTIONS: Answer all questions. Write clearly and show all working where applicable."
)
MCQ_PLACEHOLDERS = (
    "   a) [Option A]",
    "   b) [Option B]",
    "   c) [Option C]",
    "   d) [Option D]",
)
PAPERS_PREFIX = "papers"

_FILE_NAME_SEP_RE = re.compile(r"[\s/\\]+")


@dataclass
class PaperResult:
    """Result of paper generation."""

    success: bool
    content: str = ""
    paper_url: str | None = None
    file_name: str | None = None
    paper_id: str | None = None
    message: str = ""
    warnings: list[str] = field(default_factory=list)


class PaperGenerationError(Exception):
    """Raised when a paper cannot be assembled."""

    pass


def format_paper_date(today: date) -> str:
    """``March 5, 2024`` style date."""
    return f"{today:%B} {today.day}, {today.year}"


def default_header(subject: str, subject_code: str | None, topic: str, today: date) -> str:
    return (
        f"\n{RULE}\n"
        f"{subject.upper()} ({subject_code or 'N/A'})\n"
        f"TOPIC: {topic.upper()}\n"
        f"DATE: {format_paper_date(today)}\n"
        f"{RULE}\n\n"
    )


def group_by_type(questions: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    """Group questions by ``type`` keeping first-appearance order."""
    groups: dict[str, list[dict[str, Any]]] = {}
    for q in questions:
        groups.setdefault(str(q.get("type") or ""), []).append(q)
    return groups


def build_paper_content(
    subject: str,
    subject_code: str | None,
    topic: str,
    questions: list[dict[str, Any]],
    header_text: str | None = None,
    footer_text: str | None = None,
    today: date | None = None,
) -> str:
    """Render the paper text.

    Only questions with a truthy ``selected`` flag are included.

    Raises:
        PaperGenerationError: No question is selected
    """
    selected = [q for q in questions if q.get("selected")]
    if not selected:
        raise PaperGenerationError("At least one question must be selected")

    if today is None:
        today = date.today()

    content = ""
    if header_text:
        content += header_text + "\n\n"
    else:
        content += default_header(subject, subject_code, topic, today)

    content += INSTRUCTIONS + "\n\n"

    number = 1
    for qtype, group in group_by_type(selected).items():
        content += f"{qtype.upper()} QUESTIONS:\n\n"
        for question in group:
            content += f"{number}. {question.get('text', '')}\n"
            if "multiple choice" in qtype.lower():
                content += "\n".join(MCQ_PLACEHOLDERS) + "\n"
            content += "\n"
            number += 1
        content += "\n"

    if footer_text:
        content += "\n" + footer_text
    else:
        content += f"\n{RULE}\nEND OF PAPER\n{RULE}\n"

    return content


def paper_file_name(topic: str, subject: str, timestamp_ms: int) -> str:
    """Single key segment: whitespace and path separators become underscores."""
    topic_part = _FILE_NAME_SEP_RE.sub("_", topic).lower()
    subject_part = _FILE_NAME_SEP_RE.sub("_", subject).lower()
    return f"{topic_part}_{subject_part}_paper_{timestamp_ms}.txt"


def _fetch_text(store: LocalObjectStore, url: str | None, label: str) -> str:
    """Read a header/footer text file from the store; empty on failure."""
    if not url:
        return ""
    key = store.key_from_url(url)
    if key is None:
        logger.warning("paper_generator.fetch_skipped", part=label, url=url)
        return ""
    try:
        return store.get(key).decode("utf-8", errors="replace")
    except StorageError as e:
        logger.error("paper_generator.fetch_failed", part=label, url=url, error=str(e))
        return ""


def generate_paper(
    store: LocalObjectStore,
    subject: str,
    topic: str,
    questions: list[dict[str, Any]],
    subject_code: str | None = None,
    header_url: str | None = None,
    footer_url: str | None = None,
    subject_id: str | None = None,
    question_mode: str = "all",
    today: date | None = None,
) -> PaperResult:
    """Assemble a paper, store it, and optionally record it.

    Args:
        store: Object store for header/footer input and paper output
        subject: Subject name
        topic: Paper topic
        questions: Candidate questions; only ``selected`` ones are used
        subject_code: Shown in the default header
        header_url: Stored text file used instead of the default header
        footer_url: Stored text file used instead of the default footer
        subject_id: When given, a generated_papers row is written
        question_mode: Filter mode the questions were chosen under
        today: Date printed in the default header
    """
    if not subject or not topic or not questions:
        return PaperResult(
            success=False,
            message="Subject, topic, and at least one question are required",
        )

    header_text = _fetch_text(store, header_url, "header")
    footer_text = _fetch_text(store, footer_url, "footer")

    try:
        content = build_paper_content(
            subject,
            subject_code,
            topic,
            questions,
            header_text=header_text,
            footer_text=footer_text,
            today=today,
        )
    except PaperGenerationError as e:
        return PaperResult(success=False, message=str(e))

    file_name = paper_file_name(topic, subject, int(time.time() * 1000))
    try:
        stored = store.put(f"{PAPERS_PREFIX}/{file_name}", content.encode("utf-8"), "text/plain")
    except StorageError as e:
        logger.error("paper_generator.store_failed", file_name=file_name, error=str(e))
        return PaperResult(success=False, content=content, message=f"Could not save paper: {e}")

    paper_id = None
    if subject_id:
        selected = [q for q in questions if q.get("selected")]
        record = save_paper(
            subject_id=subject_id,
            topic=topic,
            paper_url=stored.url,
            questions=selected,
            header_url=header_url,
            footer_url=footer_url,
            content_url=stored.url,
            question_mode=question_mode,
        )
        paper_id = record.id

    logger.info("paper_generator.completed", file_name=file_name, paper_id=paper_id)

    return PaperResult(
        success=True,
        content=content,
        paper_url=stored.url,
        file_name=file_name,
        paper_id=paper_id,
        message=f"Paper saved: {file_name}",
    )
