"""AI question generation.

Responsibilities:
- Build the generation prompt (subject, topic, difficulty, Bloom's
  taxonomy distribution, source content)
- Call the chat model and parse a JSON array of questions
- Optionally save the set to generated_questions

Output: list of ``{text, type, level, answer}`` dicts.
"""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from typing import Any

import structlog

from examdesk.config import load_app_config
from examdesk.db.papers_repository import save_question_set
from examdesk.llm.client import LLMClient, LLMError
from examdesk.prompts.registry import get_prompt

logger = structlog.get_logger(__name__)

NO_CONTENT_PLACEHOLDER = "No specific content provided, generate questions based on the topic."

_QUESTION_ARRAY_RE = re.compile(r"\[\s*\{.*\}\s*\]", re.DOTALL)


@dataclass
class QuestionSetResult:
    """Result of question generation."""

    success: bool
    questions: list[dict[str, Any]] = field(default_factory=list)
    message: str = ""
    raw_content: str | None = None
    question_set_id: str | None = None


class QuestionGenerationError(Exception):
    """Raised when the model output cannot be turned into questions."""

    def __init__(self, message: str, raw_content: str | None = None):
        self.raw_content = raw_content
        super().__init__(message)


def difficulty_label(difficulty: int) -> str:
    """1 -> Easy, 2 -> Medium, anything else -> Hard."""
    if difficulty == 1:
        return "Easy"
    if difficulty == 2:
        return "Medium"
    return "Hard"


def format_blooms(blooms_taxonomy: dict[str, Any] | None) -> str:
    """Render ``{"remember": 20, ...}`` as ``remember: 20%, ...``."""
    if not blooms_taxonomy:
        return ""
    return ", ".join(f"{level}: {pct}%" for level, pct in blooms_taxonomy.items())


def truncate_content(content: str | None, max_chars: int) -> str | None:
    if content and len(content) > max_chars:
        return content[:max_chars] + "..."
    return content


def build_questions_prompt(
    subject: str,
    topic: str,
    content: str | None = None,
    blooms_taxonomy: dict[str, Any] | None = None,
    difficulty: int = 2,
) -> str:
    config = load_app_config().generation
    truncated = truncate_content(content, config.max_content_chars)
    return get_prompt(
        "generation/questions_user",
        subject=subject,
        topic=topic,
        difficulty=difficulty_label(difficulty),
        blooms=format_blooms(blooms_taxonomy),
        content=truncated or NO_CONTENT_PLACEHOLDER,
        count=config.question_count,
    )


def parse_questions(content: str) -> list[dict[str, Any]]:
    """Parse model output into a list of question dicts.

    Looks for a ``[{...}]`` block first, then parses the whole text. A
    ``{"questions": [...]}`` wrapper is accepted.

    Raises:
        QuestionGenerationError: Output is not JSON or not a list
    """
    match = _QUESTION_ARRAY_RE.search(content)
    try:
        parsed = json.loads(match.group(0) if match else content)
    except json.JSONDecodeError as e:
        raise QuestionGenerationError(
            f"Failed to parse generated questions: {e}", raw_content=content
        ) from e

    if isinstance(parsed, dict) and isinstance(parsed.get("questions"), list):
        parsed = parsed["questions"]

    if not isinstance(parsed, list):
        raise QuestionGenerationError(
            "Generated content is not an array", raw_content=content
        )

    return [q for q in parsed if isinstance(q, dict)]


def generate_questions(
    subject: str,
    topic: str,
    content: str | None = None,
    blooms_taxonomy: dict[str, Any] | None = None,
    difficulty: int = 2,
    client: LLMClient | None = None,
    subject_id: str | None = None,
) -> QuestionSetResult:
    """Generate test questions for a subject topic.

    Args:
        subject: Subject name
        topic: Topic to generate questions for
        content: Source material (truncated to the configured length)
        blooms_taxonomy: Level -> percentage distribution
        difficulty: 1 (Easy), 2 (Medium), 3 (Hard)
        client: Optional pre-configured LLM client (for testing)
        subject_id: When given, the set is saved to generated_questions

    Returns:
        QuestionSetResult with questions, or the raw content on parse failure
    """
    if not subject or not topic:
        return QuestionSetResult(success=False, message="Subject and topic are required")

    config = load_app_config().generation
    start_time = time.time()

    if client is None:
        client = LLMClient()

    user_prompt = build_questions_prompt(subject, topic, content, blooms_taxonomy, difficulty)

    try:
        raw_content = client.simple_chat(
            system_prompt=get_prompt("generation/questions_system"),
            user_message=user_prompt,
            temperature=config.temperature,
            model=config.model,
        )
    except LLMError as e:
        logger.error("question_generation.llm_failed", subject=subject, topic=topic, error=str(e))
        return QuestionSetResult(success=False, message=f"Failed to generate questions: {e}")

    try:
        questions = parse_questions(raw_content)
    except QuestionGenerationError as e:
        logger.warning("question_generation.parse_failed", error=str(e), raw=raw_content[:200])
        return QuestionSetResult(
            success=False,
            message="Failed to parse generated questions",
            raw_content=e.raw_content,
        )

    question_set_id = None
    if subject_id:
        record = save_question_set(subject_id, topic, questions)
        question_set_id = record.id

    logger.info(
        "question_generation.completed",
        subject=subject,
        topic=topic,
        count=len(questions),
        time_ms=int((time.time() - start_time) * 1000),
    )

    return QuestionSetResult(
        success=True,
        questions=questions,
        message=f"Generated {len(questions)} questions",
        question_set_id=question_set_id,
    )
