"""Question paper analysis and reports.

Responsibilities:
- Ask the model for a structured analysis of a question paper:
  Bloom's taxonomy distribution, difficulty split, topics,
  per-question breakdown, overall assessment and recommendations
- Fall back to a neutral default analysis when the reply is not JSON
- Save analyses to analysis_history
- Turn an analysis into a written report
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from examdesk.config import load_app_config
from examdesk.db.papers_repository import save_analysis
from examdesk.llm.client import LLMClient, LLMError, extract_json
from examdesk.prompts.registry import get_prompt

logger = structlog.get_logger(__name__)

DEFAULT_BLOOMS = {
    "remember": 20,
    "understand": 20,
    "apply": 20,
    "analyze": 20,
    "evaluate": 10,
    "create": 10,
}
DEFAULT_DIFFICULTY = [
    {"name": "Easy", "value": 30},
    {"name": "Medium", "value": 40},
    {"name": "Hard", "value": 30},
]
PARSE_FAILED_ASSESSMENT = "Analysis failed to parse AI response."
PARSE_FAILED_RECOMMENDATIONS = ["Please try again with a clearer question paper format."]
PARSE_FAILED_CHANGES = "Unable to provide specific suggestions due to parsing error."


class AnalysisError(Exception):
    """Raised when analysis or report generation cannot complete."""

    pass


@dataclass
class PaperAnalysis:
    """Structured analysis of a question paper."""

    blooms_taxonomy: dict[str, Any] = field(default_factory=dict)
    difficulty: list[dict[str, Any]] = field(default_factory=list)
    questions: list[Any] = field(default_factory=list)
    topics: list[dict[str, Any]] = field(default_factory=list)
    overall_assessment: str = ""
    recommendations: list[str] = field(default_factory=list)
    suggested_changes: Any = ""
    expected_blooms_taxonomy: dict[str, Any] = field(default_factory=dict)
    parsed: bool = True
    analysis_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys clients expect."""
        result = {
            "bloomsTaxonomy": self.blooms_taxonomy,
            "difficulty": self.difficulty,
            "questions": self.questions,
            "topics": self.topics,
            "overallAssessment": self.overall_assessment,
            "recommendations": self.recommendations,
            "suggestedChanges": self.suggested_changes,
        }
        if self.expected_blooms_taxonomy:
            result["expectedBloomsTaxonomy"] = self.expected_blooms_taxonomy
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PaperAnalysis:
        recommendations = data.get("recommendations") or []
        if isinstance(recommendations, str):
            recommendations = [recommendations]
        return cls(
            blooms_taxonomy=data.get("bloomsTaxonomy") or {},
            difficulty=data.get("difficulty") or [],
            questions=data.get("questions") or [],
            topics=data.get("topics") or [],
            overall_assessment=data.get("overallAssessment") or "",
            recommendations=list(recommendations),
            suggested_changes=data.get("suggestedChanges") or "",
            expected_blooms_taxonomy=data.get("expectedBloomsTaxonomy") or {},
        )

    @classmethod
    def default(cls) -> PaperAnalysis:
        """Placeholder analysis used when the model reply cannot be parsed."""
        return cls(
            blooms_taxonomy=dict(DEFAULT_BLOOMS),
            difficulty=[dict(d) for d in DEFAULT_DIFFICULTY],
            questions=[],
            topics=[],
            overall_assessment=PARSE_FAILED_ASSESSMENT,
            recommendations=list(PARSE_FAILED_RECOMMENDATIONS),
            suggested_changes=PARSE_FAILED_CHANGES,
            parsed=False,
        )


def analyze_paper(
    text: str,
    topic_name: str,
    client: LLMClient | None = None,
    title: str | None = None,
) -> PaperAnalysis:
    """Analyze a question paper's text.

    Args:
        text: Question paper text
        topic_name: Topic the paper covers
        client: Optional pre-configured LLM client (for testing)
        title: When given, the analysis is saved to analysis_history

    Raises:
        AnalysisError: Empty text or the model call failed
    """
    if not text or not text.strip():
        raise AnalysisError("Question paper text is required")

    if client is None:
        client = LLMClient()

    config = load_app_config().generation

    try:
        raw = client.simple_chat(
            system_prompt=get_prompt("analysis/paper_system"),
            user_message=f"Topic: {topic_name}\n\nQuestion Paper: {text}",
            model=config.model,
        )
    except LLMError as e:
        logger.error("paper_analysis.llm_failed", topic=topic_name, error=str(e))
        raise AnalysisError(f"Analysis failed: {e}") from e

    parsed = extract_json(raw)
    if isinstance(parsed, dict):
        analysis = PaperAnalysis.from_dict(parsed)
    else:
        logger.warning("paper_analysis.parse_failed", topic=topic_name, raw=raw[:200])
        analysis = PaperAnalysis.default()

    if title:
        record = save_analysis(title, analysis.to_dict())
        analysis.analysis_id = record.id

    logger.info(
        "paper_analysis.completed",
        topic=topic_name,
        parsed=analysis.parsed,
        topics=len(analysis.topics),
    )
    return analysis


def _format_distribution(distribution: dict[str, Any]) -> str:
    return "\n".join(f"{level}: {value}%" for level, value in distribution.items())


def build_report_prompt(analysis: dict[str, Any]) -> str:
    """Report prompt for an analysis dict (camelCase keys)."""
    topics = "\n".join(
        f"- {t.get('name')}: {t.get('questionCount')} questions"
        for t in analysis.get("topics") or []
        if isinstance(t, dict)
    )
    return get_prompt(
        "analysis/report_user",
        blooms=_format_distribution(analysis.get("bloomsTaxonomy") or {}),
        expected_blooms=_format_distribution(analysis.get("expectedBloomsTaxonomy") or {}),
        topics=topics,
        overall_assessment=analysis.get("overallAssessment") or "Not provided",
    )


def generate_report(analysis: dict[str, Any], client: LLMClient | None = None) -> str:
    """Write a narrative report for an analysis.

    Raises:
        AnalysisError: The model call failed
    """
    if client is None:
        client = LLMClient()

    config = load_app_config().generation

    try:
        report = client.simple_chat(
            system_prompt=get_prompt("analysis/report_system"),
            user_message=build_report_prompt(analysis),
            model=config.model,
        )
    except LLMError as e:
        logger.error("report.llm_failed", error=str(e))
        raise AnalysisError(f"Report generation failed: {e}") from e

    logger.info("report.generated", chars=len(report))
    return report
