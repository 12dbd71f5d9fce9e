"""Question paper analysis and report endpoints."""

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from examdesk.core.paper_analyzer import AnalysisError, analyze_paper, generate_report
from examdesk.core.text_extraction import (
    TextExtractionError,
    VisionOcr,
    extract_text,
    member_document_type,
)
from examdesk.db.papers_repository import delete_analysis, get_analysis, list_analyses
from examdesk.llm.client import LLMClient
from examdesk.web.dependencies import get_llm_client
from examdesk.web.errors import upstream_error
from examdesk.web.schemas import (
    AnalysisHistoryItem,
    AnalysisResponse,
    AnalyzePaperRequest,
    ReportRequest,
    ReportResponse,
)

router = APIRouter(prefix="/api/analysis", tags=["analysis"])


def _analyze(text: str, topic_name: str, title: str | None, client: LLMClient) -> AnalysisResponse:
    try:
        analysis = analyze_paper(text, topic_name, client=client, title=title)
    except AnalysisError as e:
        raise upstream_error(str(e))
    return AnalysisResponse(
        analysis=analysis.to_dict(),
        analysis_id=analysis.analysis_id,
        parsed=analysis.parsed,
    )


@router.post("", response_model=AnalysisResponse)
def analyze_text(
    data: AnalyzePaperRequest,
    client: LLMClient = Depends(get_llm_client),
) -> AnalysisResponse:
    """Analyze question paper text. Saved to history when a title is given."""
    return _analyze(data.text, data.topic_name, data.title, client)


@router.post("/file", response_model=AnalysisResponse)
def analyze_file(
    file: UploadFile = File(...),
    topic_name: str = Form(default=""),
    title: str | None = Form(default=None),
    client: LLMClient = Depends(get_llm_client),
) -> AnalysisResponse:
    """Extract text from an uploaded paper (PDF, image or text) and analyze it."""
    file_name = file.filename or ""
    data = file.file.read()
    try:
        extracted = extract_text(
            data,
            member_document_type(file_name),
            ocr=VisionOcr(client),
            file_name=file_name,
        )
    except TextExtractionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not extracted.text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No text could be extracted from the file",
        )
    return _analyze(extracted.text, topic_name, title, client)


@router.post("/report", response_model=ReportResponse)
def create_report(
    data: ReportRequest,
    client: LLMClient = Depends(get_llm_client),
) -> ReportResponse:
    """Write a narrative report for an analysis."""
    try:
        report = generate_report(data.analysis, client=client)
    except AnalysisError as e:
        raise upstream_error(str(e))
    return ReportResponse(report=report)


@router.get("", response_model=list[AnalysisHistoryItem])
async def list_history() -> list[AnalysisHistoryItem]:
    return [AnalysisHistoryItem.model_validate(a) for a in list_analyses()]


@router.get("/{analysis_id}", response_model=AnalysisHistoryItem)
async def get_history_item(analysis_id: str) -> AnalysisHistoryItem:
    record = get_analysis(analysis_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Analysis '{analysis_id}' not found",
        )
    return AnalysisHistoryItem.model_validate(record)


@router.delete("/{analysis_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_history_item(analysis_id: str) -> None:
    if not delete_analysis(analysis_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Analysis '{analysis_id}' not found",
        )
