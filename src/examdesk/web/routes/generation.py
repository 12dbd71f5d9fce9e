"""Question generation and paper assembly endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from examdesk.core.paper_generator import generate_paper
from examdesk.core.question_generator import generate_questions
from examdesk.llm.client import LLMClient
from examdesk.storage.object_store import LocalObjectStore
from examdesk.web.dependencies import get_llm_client, get_object_store
from examdesk.web.schemas import (
    GeneratePaperRequest,
    GeneratePaperResponse,
    GenerateQuestionsRequest,
    GenerateQuestionsResponse,
)

router = APIRouter(prefix="/api/generate", tags=["generation"])


@router.post("/questions", response_model=GenerateQuestionsResponse)
def create_questions(
    data: GenerateQuestionsRequest,
    client: LLMClient = Depends(get_llm_client),
) -> GenerateQuestionsResponse:
    """Generate questions for a topic with the chat model."""
    result = generate_questions(
        subject=data.subject,
        topic=data.topic,
        content=data.content,
        blooms_taxonomy=data.blooms_taxonomy,
        difficulty=data.difficulty,
        client=client,
        subject_id=data.subject_id,
    )
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": result.message, "raw_content": result.raw_content},
        )
    return GenerateQuestionsResponse(
        questions=result.questions,
        question_set_id=result.question_set_id,
        message=result.message,
    )


@router.post("/paper", response_model=GeneratePaperResponse)
def create_paper(
    data: GeneratePaperRequest,
    store: LocalObjectStore = Depends(get_object_store),
) -> GeneratePaperResponse:
    """Assemble a question paper from the selected questions."""
    result = generate_paper(
        store,
        subject=data.subject,
        topic=data.topic,
        questions=data.questions,
        subject_code=data.subject_code,
        header_url=data.header_url,
        footer_url=data.footer_url,
        subject_id=data.subject_id,
        question_mode=data.question_mode,
    )
    if not result.success:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)
    return GeneratePaperResponse(
        content=result.content,
        paper_url=result.paper_url,
        file_name=result.file_name,
        paper_id=result.paper_id,
    )
