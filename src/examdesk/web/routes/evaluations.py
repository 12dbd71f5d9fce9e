"""Answer-sheet evaluation endpoints."""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from examdesk.core.evaluation_workflow import (
    EvaluationTracker,
    build_evaluation_request,
    evaluate_student,
    reset_evaluation,
    run_batch,
)
from examdesk.core.paper_evaluator import EvaluationError
from examdesk.db.evaluations_repository import get_evaluation, list_evaluations
from examdesk.db.tests_repository import get_test, list_answer_sheets
from examdesk.llm.client import LLMClient
from examdesk.storage.object_store import LocalObjectStore
from examdesk.web.dependencies import get_llm_client, get_object_store, get_tracker
from examdesk.web.errors import upstream_error
from examdesk.web.schemas import (
    BatchEvaluateRequest,
    BatchProgressResponse,
    BatchStartedResponse,
    EvaluateRequest,
    EvaluationResponse,
)

router = APIRouter(prefix="/api/evaluations", tags=["evaluations"])


@router.post("", response_model=dict[str, Any])
def evaluate_one(
    data: EvaluateRequest,
    client: LLMClient = Depends(get_llm_client),
    store: LocalObjectStore = Depends(get_object_store),
) -> dict[str, Any]:
    """Evaluate one student's answer sheet and return the evaluation."""
    try:
        request = build_evaluation_request(data.test_id, data.student_id, data.topic)
    except EvaluationError as e:
        code = (
            status.HTTP_404_NOT_FOUND
            if "not found" in str(e)
            else status.HTTP_400_BAD_REQUEST
        )
        raise HTTPException(status_code=code, detail=str(e))

    try:
        return evaluate_student(request, client, store)
    except EvaluationError as e:
        if "No answer sheet" in str(e):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        raise upstream_error(str(e))


@router.post("/batch", response_model=BatchStartedResponse, status_code=status.HTTP_202_ACCEPTED)
def evaluate_batch(
    data: BatchEvaluateRequest,
    background_tasks: BackgroundTasks,
    client: LLMClient = Depends(get_llm_client),
    store: LocalObjectStore = Depends(get_object_store),
    tracker: EvaluationTracker = Depends(get_tracker),
) -> BatchStartedResponse:
    """Start evaluating several students in the background.

    Without ``student_ids``, every student with an answer sheet is evaluated.
    """
    if get_test(data.test_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Test '{data.test_id}' not found",
        )

    student_ids = data.student_ids
    if student_ids is None:
        student_ids = [s.student_id for s in list_answer_sheets(data.test_id)]
    if not student_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No students to evaluate",
        )

    batch_id = tracker.start_batch(data.test_id, student_ids)
    background_tasks.add_task(
        run_batch,
        tracker,
        batch_id,
        data.test_id,
        student_ids,
        data.topic,
        client,
        store,
    )
    return BatchStartedResponse(batch_id=batch_id, total=len(student_ids))


@router.get("/batch/{batch_id}", response_model=BatchProgressResponse)
async def get_batch_progress(
    batch_id: str,
    tracker: EvaluationTracker = Depends(get_tracker),
) -> BatchProgressResponse:
    progress = tracker.progress(batch_id)
    if progress is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Batch '{batch_id}' not found",
        )
    return BatchProgressResponse(**progress.to_dict())


@router.get("/tests/{test_id}", response_model=list[EvaluationResponse])
async def list_test_evaluations(test_id: str) -> list[EvaluationResponse]:
    return [EvaluationResponse.model_validate(e) for e in list_evaluations(test_id)]


@router.delete(
    "/tests/{test_id}/students/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def reset_student_evaluation(test_id: str, student_id: str) -> None:
    """Reset an evaluation so the student can be evaluated again."""
    if get_evaluation(test_id, student_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Evaluation not found",
        )
    reset_evaluation(test_id, student_id)
