"""Test endpoints: CRUD, grades, assigned files, questions and answer sheets."""

import sqlite3

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from examdesk.core.evaluation_workflow import reset_evaluation
from examdesk.core.filters import search_answer_sheets
from examdesk.core.test_files import (
    AssignmentError,
    assign_topic_to_test,
    delete_file_group,
    fetch_test_files,
)
from examdesk.core.test_questions import (
    QuestionSetNotFoundError,
    TestQuestionError,
    add_from_question_set,
    generated_candidates,
    save_test_questions,
)
from examdesk.db.academics_repository import get_class, get_subject
from examdesk.db.students_repository import get_student
from examdesk.db.test_questions_repository import (
    add_test_question,
    delete_test_question,
    get_test_question,
    list_test_questions,
    update_test_question,
)
from examdesk.db.tests_repository import (
    create_test,
    delete_answer_sheet,
    delete_test,
    get_answer_sheet,
    get_test,
    list_answer_sheets,
    list_grades,
    list_tests,
    update_test,
    upsert_answer_sheet,
    upsert_grade,
)
from examdesk.storage.object_store import LocalObjectStore
from examdesk.storage.upload_router import UploadRejectedError, upload
from examdesk.web.dependencies import get_object_store
from examdesk.web.errors import upload_error_to_http
from examdesk.web.schemas import (
    AddGeneratedQuestionsRequest,
    AnswerSheetResponse,
    AssignTopicRequest,
    FileGroupResponse,
    GeneratedCandidateResponse,
    GradeResponse,
    GradeUpdate,
    TestCreate,
    TestListResponse,
    TestQuestionCreate,
    TestQuestionResponse,
    TestQuestionsSave,
    TestQuestionUpdate,
    TestResponse,
    TestUpdate,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/tests", tags=["tests"])

ANSWER_SHEET_ENDPOINT = "answerSheetUploader"


def _require_test(test_id: str):
    test = get_test(test_id)
    if test is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Test '{test_id}' not found",
        )
    return test


def _check_references(subject_id: str | None, class_id: str | None) -> None:
    if subject_id and get_subject(subject_id) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Subject '{subject_id}' does not exist",
        )
    if class_id and get_class(class_id) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Class '{class_id}' does not exist",
        )


@router.get("", response_model=TestListResponse)
async def list_all_tests(
    subject_id: str | None = None,
    class_id: str | None = None,
) -> TestListResponse:
    tests = [TestResponse.model_validate(t) for t in list_tests(subject_id, class_id)]
    return TestListResponse(tests=tests, count=len(tests))


@router.get("/{test_id}", response_model=TestResponse)
async def get_test_by_id(test_id: str) -> TestResponse:
    return TestResponse.model_validate(_require_test(test_id))


@router.post("", response_model=TestResponse, status_code=status.HTTP_201_CREATED)
async def create_new_test(data: TestCreate) -> TestResponse:
    _check_references(data.subject_id, data.class_id)
    return TestResponse.model_validate(create_test(**data.model_dump()))


@router.patch("/{test_id}", response_model=TestResponse)
async def update_existing_test(test_id: str, data: TestUpdate) -> TestResponse:
    _require_test(test_id)
    fields = data.model_dump(exclude_unset=True)
    _check_references(fields.get("subject_id"), fields.get("class_id"))
    return TestResponse.model_validate(update_test(test_id, **fields))


@router.delete("/{test_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_existing_test(test_id: str) -> None:
    if not delete_test(test_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Test '{test_id}' not found",
        )


# =============================================================================
# GRADES
# =============================================================================


@router.get("/{test_id}/grades", response_model=list[GradeResponse])
async def get_grades(test_id: str) -> list[GradeResponse]:
    _require_test(test_id)
    return [GradeResponse.model_validate(g) for g in list_grades(test_id)]


@router.put("/{test_id}/grades", response_model=GradeResponse)
async def update_score(test_id: str, data: GradeUpdate) -> GradeResponse:
    """Set a student's marks for the test."""
    test = _require_test(test_id)
    if get_student(data.student_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Student '{data.student_id}' not found",
        )
    if data.marks > test.max_marks:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Marks cannot exceed {test.max_marks}",
        )
    grade = upsert_grade(test_id, data.student_id, data.marks, data.remarks)
    return GradeResponse.model_validate(grade)


# =============================================================================
# ASSIGNED FILES
# =============================================================================


@router.get("/{test_id}/files", response_model=list[FileGroupResponse])
async def list_test_files(test_id: str) -> list[FileGroupResponse]:
    """Topics with both a question paper and an answer key."""
    return [FileGroupResponse(**g.to_dict()) for g in fetch_test_files(test_id)]


@router.post("/{test_id}/assign", response_model=list[FileGroupResponse])
async def assign_topic(
    test_id: str,
    data: AssignTopicRequest,
    store: LocalObjectStore = Depends(get_object_store),
) -> list[FileGroupResponse]:
    """Copy a subject topic's files to the test and return the new listing."""
    test = _require_test(test_id)
    try:
        groups = assign_topic_to_test(store, test_id, test.subject_id, data.topic)
    except AssignmentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return [FileGroupResponse(**g.to_dict()) for g in groups]


@router.delete("/{test_id}/files/{topic}")
async def delete_test_files(
    test_id: str,
    topic: str,
    store: LocalObjectStore = Depends(get_object_store),
) -> dict[str, int]:
    removed = delete_file_group(store, f"test_{test_id}", topic)
    if removed == 0:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No files found for topic '{topic}'",
        )
    return {"deleted": removed}


# =============================================================================
# QUESTIONS
# =============================================================================


def _require_question(test_id: str, question_id: str):
    question = get_test_question(question_id)
    if question is None or question.test_id != test_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Question '{question_id}' not found",
        )
    return question


@router.get("/{test_id}/questions", response_model=list[TestQuestionResponse])
async def get_questions(test_id: str) -> list[TestQuestionResponse]:
    _require_test(test_id)
    return [TestQuestionResponse.model_validate(q) for q in list_test_questions(test_id)]


@router.post(
    "/{test_id}/questions",
    response_model=TestQuestionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_question(test_id: str, data: TestQuestionCreate) -> TestQuestionResponse:
    """Add a question by hand; text and answer are both required."""
    _require_test(test_id)
    if not data.question_text.strip() or not data.correct_answer.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Question text and answer are required",
        )
    question = add_test_question(test_id, **data.model_dump())
    return TestQuestionResponse.model_validate(question)


@router.put("/{test_id}/questions", response_model=list[TestQuestionResponse])
async def save_questions(test_id: str, data: TestQuestionsSave) -> list[TestQuestionResponse]:
    """Replace the question list, optionally publishing it."""
    _require_test(test_id)
    try:
        questions = save_test_questions(
            test_id, [q.model_dump() for q in data.questions], publish=data.publish
        )
    except TestQuestionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return [TestQuestionResponse.model_validate(q) for q in questions]


@router.get("/{test_id}/questions/generated", response_model=list[GeneratedCandidateResponse])
async def get_generated_candidates(
    test_id: str,
    topic: str | None = Query(default=None, description="Only sets generated for this topic"),
) -> list[GeneratedCandidateResponse]:
    """Generated questions of the test's subject that can be added."""
    test = _require_test(test_id)
    return [GeneratedCandidateResponse(**c) for c in generated_candidates(test.subject_id, topic)]


@router.post(
    "/{test_id}/questions/generated",
    response_model=list[TestQuestionResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_generated_questions(
    test_id: str, data: AddGeneratedQuestionsRequest
) -> list[TestQuestionResponse]:
    _require_test(test_id)
    try:
        questions = add_from_question_set(
            test_id, data.question_set_id, indexes=data.indexes, marks=data.marks
        )
    except QuestionSetNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except TestQuestionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return [TestQuestionResponse.model_validate(q) for q in questions]


@router.patch("/{test_id}/questions/{question_id}", response_model=TestQuestionResponse)
async def update_question(
    test_id: str, question_id: str, data: TestQuestionUpdate
) -> TestQuestionResponse:
    _require_question(test_id, question_id)
    question = update_test_question(question_id, **data.model_dump(exclude_unset=True))
    return TestQuestionResponse.model_validate(question)


@router.delete("/{test_id}/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_question(test_id: str, question_id: str) -> None:
    _require_question(test_id, question_id)
    delete_test_question(question_id)


# =============================================================================
# ANSWER SHEETS
# =============================================================================


def _answer_sheet_row(sheet) -> dict:
    student = get_student(sheet.student_id)
    return {
        **sheet.to_dict(),
        "student_name": student.name if student else None,
        "roll_number": student.roll_number if student else None,
    }


@router.get("/{test_id}/answer-sheets", response_model=list[AnswerSheetResponse])
async def list_test_answer_sheets(
    test_id: str,
    q: str = Query(default="", description="Search student name or roll number"),
) -> list[AnswerSheetResponse]:
    try:
        rows = [_answer_sheet_row(s) for s in list_answer_sheets(test_id)]
    except sqlite3.Error as e:
        logger.error("answer_sheets.list_failed", test_id=test_id, error=str(e))
        rows = []
    return [AnswerSheetResponse(**r) for r in search_answer_sheets(rows, q)]


@router.post(
    "/{test_id}/answer-sheets",
    response_model=AnswerSheetResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_answer_sheet(
    test_id: str,
    student_id: str = Form(...),
    file: UploadFile = File(...),
    store: LocalObjectStore = Depends(get_object_store),
) -> AnswerSheetResponse:
    """Upload (or replace) a student's answer sheet.

    Replacing a sheet resets any previous evaluation of it.
    """
    test = _require_test(test_id)
    if get_student(student_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Student '{student_id}' not found",
        )

    data = await file.read()
    try:
        result = upload(
            store,
            ANSWER_SHEET_ENDPOINT,
            file.filename or "answer-sheet.pdf",
            data,
            file.content_type or "application/octet-stream",
            key_prefix=f"answer-sheets/{test_id}",
        )
    except UploadRejectedError as e:
        raise upload_error_to_http(e)

    if get_answer_sheet(test_id, student_id) is not None:
        reset_evaluation(test_id, student_id)

    sheet = upsert_answer_sheet(test_id, student_id, test.subject_id, result.url)
    return AnswerSheetResponse(**_answer_sheet_row(sheet))


@router.delete("/{test_id}/answer-sheets/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_answer_sheet(
    test_id: str,
    student_id: str,
    store: LocalObjectStore = Depends(get_object_store),
) -> None:
    sheet = get_answer_sheet(test_id, student_id)
    if sheet is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Answer sheet not found",
        )

    key = store.key_from_url(sheet.answer_sheet_url or "")
    if key is not None:
        store.delete(key)
    delete_answer_sheet(test_id, student_id)
