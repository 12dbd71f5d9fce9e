"""Subject endpoints: CRUD, course outcomes, files and generated history."""

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from examdesk.core.filters import filter_questions
from examdesk.core.test_files import (
    FILE_KINDS,
    delete_file_group,
    fetch_subject_files,
    upload_subject_file,
)
from examdesk.db.academics_repository import (
    add_course_outcome,
    create_subject,
    delete_course_outcome,
    delete_subject,
    get_subject,
    list_course_outcomes,
    list_subjects,
    update_subject,
)
from examdesk.db.papers_repository import list_papers, list_question_sets
from examdesk.db.students_repository import list_students_for_subject
from examdesk.storage.object_store import LocalObjectStore
from examdesk.storage.upload_router import UploadRejectedError
from examdesk.web.dependencies import get_object_store
from examdesk.web.errors import upload_error_to_http
from examdesk.web.schemas import (
    CourseOutcomeCreate,
    CourseOutcomeResponse,
    FileGroupResponse,
    FileUploadResponse,
    PaperResponse,
    QuestionSetResponse,
    StudentListResponse,
    StudentResponse,
    SubjectCreate,
    SubjectListResponse,
    SubjectResponse,
    SubjectUpdate,
)

router = APIRouter(prefix="/api/subjects", tags=["subjects"])


def _require_subject(subject_id: str):
    subject = get_subject(subject_id)
    if subject is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Subject '{subject_id}' not found",
        )
    return subject


@router.get("", response_model=SubjectListResponse)
async def list_all_subjects() -> SubjectListResponse:
    subjects = [SubjectResponse.model_validate(s) for s in list_subjects()]
    return SubjectListResponse(subjects=subjects, count=len(subjects))


@router.get("/{subject_id}", response_model=SubjectResponse)
async def get_subject_by_id(subject_id: str) -> SubjectResponse:
    return SubjectResponse.model_validate(_require_subject(subject_id))


@router.post("", response_model=SubjectResponse, status_code=status.HTTP_201_CREATED)
async def create_new_subject(data: SubjectCreate) -> SubjectResponse:
    record = create_subject(**data.model_dump())
    return SubjectResponse.model_validate(record)


@router.patch("/{subject_id}", response_model=SubjectResponse)
async def update_existing_subject(subject_id: str, data: SubjectUpdate) -> SubjectResponse:
    _require_subject(subject_id)
    record = update_subject(subject_id, **data.model_dump(exclude_unset=True))
    return SubjectResponse.model_validate(record)


@router.delete("/{subject_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_existing_subject(subject_id: str) -> None:
    if not delete_subject(subject_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Subject '{subject_id}' not found",
        )


# =============================================================================
# COURSE OUTCOMES
# =============================================================================


@router.get("/{subject_id}/outcomes", response_model=list[CourseOutcomeResponse])
async def list_outcomes(subject_id: str) -> list[CourseOutcomeResponse]:
    _require_subject(subject_id)
    return [CourseOutcomeResponse.model_validate(o) for o in list_course_outcomes(subject_id)]


@router.post(
    "/{subject_id}/outcomes",
    response_model=CourseOutcomeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_outcome(subject_id: str, data: CourseOutcomeCreate) -> CourseOutcomeResponse:
    _require_subject(subject_id)
    record = add_course_outcome(subject_id, data.co_number, data.description)
    return CourseOutcomeResponse.model_validate(record)


@router.delete("/{subject_id}/outcomes/{outcome_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_outcome(subject_id: str, outcome_id: str) -> None:
    if not delete_course_outcome(outcome_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Course outcome '{outcome_id}' not found",
        )


# =============================================================================
# FILES
# =============================================================================


@router.get("/{subject_id}/files", response_model=list[FileGroupResponse])
async def list_subject_files(subject_id: str) -> list[FileGroupResponse]:
    """Question papers, answer keys and handwritten papers grouped by topic."""
    return [FileGroupResponse(**g.to_dict()) for g in fetch_subject_files(subject_id)]


@router.post(
    "/{subject_id}/files",
    response_model=FileUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_file(
    subject_id: str,
    topic: str = Form(...),
    kind: str = Form(...),
    file: UploadFile = File(...),
    store: LocalObjectStore = Depends(get_object_store),
) -> FileUploadResponse:
    """Upload a question paper, answer key or handwritten paper for a topic."""
    _require_subject(subject_id)
    if kind not in FILE_KINDS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"kind must be one of: {', '.join(FILE_KINDS)}",
        )
    if not topic.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Topic is required",
        )

    data = await file.read()
    try:
        record = upload_subject_file(
            store,
            subject_id,
            topic,
            kind,
            file.filename or "file",
            data,
            file.content_type or "application/octet-stream",
        )
    except UploadRejectedError as e:
        raise upload_error_to_http(e)

    return FileUploadResponse.model_validate(record)


@router.delete("/{subject_id}/files", status_code=status.HTTP_200_OK)
async def delete_topic_files(
    subject_id: str,
    topic: str = Query(..., min_length=1),
    store: LocalObjectStore = Depends(get_object_store),
) -> dict[str, int]:
    """Delete every file of a topic."""
    removed = delete_file_group(store, subject_id, topic)
    if removed == 0:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No files found for topic '{topic}'",
        )
    return {"deleted": removed}


# =============================================================================
# ENROLLED STUDENTS AND GENERATED HISTORY
# =============================================================================


@router.get("/{subject_id}/students", response_model=StudentListResponse)
async def list_enrolled_students(subject_id: str) -> StudentListResponse:
    _require_subject(subject_id)
    students = [StudentResponse.model_validate(s) for s in list_students_for_subject(subject_id)]
    return StudentListResponse(students=students, count=len(students))


@router.get("/{subject_id}/questions", response_model=list[QuestionSetResponse])
async def list_generated_questions(
    subject_id: str,
    q: str = "",
    mode: str = Query(default="all", pattern="^(all|multiple-choice|theory)$"),
) -> list[QuestionSetResponse]:
    """Saved question sets, newest first, with questions filtered by mode and text."""
    sets = []
    for record in list_question_sets(subject_id):
        response = QuestionSetResponse.model_validate(record)
        response.questions = filter_questions(record.questions, q, mode)
        sets.append(response)
    return sets


@router.get("/{subject_id}/papers", response_model=list[PaperResponse])
async def list_generated_papers(subject_id: str) -> list[PaperResponse]:
    return [PaperResponse.model_validate(p) for p in list_papers(subject_id)]
