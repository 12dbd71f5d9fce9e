"""Student endpoints."""

import sqlite3

import structlog
from fastapi import APIRouter, File, HTTPException, Query, UploadFile, status
from fastapi.responses import Response

from examdesk.core.csv_utils import (
    SAMPLE_CSV_FILENAME,
    generate_sample_csv,
    import_students_csv,
)
from examdesk.core.filters import search_students
from examdesk.db.academics_repository import get_class, get_subject
from examdesk.db.students_repository import (
    DuplicateGrNumberError,
    create_student,
    delete_student,
    enroll_student,
    get_student,
    list_students,
    list_subject_ids_for_student,
    unenroll_student,
    update_student,
)
from examdesk.web.schemas import (
    EnrollmentRequest,
    StudentCreate,
    StudentImportResponse,
    StudentListResponse,
    StudentResponse,
    StudentUpdate,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/students", tags=["students"])


def _require_student(student_id: str):
    student = get_student(student_id)
    if student is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Student '{student_id}' not found",
        )
    return student


def _check_class(class_id: str | None) -> None:
    if class_id and get_class(class_id) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Class '{class_id}' does not exist",
        )


@router.get("", response_model=StudentListResponse)
async def list_all_students(
    class_id: str | None = None,
    q: str = Query(default="", description="Search name, GR number, roll number or email"),
) -> StudentListResponse:
    """List students, optionally by class and search text."""
    try:
        records = list_students(class_id=class_id)
    except sqlite3.Error as e:
        logger.error("students.list_failed", error=str(e))
        records = []

    students = [StudentResponse.model_validate(s) for s in search_students(records, q)]
    return StudentListResponse(students=students, count=len(students))


@router.get("/template.csv")
async def download_template() -> Response:
    """Sample CSV for bulk import."""
    return Response(
        content=generate_sample_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{SAMPLE_CSV_FILENAME}"'},
    )


@router.post("/import", response_model=StudentImportResponse)
async def import_students(
    file: UploadFile = File(...),
    class_id: str | None = None,
) -> StudentImportResponse:
    """Bulk-create students from a CSV file."""
    _check_class(class_id)

    raw = await file.read()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CSV file must be UTF-8 encoded",
        )

    result = import_students_csv(text, class_id=class_id)
    return StudentImportResponse(
        created=[StudentResponse.model_validate(s) for s in result.created],
        skipped=result.skipped,
        errors=result.errors,
    )


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student_by_id(student_id: str) -> StudentResponse:
    """Get a specific student by ID."""
    return StudentResponse.model_validate(_require_student(student_id))


@router.post("", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def create_new_student(student_data: StudentCreate) -> StudentResponse:
    """Create a new student."""
    _check_class(student_data.class_id)

    try:
        student = create_student(**student_data.model_dump())
    except DuplicateGrNumberError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return StudentResponse.model_validate(student)


@router.patch("/{student_id}", response_model=StudentResponse)
async def update_existing_student(student_id: str, data: StudentUpdate) -> StudentResponse:
    _require_student(student_id)
    fields = data.model_dump(exclude_unset=True)
    _check_class(fields.get("class_id"))

    try:
        student = update_student(student_id, **fields)
    except DuplicateGrNumberError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return StudentResponse.model_validate(student)


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_existing_student(student_id: str) -> None:
    """Delete a student by ID."""
    if not delete_student(student_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Student '{student_id}' not found",
        )


# =============================================================================
# ENROLLMENTS
# =============================================================================


@router.get("/{student_id}/subjects", response_model=list[str])
async def list_student_subjects(student_id: str) -> list[str]:
    """IDs of subjects the student is enrolled in."""
    _require_student(student_id)
    return list_subject_ids_for_student(student_id)


@router.post("/{student_id}/subjects", status_code=status.HTTP_201_CREATED)
async def enroll_in_subject(student_id: str, data: EnrollmentRequest) -> dict[str, bool]:
    _require_student(student_id)
    if get_subject(data.subject_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Subject '{data.subject_id}' not found",
        )
    return {"enrolled": enroll_student(student_id, data.subject_id)}


@router.delete("/{student_id}/subjects/{subject_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unenroll_from_subject(student_id: str, subject_id: str) -> None:
    if not unenroll_student(student_id, subject_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Enrollment not found",
        )
