"""Pydantic schemas for the web API.

Request bodies and response models for classes, students, subjects,
tests, files, generation, analysis and evaluations.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field


# =============================================================================
# CLASS SCHEMAS
# =============================================================================


class ClassCreate(BaseModel):
    """Request body for creating a class."""

    name: str = Field(..., min_length=1, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    year: int | None = Field(default=None, ge=1, le=10)


class ClassUpdate(BaseModel):
    """Request body for updating a class."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    year: int | None = Field(default=None, ge=1, le=10)


class ClassResponse(BaseModel):
    """Response for a class."""

    id: str
    name: str
    department: str | None = None
    year: int | None = None
    created_at: str

    model_config = {"from_attributes": True}


class ClassListResponse(BaseModel):
    classes: list[ClassResponse]
    count: int


# =============================================================================
# STUDENT SCHEMAS
# =============================================================================


class StudentCreate(BaseModel):
    """Request body for creating a student."""

    name: str = Field(..., min_length=1, max_length=200)
    gr_number: str = Field(..., min_length=1, max_length=50)
    department: str = Field(..., min_length=1, max_length=100)
    roll_number: str | None = Field(default=None, max_length=50)
    year: int | None = Field(default=None, ge=1, le=10)
    class_id: str | None = None
    overall_percentage: float | None = Field(default=None, ge=0, le=100)
    email: str | None = Field(default=None, max_length=200)
    parent_name: str | None = Field(default=None, max_length=200)
    parent_contact: str | None = Field(default=None, max_length=50)


class StudentUpdate(BaseModel):
    """Request body for updating a student. Only given fields change."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    gr_number: str | None = Field(default=None, min_length=1, max_length=50)
    department: str | None = Field(default=None, min_length=1, max_length=100)
    roll_number: str | None = Field(default=None, max_length=50)
    year: int | None = Field(default=None, ge=1, le=10)
    class_id: str | None = None
    overall_percentage: float | None = Field(default=None, ge=0, le=100)
    email: str | None = Field(default=None, max_length=200)
    parent_name: str | None = Field(default=None, max_length=200)
    parent_contact: str | None = Field(default=None, max_length=50)


class StudentResponse(BaseModel):
    """Response for a student."""

    id: str
    name: str
    gr_number: str
    department: str
    roll_number: str | None = None
    year: int | None = None
    class_id: str | None = None
    overall_percentage: float | None = None
    email: str | None = None
    parent_name: str | None = None
    parent_contact: str | None = None
    created_at: str = ""

    model_config = {"from_attributes": True}


class StudentListResponse(BaseModel):
    students: list[StudentResponse]
    count: int


class StudentImportResponse(BaseModel):
    """Result of a CSV import."""

    created: list[StudentResponse]
    skipped: list[dict[str, Any]]
    errors: list[str]


class EnrollmentRequest(BaseModel):
    subject_id: str


# =============================================================================
# SUBJECT SCHEMAS
# =============================================================================


class SubjectCreate(BaseModel):
    """Request body for creating a subject."""

    name: str = Field(..., min_length=1, max_length=200)
    subject_code: str = Field(..., min_length=1, max_length=50)
    semester: int = Field(..., ge=1, le=12)
    information_pdf_url: str | None = None


class SubjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    subject_code: str | None = Field(default=None, min_length=1, max_length=50)
    semester: int | None = Field(default=None, ge=1, le=12)
    information_pdf_url: str | None = None


class SubjectResponse(BaseModel):
    """Response for a subject."""

    id: str
    name: str
    subject_code: str
    semester: int
    information_pdf_url: str | None = None
    created_at: str

    model_config = {"from_attributes": True}


class SubjectListResponse(BaseModel):
    subjects: list[SubjectResponse]
    count: int


class CourseOutcomeCreate(BaseModel):
    co_number: int = Field(..., ge=1)
    description: str = Field(..., min_length=1)


class CourseOutcomeResponse(BaseModel):
    id: str
    subject_id: str
    co_number: int
    description: str

    model_config = {"from_attributes": True}


# =============================================================================
# TEST SCHEMAS
# =============================================================================


class TestCreate(BaseModel):
    """Request body for creating a test."""

    __test__ = False  # not a pytest class

    name: str = Field(..., min_length=1, max_length=200)
    subject_id: str
    class_id: str
    test_date: str
    max_marks: float = Field(..., gt=0)


class TestUpdate(BaseModel):
    __test__ = False

    name: str | None = Field(default=None, min_length=1, max_length=200)
    subject_id: str | None = None
    class_id: str | None = None
    test_date: str | None = None
    max_marks: float | None = Field(default=None, gt=0)


class TestResponse(BaseModel):
    """Response for a test."""

    __test__ = False

    id: str
    name: str
    subject_id: str
    class_id: str
    test_date: str
    max_marks: float
    created_at: str

    model_config = {"from_attributes": True}


class TestListResponse(BaseModel):
    __test__ = False

    tests: list[TestResponse]
    count: int


class GradeUpdate(BaseModel):
    """Request body for setting a student's score."""

    student_id: str
    marks: float = Field(..., ge=0)
    remarks: str | None = None


class GradeResponse(BaseModel):
    id: str
    test_id: str
    student_id: str
    marks: float
    remarks: str | None = None

    model_config = {"from_attributes": True}


class AnswerSheetResponse(BaseModel):
    """An answer sheet joined with its student."""

    id: str
    test_id: str
    student_id: str
    subject_id: str
    answer_sheet_url: str | None = None
    text_content: str | None = None
    status: str | None = None
    student_name: str | None = None
    roll_number: str | None = None
    created_at: str = ""
    updated_at: str = ""


class AssignTopicRequest(BaseModel):
    topic: str = Field(..., min_length=1)


# =============================================================================
# TEST QUESTION SCHEMAS
# =============================================================================


class TestQuestionItem(BaseModel):
    """One question in a saved list; picked questions may lack an answer."""

    __test__ = False

    question_text: str = Field(..., min_length=1)
    correct_answer: str = ""
    options: list[str] = Field(default_factory=list)
    marks: float = Field(default=1, gt=0)
    topic: str | None = None


class TestQuestionCreate(TestQuestionItem):
    """Request body for adding a question by hand."""

    __test__ = False

    correct_answer: str = Field(..., min_length=1)


class TestQuestionsSave(BaseModel):
    """Replace the whole list; ``publish`` marks every question published."""

    __test__ = False

    questions: list[TestQuestionItem]
    publish: bool = False


class TestQuestionUpdate(BaseModel):
    __test__ = False

    question_text: str | None = Field(default=None, min_length=1)
    correct_answer: str | None = None
    options: list[str] | None = None
    marks: float | None = Field(default=None, gt=0)
    topic: str | None = None
    status: Literal["draft", "published"] | None = None


class AddGeneratedQuestionsRequest(BaseModel):
    """Pick questions from a generated set by position (all when omitted)."""

    question_set_id: str
    indexes: list[int] | None = None
    marks: float = Field(default=1, gt=0)


class TestQuestionResponse(BaseModel):
    __test__ = False

    id: str
    test_id: str
    position: int
    question_text: str
    correct_answer: str = ""
    options: list[str] = Field(default_factory=list)
    marks: float = 1
    topic: str | None = None
    status: str = "draft"
    created_at: str = ""

    model_config = {"from_attributes": True}


class GeneratedCandidateResponse(BaseModel):
    """A generated question that can be added to a test."""

    id: str
    question_set_id: str
    index: int
    topic: str
    question_text: str
    correct_answer: str = ""
    options: list[str] = Field(default_factory=list)
    marks: float = 1


# =============================================================================
# FILE SCHEMAS
# =============================================================================


class FileGroupResponse(BaseModel):
    """Files of one topic."""

    id: str
    topic: str
    subject_id: str | None = None
    test_id: str | None = None
    question_paper_url: str | None = None
    answer_key_url: str | None = None
    handwritten_paper_url: str | None = None
    created_at: str = ""


class FileUploadResponse(BaseModel):
    id: str
    file_name: str
    file_type: str
    file_size: int
    file_url: str
    upload_type: str
    created_at: str

    model_config = {"from_attributes": True}


class UploadResponse(BaseModel):
    """Result of a generic upload."""

    url: str
    key: str
    file_name: str
    file_size: int
    content_type: str
    endpoint: str


class SignUrlRequest(BaseModel):
    url: str
    expires_in: int | None = Field(default=None, gt=0)


class SignUrlResponse(BaseModel):
    signed_url: str


# =============================================================================
# GENERATION SCHEMAS
# =============================================================================


class GenerateQuestionsRequest(BaseModel):
    """Request to generate questions for a topic."""

    subject: str = Field(..., min_length=1)
    topic: str = Field(..., min_length=1)
    content: str | None = None
    blooms_taxonomy: dict[str, float] | None = None
    difficulty: int = Field(default=2, ge=1, le=3)
    subject_id: str | None = None


class GenerateQuestionsResponse(BaseModel):
    questions: list[dict[str, Any]]
    question_set_id: str | None = None
    message: str = ""


class GeneratePaperRequest(BaseModel):
    """Request to assemble a paper from selected questions."""

    subject: str = Field(..., min_length=1)
    topic: str = Field(..., min_length=1)
    questions: list[dict[str, Any]] = Field(..., min_length=1)
    subject_code: str | None = None
    header_url: str | None = None
    footer_url: str | None = None
    subject_id: str | None = None
    question_mode: Literal["all", "multiple-choice", "theory"] = "all"


class GeneratePaperResponse(BaseModel):
    content: str
    paper_url: str | None = None
    file_name: str | None = None
    paper_id: str | None = None


class QuestionSetResponse(BaseModel):
    id: str
    subject_id: str
    topic: str
    question_mode: str
    questions: list[dict[str, Any]]
    created_at: str = ""

    model_config = {"from_attributes": True}


class PaperResponse(BaseModel):
    id: str
    subject_id: str
    topic: str
    paper_url: str
    questions: list[dict[str, Any]]
    header_url: str | None = None
    footer_url: str | None = None
    content_url: str | None = None
    question_mode: str = "all"
    created_at: str = ""

    model_config = {"from_attributes": True}


# =============================================================================
# ANALYSIS SCHEMAS
# =============================================================================


class AnalyzePaperRequest(BaseModel):
    """Analyze question paper text."""

    text: str = Field(..., min_length=1)
    topic_name: str = Field(default="")
    title: str | None = None


class AnalysisResponse(BaseModel):
    analysis: dict[str, Any]
    analysis_id: str | None = None
    parsed: bool = True


class ReportRequest(BaseModel):
    analysis: dict[str, Any]


class ReportResponse(BaseModel):
    report: str


class AnalysisHistoryItem(BaseModel):
    id: str
    title: str
    analysis: dict[str, Any]
    created_at: str = ""

    model_config = {"from_attributes": True}


# =============================================================================
# EVALUATION SCHEMAS
# =============================================================================


class EvaluateRequest(BaseModel):
    """Evaluate one student's answer sheet."""

    test_id: str
    student_id: str
    topic: str = Field(..., min_length=1)


class BatchEvaluateRequest(BaseModel):
    """Evaluate several students; all students with sheets when omitted."""

    test_id: str
    topic: str = Field(..., min_length=1)
    student_ids: list[str] | None = None


class BatchStartedResponse(BaseModel):
    batch_id: str
    total: int


class BatchProgressResponse(BaseModel):
    batch_id: str
    test_id: str
    total: int
    completed: int
    failed: int
    evaluating: list[str]
    percentage: int
    results: dict[str, dict[str, Any]]
    errors: dict[str, str]
    retry_counts: dict[str, int]
    done: bool


class EvaluationResponse(BaseModel):
    id: str
    test_id: str
    student_id: str
    subject_id: str
    status: str
    evaluation_data: dict[str, Any]
    created_at: str = ""
    updated_at: str = ""

    model_config = {"from_attributes": True}


# =============================================================================
# HEALTH SCHEMAS
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
