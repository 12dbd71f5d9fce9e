"""Core business logic.

Modules:
- documents: URL-based document type detection and naming helpers
- text_extraction: PDF / image / zip text extraction with OCR fallback
- csv_utils: Student CSV template and import parsing
- filters: Question, student and answer-sheet search helpers
- question_generator: AI question generation
- paper_generator: Question paper assembly
- paper_analyzer: Question paper analysis and reports
- paper_evaluator: Answer-sheet evaluation call
- evaluation_workflow: Evaluation state, retries and batch progress
- test_files: Subject/test paper files and assignment
"""

__all__ = [
    "documents",
    "text_extraction",
    "csv_utils",
    "filters",
    "question_generator",
    "paper_generator",
    "paper_analyzer",
    "paper_evaluator",
    "evaluation_workflow",
    "test_files",
]
