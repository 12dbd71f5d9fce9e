"""Route handlers for the web API."""

from examdesk.web.routes.analysis import router as analysis_router
from examdesk.web.routes.classes import router as classes_router
from examdesk.web.routes.evaluations import router as evaluations_router
from examdesk.web.routes.files import router as files_router
from examdesk.web.routes.generation import router as generation_router
from examdesk.web.routes.health import router as health_router
from examdesk.web.routes.students import router as students_router
from examdesk.web.routes.subjects import router as subjects_router
from examdesk.web.routes.tests import router as tests_router

__all__ = [
    "analysis_router",
    "classes_router",
    "evaluations_router",
    "files_router",
    "generation_router",
    "health_router",
    "students_router",
    "subjects_router",
    "tests_router",
]
