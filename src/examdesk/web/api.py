"""FastAPI application factory.

Main entry point for the examdesk web API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from examdesk.config import load_app_config
from examdesk.db.database import get_db_path, init_db
from examdesk.web.routes import (
    analysis_router,
    classes_router,
    evaluations_router,
    files_router,
    generation_router,
    health_router,
    students_router,
    subjects_router,
    tests_router,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown events."""
    config = load_app_config()
    init_db(config.db_path)
    logger.info(
        "api_startup",
        db_path=str(get_db_path().absolute()),
        storage_dir=str(config.storage_dir.absolute()),
        public_base_url=config.storage.public_base_url,
    )
    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="examdesk API",
        description="Students, tests, question papers and AI-assisted evaluation",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(classes_router)
    app.include_router(students_router)
    app.include_router(subjects_router)
    app.include_router(tests_router)
    app.include_router(files_router)
    app.include_router(generation_router)
    app.include_router(analysis_router)
    app.include_router(evaluations_router)

    return app


# Default app instance for uvicorn
app = create_app()
