"""Fixtures for web API tests."""

import pytest
from fastapi.testclient import TestClient

from examdesk.core.evaluation_workflow import EvaluationTracker
from examdesk.web.api import create_app
from examdesk.web.dependencies import get_llm_client, get_object_store, get_tracker


@pytest.fixture
def tracker() -> EvaluationTracker:
    return EvaluationTracker()


@pytest.fixture
def client(db, store, mock_llm_client, tracker):
    """Test client with an isolated database, store, LLM mock and tracker."""
    app = create_app()
    app.dependency_overrides[get_object_store] = lambda: store
    app.dependency_overrides[get_llm_client] = lambda: mock_llm_client
    app.dependency_overrides[get_tracker] = lambda: tracker
    return TestClient(app)
