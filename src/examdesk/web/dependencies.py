"""Shared route dependencies.

Routes take the object store and LLM client through FastAPI ``Depends`` so
tests can swap them with ``app.dependency_overrides``.
"""

from __future__ import annotations

from examdesk.core.evaluation_workflow import EvaluationTracker, get_evaluation_tracker
from examdesk.llm.client import LLMClient
from examdesk.storage.object_store import LocalObjectStore, create_object_store

_object_store: LocalObjectStore | None = None


def get_object_store() -> LocalObjectStore:
    """Get the global object store instance."""
    global _object_store
    if _object_store is None:
        _object_store = create_object_store()
    return _object_store


def reset_object_store() -> None:
    """Reset the global object store (for testing)."""
    global _object_store
    _object_store = None


def get_llm_client() -> LLMClient:
    return LLMClient()


def get_tracker() -> EvaluationTracker:
    return get_evaluation_tracker()
