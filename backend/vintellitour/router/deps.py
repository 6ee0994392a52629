"""
Shared router dependencies and error mapping.
"""

from functools import lru_cache

from fastapi import HTTPException

from vintellitour.agents.orchestrator_agent import DialogueOrchestrator
from vintellitour.agents.sessions import SessionManager
from vintellitour.core.errors import (
    AssistantError,
    ForbiddenError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from vintellitour.db.itinerary_repository import ItineraryRepository

STATUS_BY_ERROR = {
    ValidationError: 422,
    NotFoundError: 404,
    ForbiddenError: 403,
    UpstreamError: 503,
}


@lru_cache
def get_repository() -> ItineraryRepository:
    return ItineraryRepository()


@lru_cache
def get_session_manager() -> SessionManager:
    return SessionManager(DialogueOrchestrator(repository=get_repository()))


def http_error(error: AssistantError) -> HTTPException:
    for error_type, status in STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status, detail=error.user_message)
    return HTTPException(status_code=500, detail=error.user_message)
