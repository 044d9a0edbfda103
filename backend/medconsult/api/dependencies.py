# backend/medconsult/api/dependencies.py

from fastapi import HTTPException, Request

from medconsult.core.config import Settings
from medconsult.services.consultation_orchestrator import (
    ConsultationError,
    ConsultationOrchestrator,
    ConsultationValidationError,
    InvalidTransitionError,
    SessionNotFoundError,
)


def get_orchestrator(request: Request) -> ConsultationOrchestrator:
    return request.app.state.orchestrator


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def http_error(error: ConsultationError) -> HTTPException:
    """Map a domain error onto the HTTP status the API reports for it."""
    if isinstance(error, SessionNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, InvalidTransitionError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, ConsultationValidationError):
        return HTTPException(status_code=400, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
