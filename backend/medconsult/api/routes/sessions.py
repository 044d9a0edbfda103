# backend/medconsult/api/routes/sessions.py

from typing import List

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from medconsult.api.dependencies import get_orchestrator, http_error
from medconsult.models import ConsultationSession, ConversationEntry, DiagnosisRecord
from medconsult.models.requests import CreateSessionRequest, SessionUpdateRequest
from medconsult.services.consultation_orchestrator import ConsultationError, ConsultationOrchestrator

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=ConsultationSession)
async def create_session(
    body: CreateSessionRequest,
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
):
    """Create a session, or update it when the id already exists."""
    try:
        return orchestrator.open_session(body.session_id, body.mode, body.patient_info)
    except ConsultationError as e:
        raise http_error(e)


@router.get("/{session_id}", response_model=ConsultationSession)
async def get_session(session_id: str, orchestrator: ConsultationOrchestrator = Depends(get_orchestrator)):
    try:
        return orchestrator.get_session(session_id)
    except ConsultationError as e:
        raise http_error(e)


@router.patch("/{session_id}", response_model=ConsultationSession)
async def update_session(
    session_id: str,
    body: SessionUpdateRequest,
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
):
    changes = {field: getattr(body, field) for field in body.model_fields_set}
    try:
        return orchestrator.patch_session(session_id, changes)
    except ConsultationError as e:
        raise http_error(e)


@router.post("/{session_id}/clear", response_model=ConsultationSession)
async def clear_session(session_id: str, orchestrator: ConsultationOrchestrator = Depends(get_orchestrator)):
    """Reset the consultation; the response carries the new session id."""
    try:
        return orchestrator.clear_session(session_id)
    except ConsultationError as e:
        raise http_error(e)


@router.get("/{session_id}/conversation", response_model=List[ConversationEntry])
async def get_conversation(session_id: str, orchestrator: ConsultationOrchestrator = Depends(get_orchestrator)):
    try:
        return orchestrator.conversation(session_id)
    except ConsultationError as e:
        raise http_error(e)


@router.get("/{session_id}/diagnoses", response_model=List[DiagnosisRecord])
async def get_diagnoses(session_id: str, orchestrator: ConsultationOrchestrator = Depends(get_orchestrator)):
    try:
        return orchestrator.diagnoses(session_id)
    except ConsultationError as e:
        raise http_error(e)


@router.get("/{session_id}/export")
async def export_session(session_id: str, orchestrator: ConsultationOrchestrator = Depends(get_orchestrator)):
    try:
        export = orchestrator.export(session_id)
    except ConsultationError as e:
        raise http_error(e)

    return JSONResponse(
        jsonable_encoder(export),
        headers={"Content-Disposition": f'attachment; filename="consultation-{session_id}.json"'},
    )
