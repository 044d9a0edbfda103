# backend/medconsult/api/routes/enhanced.py
#
# Single enhanced features, callable outside a full consultation.

from typing import List

from fastapi import APIRouter, Depends

from medconsult.api.dependencies import get_orchestrator, http_error
from medconsult.models import ClinicalAlert, PatientEducation, RiskAssessment, TreatmentPathway
from medconsult.models.requests import (
    AdaptCommunicationRequest,
    DiagnosisFeatureRequest,
    DrugInteractionRequest,
)
from medconsult.services.consultation_orchestrator import (
    ConsultationError,
    ConsultationOrchestrator,
    ConsultationValidationError,
)
from medconsult.services.enhanced_features import AUDIENCES

router = APIRouter(tags=["enhanced features"])


@router.post("/generate-mcq")
async def generate_mcq(
    body: DiagnosisFeatureRequest,
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
):
    try:
        diagnosis = orchestrator.require_text(body.diagnosis, "diagnosis")
    except ConsultationError as e:
        raise http_error(e)

    questions = orchestrator.features.education_mcqs(body.symptoms or diagnosis, body.mode or "patient")
    return {"questions": questions}


@router.post("/treatment-pathway", response_model=TreatmentPathway)
async def treatment_pathway(
    body: DiagnosisFeatureRequest,
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
):
    try:
        diagnosis = orchestrator.require_text(body.diagnosis, "diagnosis")
    except ConsultationError as e:
        raise http_error(e)
    return await orchestrator.features.treatment_pathway(diagnosis, body.patient_info)


@router.post("/risk-assessment", response_model=RiskAssessment)
async def risk_assessment(
    body: DiagnosisFeatureRequest,
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
):
    try:
        diagnosis = orchestrator.require_text(body.diagnosis, "diagnosis")
        orchestrator.require_text(body.symptoms, "symptoms")
    except ConsultationError as e:
        raise http_error(e)
    return await orchestrator.features.risk_assessment(diagnosis, body.patient_info)


@router.post("/patient-education", response_model=PatientEducation)
async def patient_education(
    body: DiagnosisFeatureRequest,
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
):
    try:
        diagnosis = orchestrator.require_text(body.diagnosis, "diagnosis")
    except ConsultationError as e:
        raise http_error(e)
    return await orchestrator.features.patient_education(
        diagnosis, body.education_level or "general", body.language or "english"
    )


@router.post("/clinical-alerts", response_model=List[ClinicalAlert])
async def clinical_alerts(
    body: DiagnosisFeatureRequest,
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
):
    try:
        diagnosis = orchestrator.require_text(body.diagnosis, "diagnosis")
        symptoms = orchestrator.require_text(body.symptoms, "symptoms")
    except ConsultationError as e:
        raise http_error(e)
    return await orchestrator.features.clinical_alerts(diagnosis, symptoms, body.patient_info)


@router.post("/drug-interactions")
async def drug_interactions(
    body: DrugInteractionRequest,
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
):
    try:
        diagnosis = orchestrator.require_text(body.diagnosis, "diagnosis")
    except ConsultationError as e:
        raise http_error(e)
    interactions = await orchestrator.features.drug_interactions(body.medications, body.allergies, diagnosis)
    return {"interactions": interactions}


@router.post("/second-opinion")
async def second_opinion(
    body: DiagnosisFeatureRequest,
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
):
    try:
        diagnosis = orchestrator.require_text(body.diagnosis, "diagnosis")
        symptoms = orchestrator.require_text(body.symptoms, "symptoms")
    except ConsultationError as e:
        raise http_error(e)
    opinion = await orchestrator.features.second_opinion(diagnosis, symptoms, body.patient_info)
    return {"opinion": opinion}


@router.post("/adapt-communication")
async def adapt_communication(
    body: AdaptCommunicationRequest,
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
):
    audience = body.audience or "patient"
    try:
        content = orchestrator.require_text(body.content, "content")
        if audience not in AUDIENCES:
            raise ConsultationValidationError(
                f"Invalid audience '{audience}', expected one of: {', '.join(AUDIENCES)}"
            )
    except ConsultationError as e:
        raise http_error(e)

    adapted = await orchestrator.features.adapt_communication(content, audience)
    return {"content": adapted, "audience": audience}
