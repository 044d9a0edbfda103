# backend/medconsult/api/routes/consultation.py

import logging

from fastapi import APIRouter, Depends

from medconsult.api.dependencies import get_orchestrator, http_error
from medconsult.models import AnalysisResult, EnhancedAnalysis, FollowUpBundle
from medconsult.models.requests import (
    AnalyzeRequest,
    GenerateQuestionsRequest,
    SkipFollowUpRequest,
    SubmitAnswersRequest,
)
from medconsult.services.consultation_orchestrator import ConsultationError, ConsultationOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["consultation"])


@router.post("/generate-questions", response_model=FollowUpBundle, response_model_exclude_none=True)
async def generate_questions(
    body: GenerateQuestionsRequest,
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
):
    """
    Store the initial symptoms and return follow-up questions, either as
    plain questions or as multiple choice items depending on `questionType`.
    """
    try:
        return await orchestrator.generate_questions(
            body.session_id, body.mode, body.symptoms, body.question_type, body.patient_info
        )
    except ConsultationError as e:
        raise http_error(e)


@router.post("/analyze", response_model=AnalysisResult)
async def analyze(body: AnalyzeRequest, orchestrator: ConsultationOrchestrator = Depends(get_orchestrator)):
    try:
        return await orchestrator.analyze(
            body.session_id, body.mode, body.symptoms, body.follow_up_answers, body.patient_info
        )
    except ConsultationError as e:
        raise http_error(e)


@router.post("/submit-answers")
async def submit_answers(
    body: SubmitAnswersRequest,
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
):
    """Analyse the stored symptoms together with the follow-up answers."""
    try:
        analysis = await orchestrator.submit_answers(body.session_id, body.answers)
    except ConsultationError as e:
        raise http_error(e)

    logger.info(f"Answers submitted for session {body.session_id}")
    return {
        "success": True,
        "analysis": analysis,
        "message": "Follow-up answers submitted and analysis generated successfully",
    }


@router.post("/skip-follow-up", response_model=AnalysisResult)
async def skip_follow_up(
    body: SkipFollowUpRequest,
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
):
    try:
        return await orchestrator.skip_follow_up(body.session_id)
    except ConsultationError as e:
        raise http_error(e)


@router.post("/enhanced-analysis", response_model=EnhancedAnalysis, response_model_exclude_none=True)
async def enhanced_analysis(
    body: AnalyzeRequest,
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
):
    try:
        return await orchestrator.enhanced_analysis(
            body.session_id, body.mode, body.symptoms, body.follow_up_answers, body.patient_info
        )
    except ConsultationError as e:
        raise http_error(e)
