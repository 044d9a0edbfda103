# backend/medconsult/models/requests.py
#
# Request bodies. Required fields are Optional here; the
# orchestrator validates them and answers 400 with a readable message.

from typing import List, Optional

from .analysis import AnalysisResult, FollowUpAnswer
from .base import CamelModel
from .consultation import PatientInfo


class CreateSessionRequest(CamelModel):
    session_id: Optional[str] = None
    mode: Optional[str] = None
    patient_info: Optional[PatientInfo] = None


class SessionUpdateRequest(CamelModel):
    mode: Optional[str] = None
    patient_info: Optional[PatientInfo] = None
    symptoms: Optional[str] = None
    ai_analysis: Optional[AnalysisResult] = None


class GenerateQuestionsRequest(CamelModel):
    symptoms: Optional[str] = None
    mode: Optional[str] = None
    session_id: Optional[str] = None
    question_type: Optional[str] = None
    patient_info: Optional[PatientInfo] = None


class AnalyzeRequest(CamelModel):
    symptoms: Optional[str] = None
    mode: Optional[str] = None
    session_id: Optional[str] = None
    follow_up_answers: Optional[List[FollowUpAnswer]] = None
    patient_info: Optional[PatientInfo] = None


class SubmitAnswersRequest(CamelModel):
    session_id: Optional[str] = None
    answers: Optional[List[FollowUpAnswer]] = None


class SkipFollowUpRequest(CamelModel):
    session_id: Optional[str] = None


class DiagnosisFeatureRequest(CamelModel):
    diagnosis: Optional[str] = None
    symptoms: Optional[str] = None
    mode: Optional[str] = None
    patient_info: Optional[PatientInfo] = None
    education_level: Optional[str] = None
    language: Optional[str] = None


class DrugInteractionRequest(CamelModel):
    diagnosis: Optional[str] = None
    medications: List[str] = []
    allergies: List[str] = []


class AdaptCommunicationRequest(CamelModel):
    content: Optional[str] = None
    audience: Optional[str] = None
