# backend/medconsult/models/consultation.py

from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional

from pydantic import Field

from .analysis import AnalysisResult, DiagnosisCandidate
from .base import CamelModel

ConsultationMode = Literal["doctor", "patient", "unified"]
MODES = ("doctor", "patient", "unified")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConsultationState(str, Enum):
    AWAITING_SYMPTOMS = "AWAITING_SYMPTOMS"
    AWAITING_QUESTION_TYPE = "AWAITING_QUESTION_TYPE"
    AWAITING_FOLLOWUP_ANSWERS = "AWAITING_FOLLOWUP_ANSWERS"
    ANALYZING = "ANALYZING"
    COMPLETE = "COMPLETE"
    # Transient: a step failed and control went back to the prior state.
    # Never persisted.
    ERROR = "ERROR"


class PatientInfo(CamelModel):
    name: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    medical_history: Optional[str] = None
    education_level: Optional[str] = None
    language: Optional[str] = None


class ConsultationSession(CamelModel):
    session_id: str
    mode: ConsultationMode
    patient_info: Optional[PatientInfo] = None
    symptoms: Optional[str] = None
    ai_analysis: Optional[AnalysisResult] = None
    state: ConsultationState = ConsultationState.AWAITING_SYMPTOMS
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ConversationEntry(CamelModel):
    id: int
    session_id: str
    type: Literal["user", "system"]
    message: str
    timestamp: datetime = Field(default_factory=utcnow)


class DiagnosisRecord(CamelModel):
    id: int
    session_id: str
    name: str
    description: Optional[str] = None
    confidence: Optional[int] = None
    category: Optional[str] = None
    red_flags: List[str] = []
    recommended_tests: List[str] = []
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_candidate(cls, id: int, session_id: str, candidate: DiagnosisCandidate) -> "DiagnosisRecord":
        return cls(
            id=id,
            session_id=session_id,
            name=candidate.name,
            description=candidate.description,
            confidence=candidate.confidence,
            category=candidate.category,
            red_flags=list(candidate.red_flags),
            recommended_tests=list(candidate.recommended_tests),
        )


class SessionExport(CamelModel):
    session: ConsultationSession
    diagnoses: List[DiagnosisRecord] = []
    conversation: List[ConversationEntry] = []
    exported_at: datetime = Field(default_factory=utcnow)
