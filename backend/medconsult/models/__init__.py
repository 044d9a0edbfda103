"""Pydantic models for the consultation backend."""

from .analysis import (
    AnalysisResult,
    ClinicalAlert,
    DiagnosisCandidate,
    EducationMCQ,
    EnhancedAnalysis,
    FollowUpAnswer,
    FollowUpBundle,
    FollowUpMCQ,
    MCQOption,
    PatientEducation,
    RiskAssessment,
    TreatmentPathway,
)
from .consultation import (
    MODES,
    ConsultationMode,
    ConsultationSession,
    ConsultationState,
    ConversationEntry,
    DiagnosisRecord,
    PatientInfo,
    SessionExport,
)

__all__ = [
    "AnalysisResult",
    "ClinicalAlert",
    "ConsultationMode",
    "ConsultationSession",
    "ConsultationState",
    "ConversationEntry",
    "DiagnosisCandidate",
    "DiagnosisRecord",
    "EducationMCQ",
    "EnhancedAnalysis",
    "FollowUpAnswer",
    "FollowUpBundle",
    "FollowUpMCQ",
    "MCQOption",
    "MODES",
    "PatientEducation",
    "PatientInfo",
    "RiskAssessment",
    "SessionExport",
    "TreatmentPathway",
]
