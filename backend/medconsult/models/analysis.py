# backend/medconsult/models/analysis.py

from typing import List, Literal, Optional

from pydantic import Field, model_validator

from .base import CamelModel


class DiagnosisCandidate(CamelModel):
    name: str
    description: str = ""
    confidence: int = Field(default=50, ge=0, le=100)
    category: str = "General"
    red_flags: List[str] = []
    recommended_tests: List[str] = []
    severity: str = "medium"
    literature_support: str = "moderate"
    additional_testing_needed: List[str] = []


class MCQOption(CamelModel):
    id: str
    label: str
    value: str


class FollowUpMCQ(CamelModel):
    id: str
    question: str
    options: List[MCQOption] = Field(min_length=2)
    category: str = "general"


class FollowUpAnswer(CamelModel):
    """Answer to a descriptive question, or to an MCQ identified only by
    `questionId`; `question` is filled in from the id when it is missing."""

    question: Optional[str] = None
    question_id: Optional[str] = None
    answer: str = ""

    @model_validator(mode="after")
    def fill_question(self) -> "FollowUpAnswer":
        if not (self.question and self.question.strip()):
            self.question = f"Question {self.question_id}" if self.question_id else "Follow-up question"
        return self


class AnalysisResult(CamelModel):
    diagnoses: List[DiagnosisCandidate] = Field(min_length=1)
    follow_up_questions: List[str] = []
    follow_up_mcqs: Optional[List[FollowUpMCQ]] = Field(default=None, alias="followUpMCQs")
    red_flags: List[str] = []
    recommended_tests: List[str] = []
    overall_confidence: int = Field(default=0, ge=0, le=100)
    degraded: bool = False


class FollowUpBundle(CamelModel):
    """Result of one question-generation round trip; exactly one of
    `questions` / `follow_up_mcqs` is populated."""

    question_type: Literal["mcq", "descriptive"]
    questions: Optional[List[str]] = None
    follow_up_mcqs: Optional[List[FollowUpMCQ]] = Field(default=None, alias="followUpMCQs")
    degraded: bool = False


# ---------- enhanced features ----------

class TreatmentPathway(CamelModel):
    first_line_therapy: List[str] = []
    alternative_treatments: List[str] = []
    monitoring_requirements: List[str] = []
    follow_up_schedule: str = ""
    escalation_criteria: List[str] = []


class RiskAssessment(CamelModel):
    immediate_risk: Literal["low", "medium", "high", "critical"] = "low"
    short_term_risk: Literal["low", "medium", "high"] = "low"
    long_term_risk: Literal["low", "medium", "high"] = "low"
    risk_factors: List[str] = []
    mitigation_strategies: List[str] = []


class PatientEducation(CamelModel):
    simple_explanation: str = ""
    lifestyle_modifications: List[str] = []
    warning_signs_to_watch: List[str] = []
    when_to_seek_help: List[str] = []
    customized_content: str = ""


class ClinicalAlert(CamelModel):
    type: Literal["critical", "warning", "info"] = "info"
    priority: int = Field(default=5, ge=1, le=10)
    message: str
    action_required: str = ""
    timeframe: str = ""


class EducationMCQ(CamelModel):
    """Knowledge-check question shown after an analysis (has a right answer)."""

    id: str
    question: str
    options: List[str] = Field(min_length=2)
    correct_answer: Optional[int] = None
    category: str = "general"
    explanation: Optional[str] = None
    follow_up: Optional[str] = None


class EnhancedAnalysis(CamelModel):
    analysis: AnalysisResult
    follow_up_mcqs: Optional[List[FollowUpMCQ]] = Field(default=None, alias="followUpMCQs")
    mcq_questions: Optional[List[EducationMCQ]] = Field(default=None, alias="mcqQuestions")
    patient_education: Optional[PatientEducation] = None
    treatment_pathway: Optional[TreatmentPathway] = None
    risk_assessment: Optional[RiskAssessment] = None
    clinical_alerts: Optional[List[ClinicalAlert]] = None
