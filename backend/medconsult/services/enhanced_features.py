# backend/medconsult/services/enhanced_features.py

import logging
from typing import List, Optional

from pydantic import ValidationError

from medconsult.models import (
    AnalysisResult,
    ClinicalAlert,
    EducationMCQ,
    PatientEducation,
    PatientInfo,
    RiskAssessment,
    TreatmentPathway,
)
from . import prompts
from .model_gateway import ModelGateway
from .response_interpreter import parse_list, parse_object

logger = logging.getLogger(__name__)

AUDIENCES = ("medical_professional", "patient", "caregiver", "student")

FALLBACK_TREATMENT = {
    "firstLineTherapy": ["Symptomatic treatment", "Rest", "Hydration"],
    "alternativeTreatments": ["Consult specialist if no improvement"],
    "monitoringRequirements": ["Monitor symptoms"],
    "followUpSchedule": "Follow up in 1-2 weeks",
    "escalationCriteria": ["Worsening symptoms", "New concerning signs"],
}

FALLBACK_RISK = {
    "immediateRisk": "low",
    "shortTermRisk": "low",
    "longTermRisk": "low",
    "riskFactors": ["Monitor symptoms closely", "Follow prescribed treatment"],
    "mitigationStrategies": ["Follow prescribed treatment", "Regular monitoring", "Maintain healthy lifestyle"],
}

FALLBACK_ALERT = {
    "type": "info",
    "priority": 5,
    "message": "Continue monitoring patient condition",
    "actionRequired": "Regular assessment",
    "timeframe": "Ongoing",
}

FALLBACK_INTERACTIONS = ["No significant interactions detected"]

FALLBACK_SECOND_OPINION = (
    "Second opinion analysis unavailable. Consider specialist consultation if symptoms persist or worsen."
)


def fallback_education(diagnosis: str) -> PatientEducation:
    return PatientEducation(
        simple_explanation=(
            f"You have been diagnosed with {diagnosis}. This condition affects your health and needs proper care."
        ),
        lifestyle_modifications=["Rest when needed", "Stay hydrated", "Follow medication schedule"],
        warning_signs_to_watch=["Worsening symptoms", "New severe symptoms", "Difficulty breathing"],
        when_to_seek_help=["If symptoms get worse", "If you have severe pain", "If you feel very unwell"],
        customized_content="Please follow up with your healthcare provider for personalized guidance.",
    )


class EnhancedFeatureService:
    """Per-diagnosis extras built on top of a completed analysis."""

    def __init__(self, gateway: ModelGateway):
        self.gateway = gateway

    async def treatment_pathway(self, diagnosis: str, patient_info: Optional[PatientInfo] = None) -> TreatmentPathway:
        text = await self.gateway.complete(prompts.build_treatment_pathway_prompt(diagnosis, patient_info))
        data = parse_object(text)
        if data is not None:
            try:
                return TreatmentPathway.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Unusable treatment pathway for {diagnosis}: {e}")
        return TreatmentPathway.model_validate(FALLBACK_TREATMENT)

    async def risk_assessment(self, diagnosis: str, patient_info: Optional[PatientInfo] = None) -> RiskAssessment:
        text = await self.gateway.complete(prompts.build_risk_prompt(diagnosis, patient_info))
        data = parse_object(text)
        if data is not None:
            for key in ("immediateRisk", "shortTermRisk", "longTermRisk"):
                if isinstance(data.get(key), str):
                    data[key] = data[key].strip().lower()
            try:
                return RiskAssessment.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Unusable risk assessment for {diagnosis}: {e}")
        return RiskAssessment.model_validate(FALLBACK_RISK)

    async def patient_education(
        self, diagnosis: str, education_level: str = "general", language: str = "english"
    ) -> PatientEducation:
        text = await self.gateway.complete(
            prompts.build_education_prompt(diagnosis, education_level, language), use_reasoner=False
        )
        data = parse_object(text)
        if data is not None:
            try:
                return PatientEducation.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Unusable patient education for {diagnosis}: {e}")
        return fallback_education(diagnosis)

    async def clinical_alerts(
        self, diagnosis: str, symptoms: str, patient_info: Optional[PatientInfo] = None
    ) -> List[ClinicalAlert]:
        text = await self.gateway.complete(prompts.build_alerts_prompt(diagnosis, symptoms, patient_info))
        items = parse_list(text) or []
        alerts = []
        for item in items:
            try:
                alerts.append(ClinicalAlert.model_validate(item))
            except ValidationError as e:
                logger.debug(f"Skipping clinical alert: {e}")
        if not alerts:
            return [ClinicalAlert.model_validate(FALLBACK_ALERT)]
        return sorted(alerts, key=lambda alert: alert.priority)

    async def drug_interactions(self, medications: List[str], allergies: List[str], diagnosis: str) -> List[str]:
        text = await self.gateway.complete(prompts.build_drug_interaction_prompt(medications, allergies, diagnosis))
        items = parse_list(text) or []
        warnings = [str(item).strip() for item in items if isinstance(item, str) and item.strip()]
        return warnings or list(FALLBACK_INTERACTIONS)

    async def second_opinion(
        self, primary_diagnosis: str, symptoms: str, patient_info: Optional[PatientInfo] = None
    ) -> str:
        reply = await self.gateway.generate(
            prompts.build_second_opinion_prompt(primary_diagnosis, symptoms, patient_info)
        )
        if reply.degraded:
            return FALLBACK_SECOND_OPINION
        return reply.text.strip()

    async def adapt_communication(self, content: str, audience: str) -> str:
        reply = await self.gateway.generate(
            prompts.build_communication_prompt(content, audience), use_reasoner=False
        )
        if reply.degraded:
            return content
        return reply.text.strip()

    def education_mcqs(
        self,
        symptoms: str,
        mode: str,
        diagnosis: Optional[str] = None,
        patient_info: Optional[PatientInfo] = None,
        analysis: Optional[AnalysisResult] = None,
    ) -> List[EducationMCQ]:
        if diagnosis and analysis:
            return dynamic_education_mcqs(symptoms, diagnosis, patient_info, analysis)
        return fallback_education_mcqs(symptoms, mode)


def dynamic_education_mcqs(
    symptoms: str, diagnosis: str, patient_info: Optional[PatientInfo], analysis: AnalysisResult
) -> List[EducationMCQ]:
    """Knowledge-check questions built from a finished consultation."""
    confidence = analysis.overall_confidence or 75
    age = patient_info.age if patient_info and patient_info.age else 35
    gender = patient_info.gender if patient_info and patient_info.gender else "patient"
    symptoms_lower = symptoms.lower()
    diagnosis_lower = diagnosis.lower()
    mcqs = []

    if "chest pain" in symptoms_lower or "heart" in symptoms_lower or "cardiac" in diagnosis_lower:
        mcqs.append(EducationMCQ(
            id="cardiac-dx",
            question=(
                f"A {age}-year-old {gender} presents with chest pain. What is the most appropriate "
                "initial assessment priority?"
            ),
            options=[
                "Rule out acute coronary syndrome with ECG and troponins",
                "Immediate cardiac catheterization",
                "Discharge with pain medication",
                "Psychiatric evaluation for anxiety",
            ],
            correct_answer=0,
            category="cardiovascular",
            explanation="Chest pain requires systematic evaluation to exclude life-threatening conditions like ACS.",
            follow_up="What additional risk factors would increase concern for ACS?",
        ))

    if "fever" in symptoms_lower or "viral" in diagnosis_lower or "infection" in diagnosis_lower:
        first_option = (
            "Supportive care with rest, fluids, and symptom management"
            if "viral" in diagnosis_lower
            else "Empirical antibiotic therapy"
        )
        mcqs.append(EducationMCQ(
            id="infectious-tx",
            question=f"For this case of {diagnosis} with confidence {confidence}%, what is the most appropriate treatment approach?",
            options=[
                first_option,
                "Immediate antiviral medication regardless of etiology",
                "Hospitalization for IV antibiotics",
                "No treatment needed, observation only",
            ],
            correct_answer=0,
            category="treatment",
            explanation="Treatment should be tailored to the specific pathogen type and severity.",
            follow_up="When would you consider escalating care?",
        ))

    if "headache" in symptoms_lower or "head pain" in symptoms_lower or "migraine" in diagnosis_lower:
        mcqs.append(EducationMCQ(
            id="neuro-redflags",
            question=f"In this {age}-year-old with headache, which finding would most urgently require neuroimaging?",
            options=[
                "Sudden onset severe headache with neck stiffness",
                "Chronic daily headache pattern",
                "Headache only with stress",
                "Mild headache with normal exam",
            ],
            correct_answer=0,
            category="red-flags",
            explanation="Sudden severe headache with neck stiffness suggests serious intracranial pathology.",
            follow_up="What other neurological red flags should be assessed?",
        ))

    if "cough" in symptoms_lower or "breathing" in symptoms_lower or "respiratory" in diagnosis_lower:
        mcqs.append(EducationMCQ(
            id="respiratory-prognosis",
            question=f"What is the expected prognosis for this case of {diagnosis} in a {age}-year-old {gender}?",
            options=[
                "Good prognosis with complete recovery expected in 1-2 weeks"
                if confidence > 80
                else "Uncertain prognosis requiring close monitoring",
                "Chronic condition requiring long-term therapy",
                "Life-threatening condition requiring ICU care",
                "Self-limiting condition needing no intervention",
            ],
            correct_answer=0,
            category="prognosis",
            explanation="Prognosis depends on diagnostic confidence, patient age, and condition severity.",
            follow_up="What factors could worsen the prognosis?",
        ))

    mcqs.append(EducationMCQ(
        id="reasoning-confidence",
        question=f"With a diagnostic confidence of {confidence}% for {diagnosis}, what is the most appropriate next step?",
        options=[
            "Proceed with evidence-based treatment" if confidence >= 80 else "Gather additional diagnostic information",
            "Treat empirically regardless of confidence",
            "Refer immediately to specialist",
            "Discharge without follow-up",
        ],
        correct_answer=0,
        category="clinical-reasoning",
        explanation="Clinical decisions should reflect diagnostic confidence and treatment risk-benefit ratio.",
        follow_up="How would you monitor treatment response?",
    ))
    mcqs.append(EducationMCQ(
        id="safety-education",
        question=f"When educating this patient about {diagnosis}, which safety information is most critical?",
        options=[
            "Warning signs requiring immediate medical attention",
            "Complete pathophysiology explanation",
            "All possible rare complications",
            "Insurance and billing procedures",
        ],
        correct_answer=0,
        category="patient-safety",
        explanation="Patient safety education about red flag symptoms is the highest priority.",
        follow_up="What specific warning signs should be emphasized?",
    ))

    if len(analysis.diagnoses) > 1:
        names = [d.name for d in analysis.diagnoses]
        mcqs.append(EducationMCQ(
            id="differential-dx",
            question=f'Given the presentation "{symptoms}", which differential diagnosis is most likely?',
            options=[
                names[0],
                names[1],
                names[2] if len(names) > 2 else "Less likely condition",
                "Requires emergency intervention",
            ],
            correct_answer=0,
            category="differential-diagnosis",
            explanation="The primary diagnosis has the highest likelihood based on symptom analysis.",
            follow_up="What additional tests could help confirm the diagnosis?",
        ))

    return mcqs[:8]


_PATIENT_GENERAL_MCQS = [
    EducationMCQ(
        id="patient-safety",
        question="When should you seek immediate medical attention?",
        options=[
            "For severe symptoms like chest pain, difficulty breathing, or signs of stroke",
            "Only when symptoms last more than a month",
            "Never, always wait for scheduled appointments",
            "Only during business hours",
        ],
        correct_answer=0,
        category="patient-safety",
        explanation="Serious symptoms require immediate evaluation to prevent complications.",
    ),
    EducationMCQ(
        id="medication-safety",
        question="What is most important when taking any medication?",
        options=[
            "Follow dosing instructions and check for drug interactions",
            "Take the maximum dose for faster relief",
            "Stop immediately if you feel better",
            "Share medications with family members",
        ],
        correct_answer=0,
        category="medication-safety",
        explanation="Proper medication use prevents adverse effects and ensures effectiveness.",
    ),
]

_CLINICIAN_GENERAL_MCQS = [
    EducationMCQ(
        id="clinical-reasoning",
        question="In clinical decision-making, what is the most important factor?",
        options=[
            "Integration of clinical findings with evidence-based guidelines",
            "Relying solely on personal experience",
            "Following the most expensive treatment option",
            "Always choosing the newest treatment available",
        ],
        correct_answer=0,
        category="clinical-reasoning",
        explanation="Evidence-based practice combined with clinical judgment provides optimal care.",
    ),
    EducationMCQ(
        id="risk-assessment",
        question="When stratifying patient risk, which factors are most important?",
        options=[
            "Patient age, comorbidities, severity of presentation, and response to initial treatment",
            "Insurance status and hospital preferences",
            "Patient's family requests only",
            "Time of day and staffing levels",
        ],
        correct_answer=0,
        category="risk-stratification",
        explanation="Clinical factors determine appropriate level of care and monitoring needs.",
    ),
]


def fallback_education_mcqs(symptoms: str, mode: str) -> List[EducationMCQ]:
    symptoms_lower = (symptoms or "").lower()
    mcqs = []
    if "fever" in symptoms_lower or "temperature" in symptoms_lower:
        mcqs.append(EducationMCQ(
            id="fever-management",
            question="For a patient presenting with fever, what is the most appropriate initial assessment?",
            options=[
                "Take vital signs, assess hydration status, and look for infection source",
                "Immediately start antibiotics",
                "Order extensive imaging studies",
                "Discharge with fever reducers only",
            ],
            correct_answer=0,
            category="symptom-management",
            explanation="Systematic assessment helps identify serious conditions and guides appropriate treatment.",
        ))
    if "pain" in symptoms_lower or "ache" in symptoms_lower:
        mcqs.append(EducationMCQ(
            id="pain-assessment",
            question="When assessing pain, which approach provides the most comprehensive evaluation?",
            options=[
                "Use validated pain scales and assess impact on function",
                "Rely only on patient's verbal description",
                "Focus solely on pain intensity",
                "Assume all pain requires opioid medication",
            ],
            correct_answer=0,
            category="pain-management",
            explanation="Comprehensive pain assessment includes intensity, quality, impact, and underlying causes.",
        ))
    general = _PATIENT_GENERAL_MCQS if mode == "patient" else _CLINICIAN_GENERAL_MCQS
    mcqs.extend(mcq.model_copy() for mcq in general)
    return mcqs[:6]
