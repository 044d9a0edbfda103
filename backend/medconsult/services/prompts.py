# backend/medconsult/services/prompts.py
#
# Prompt builders. Each prompt names its task in the first line
# ("follow-up questions", "multiple choice", "differential diagnosis", ...);
# the gateway's canned responses are keyed on those phrases.

import json
from typing import List, Optional

from medconsult.models import PatientInfo

DOCTOR_CONTEXT = "You are assisting a healthcare professional with clinical decision support."
PATIENT_CONTEXT = (
    "You are helping a patient understand their health. Use simple, non-technical language."
)


def _mode_context(mode: str) -> str:
    return DOCTOR_CONTEXT if mode == "doctor" else PATIENT_CONTEXT


def _patient_line(patient_info: Optional[PatientInfo]) -> str:
    if not patient_info:
        return ""
    parts = []
    if patient_info.age is not None:
        parts.append(f"Age {patient_info.age}")
    if patient_info.gender:
        parts.append(f"Gender: {patient_info.gender}")
    if patient_info.medical_history:
        parts.append(f"History: {patient_info.medical_history}")
    return f"Patient information: {', '.join(parts)}" if parts else ""


def _patient_json(patient_info: Optional[PatientInfo]) -> str:
    if not patient_info:
        return "{}"
    return json.dumps(patient_info.model_dump(exclude_none=True))


def build_follow_up_questions_prompt(symptoms: str, mode: str, patient_info: Optional[PatientInfo] = None) -> str:
    if mode == "doctor":
        focus = """Focus on clinical aspects:
- Symptom progression and clinical timeline
- Associated symptoms, triggers and aggravating factors
- Past medical and family history
- Current medications and possible interactions
- Risk factors relevant to the differential

Use medical terminology and clinical precision."""
    else:
        focus = """Focus on what the patient can easily tell you:
- When did this start and how has it changed?
- What makes it better or worse?
- Any other symptoms along with this?
- What medications are you taking?
- How is this affecting your daily activities?

Use simple, everyday language."""

    return f"""Task: generate follow-up questions.
{_mode_context(mode)}

Based on these initial symptoms: "{symptoms}"
{_patient_line(patient_info)}

Generate 4-6 specific follow-up questions that would help gather the information needed for a complete medical assessment.

Return ONLY a JSON array of questions:
["Question 1?", "Question 2?", "Question 3?"]

{focus}"""


def build_follow_up_mcq_prompt(symptoms: str, mode: str, patient_info: Optional[PatientInfo] = None) -> str:
    return f"""Task: generate multiple choice follow-up items.
{_mode_context(mode)}

Based on these initial symptoms: "{symptoms}"
{_patient_line(patient_info)}

Write 4-6 multiple choice items that narrow down the cause of the symptoms
(timing, severity, progression, triggers, associated symptoms, medication use).
Each item must have 2-4 mutually exclusive options.

Return ONLY a JSON array:
[
  {{
    "id": "timing",
    "question": "When did you first notice these symptoms?",
    "options": [
      {{"id": "recent", "label": "Less than 24 hours ago", "value": "acute"}},
      {{"id": "few_days", "label": "2-7 days ago", "value": "subacute"}}
    ],
    "category": "timing"
  }}
]"""


def build_analysis_prompt(symptoms: str, mode: str, patient_info: Optional[PatientInfo] = None) -> str:
    if mode == "doctor":
        extra = "5. Include ICD-10 codes and medical references where appropriate"
    else:
        extra = "5. Use patient-friendly language"

    return f"""Task: differential diagnosis.
{_mode_context(mode)}

Patient symptoms: {symptoms}
{_patient_line(patient_info)}

Provide a differential diagnosis analysis. Your response MUST be a valid JSON object with this exact structure:
{{
  "diagnoses": [
    {{
      "name": "Diagnosis name",
      "description": "Clear description",
      "confidence": 85,
      "category": "Category name",
      "severity": "low|medium|high",
      "redFlags": ["flag1", "flag2"],
      "recommendedTests": ["test1", "test2"]
    }}
  ],
  "redFlags": ["general red flags"],
  "recommendedTests": ["general tests"]
}}

Focus on:
1. Most likely diagnoses with confidence scores from 0 to 100
2. Red flag symptoms requiring immediate attention
3. Appropriate diagnostic tests
4. Clear, actionable next steps
{extra}"""


def build_treatment_pathway_prompt(diagnosis: str, patient_info: Optional[PatientInfo] = None) -> str:
    return f"""Task: treatment pathway.
Based on diagnosis: "{diagnosis}"
Patient profile: {_patient_json(patient_info)}

Provide a treatment pathway:
1. First-line therapy options
2. Alternative treatments
3. Monitoring requirements
4. Follow-up schedule
5. When to escalate care

Format as JSON:
{{
  "firstLineTherapy": ["Rest", "Fluids"],
  "alternativeTreatments": ["Alternative therapy"],
  "monitoringRequirements": ["Daily temperature"],
  "followUpSchedule": "Return in 48-72 hours if symptoms worsen",
  "escalationCriteria": ["High fever >39°C", "Difficulty breathing"]
}}"""


def build_risk_prompt(diagnosis: str, patient_info: Optional[PatientInfo] = None) -> str:
    return f"""Task: risk stratification.
For diagnosis: "{diagnosis}"
Patient: {_patient_json(patient_info)}

Rate:
- Immediate risk (next 24 hours): low/medium/high/critical
- Short-term risk (next week): low/medium/high
- Long-term risk (next 6 months): low/medium/high

List specific risk factors and mitigation strategies.

Format as JSON:
{{
  "immediateRisk": "low",
  "shortTermRisk": "medium",
  "longTermRisk": "low",
  "riskFactors": ["Risk factor 1"],
  "mitigationStrategies": ["Strategy 1"]
}}"""


def build_education_prompt(diagnosis: str, education_level: str, language: str) -> str:
    return f"""Task: patient education material.
Condition: "{diagnosis}"
Education level: {education_level}
Language preference: {language}

Include a simple explanation, lifestyle modifications, warning signs to watch for
and when to seek immediate help.

Format as JSON:
{{
  "simpleExplanation": "Easy to understand explanation",
  "lifestyleModifications": ["Modification 1"],
  "warningSignsToWatch": ["Warning sign 1"],
  "whenToSeekHelp": ["Seek help if..."],
  "customizedContent": "Additional culturally appropriate content"
}}"""


def build_alerts_prompt(diagnosis: str, symptoms: str, patient_info: Optional[PatientInfo] = None) -> str:
    return f"""Task: clinical alerts.
Diagnosis: "{diagnosis}"
Patient: {_patient_json(patient_info)}
Symptoms: "{symptoms}"

Generate prioritized alerts for critical lab values, allergy warnings,
contraindications and immediate actions.

Format as a JSON array:
[{{
  "type": "critical|warning|info",
  "priority": 1,
  "message": "Alert message",
  "actionRequired": "Specific action needed",
  "timeframe": "When to act"
}}]"""


def build_drug_interaction_prompt(medications: List[str], allergies: List[str], diagnosis: str) -> str:
    return f"""Task: drug interactions check.
Current medications: {', '.join(medications) or 'none reported'}
Known allergies: {', '.join(allergies) or 'none reported'}
Diagnosis: {diagnosis}

Check for drug-drug interactions, drug-disease contraindications, allergy
considerations and needed dosage adjustments.

Return a JSON array of warnings:
["Warning 1", "Interaction 2"]"""


def build_second_opinion_prompt(primary_diagnosis: str, symptoms: str, patient_info: Optional[PatientInfo] = None) -> str:
    return f"""Task: second opinion.
Primary diagnosis: "{primary_diagnosis}"
Symptoms: "{symptoms}"
Patient info: {_patient_json(patient_info)}

Challenge the primary diagnosis, consider rare or atypical presentations,
suggest additional testing and say when specialist consultation is warranted.

Return the critical analysis as plain text."""


AUDIENCE_GUIDELINES = {
    "medical_professional": "Technical language, ICD codes, clinical details",
    "patient": "Simple terms, analogies, reassuring tone",
    "caregiver": "Practical guidance, what to watch for",
    "student": "Educational details, learning points",
}


def build_communication_prompt(content: str, audience: str) -> str:
    guideline = AUDIENCE_GUIDELINES.get(audience, AUDIENCE_GUIDELINES["patient"])
    return f"""Task: adapt communication style.
Rewrite this medical content for a {audience.replace('_', ' ')} reader.
Guideline: {guideline}

Original content: "{content}"

Return only the adapted content as text."""
