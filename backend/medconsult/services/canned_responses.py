# backend/medconsult/services/canned_responses.py
#
# Demo payloads returned by the model gateway when a model has no API key or
# the remote call fails. Chosen by keyword-matching the prompt's task line;
# first match wins, so the more specific keywords come first.

import json
from typing import List, Tuple

FOLLOW_UP_MCQS = [
    {
        "id": "timing",
        "question": "When did you first notice these symptoms?",
        "options": [
            {"id": "recent", "label": "Less than 24 hours ago", "value": "acute"},
            {"id": "few_days", "label": "2-7 days ago", "value": "subacute"},
            {"id": "week_plus", "label": "More than a week ago", "value": "chronic"},
        ],
        "category": "timing",
    },
    {
        "id": "severity",
        "question": "How would you rate the severity of your symptoms?",
        "options": [
            {"id": "mild", "label": "Mild - barely noticeable", "value": "mild"},
            {"id": "moderate", "label": "Moderate - interferes with daily activities", "value": "moderate"},
            {"id": "severe", "label": "Severe - significantly impacts daily life", "value": "severe"},
        ],
        "category": "severity",
    },
    {
        "id": "progression",
        "question": "How have your symptoms changed over time?",
        "options": [
            {"id": "better", "label": "Getting better", "value": "improving"},
            {"id": "same", "label": "Staying the same", "value": "stable"},
            {"id": "worse", "label": "Getting worse", "value": "worsening"},
        ],
        "category": "progression",
    },
    {
        "id": "associated",
        "question": "Do you have any other symptoms along with this?",
        "options": [
            {"id": "fever", "label": "Fever or chills", "value": "fever"},
            {"id": "nausea", "label": "Nausea or vomiting", "value": "nausea"},
            {"id": "fatigue", "label": "Unusual fatigue", "value": "fatigue"},
            {"id": "none", "label": "No other symptoms", "value": "isolated"},
        ],
        "category": "associated",
    },
]

FOLLOW_UP_QUESTIONS = [
    "Can you describe when these symptoms first started?",
    "Have you noticed any specific triggers that make the symptoms worse?",
    "Are you currently taking any medications?",
    "Have you experienced these symptoms before?",
    "How would you rate the severity of your symptoms on a scale of 1-10?",
]

TREATMENT_PATHWAY = {
    "firstLineTherapy": ["Supportive care with rest and fluids", "Over-the-counter symptom relief"],
    "alternativeTreatments": [
        "Prescription medications if symptoms worsen",
        "Specialist consultation if no improvement in 7-10 days",
    ],
    "monitoringRequirements": ["Symptom severity", "Temperature", "Breathing difficulty"],
    "followUpSchedule": "Return if symptoms worsen or persist beyond 10 days",
    "escalationCriteria": ["High fever above 39°C", "Difficulty breathing", "New severe symptoms"],
}

RISK_ASSESSMENT = {
    "immediateRisk": "medium",
    "shortTermRisk": "low",
    "longTermRisk": "low",
    "riskFactors": [
        "Current symptoms suggest a common viral infection",
        "No significant red flag symptoms reported",
    ],
    "mitigationStrategies": [
        "Monitor symptoms closely",
        "Maintain good hydration",
        "Seek care if symptoms worsen",
    ],
}

PATIENT_EDUCATION = {
    "simpleExplanation": (
        "You appear to have a common infection. It is very treatable and usually gets better "
        "on its own with proper care."
    ),
    "lifestyleModifications": [
        "Get plenty of rest",
        "Drink lots of fluids like water, warm tea, or soup",
        "Eat nutritious foods to support your immune system",
    ],
    "warningSignsToWatch": [
        "Difficulty breathing or shortness of breath",
        "High fever that doesn't respond to medication",
        "Symptoms that get much worse instead of better",
    ],
    "whenToSeekHelp": [
        "If you have trouble breathing",
        "If your fever goes above 39°C (102°F) and stays high",
        "If you develop new concerning symptoms",
    ],
    "customizedContent": (
        "Most people with similar symptoms recover within 1-2 weeks with good self-care."
    ),
}

CLINICAL_ALERTS = [
    {
        "type": "info",
        "priority": 3,
        "message": "Monitor for symptom progression",
        "actionRequired": "Check patient status in 24-48 hours",
        "timeframe": "Within 2 days",
    },
    {
        "type": "warning",
        "priority": 6,
        "message": "Watch for respiratory distress",
        "actionRequired": "Advise patient on when to seek immediate care",
        "timeframe": "Ongoing monitoring",
    },
]

DRUG_INTERACTIONS = ["No significant interactions detected"]

DIFFERENTIAL_DIAGNOSIS = {
    "diagnoses": [
        {
            "name": "Upper Respiratory Infection",
            "description": (
                "Common viral infection affecting the nose, throat, and airways. "
                "Usually resolves within 7-10 days with supportive care."
            ),
            "confidence": 75,
            "category": "Infectious Disease",
            "severity": "medium",
            "redFlags": ["Difficulty breathing", "High fever > 39°C"],
            "recommendedTests": ["Complete Blood Count", "Throat Culture"],
        },
        {
            "name": "Allergic Rhinitis",
            "description": (
                "Allergic reaction causing nasal congestion, sneezing, and runny nose. "
                "Often seasonal or triggered by environmental allergens."
            ),
            "confidence": 60,
            "category": "Allergic Reaction",
            "severity": "low",
            "redFlags": ["Severe breathing difficulty"],
            "recommendedTests": ["Allergy Testing"],
        },
    ],
    "redFlags": ["Difficulty breathing", "High fever", "Severe headache"],
    "recommendedTests": ["Complete Blood Count", "Basic Metabolic Panel"],
    "overallConfidence": 68,
}

DEFAULT_TEXT = (
    "This is a demo response. The application is running in demo mode. "
    "Configure GROQ_API_KEY_REASONER and GROQ_API_KEY_CHAT for full AI functionality."
)

CANNED_RESPONSES: List[Tuple[Tuple[str, ...], object]] = [
    (("multiple choice", "mcq"), FOLLOW_UP_MCQS),
    (("follow-up questions",), FOLLOW_UP_QUESTIONS),
    (("treatment pathway", "treatment"), TREATMENT_PATHWAY),
    (("risk stratification",), RISK_ASSESSMENT),
    (("patient education",), PATIENT_EDUCATION),
    (("clinical alerts",), CLINICAL_ALERTS),
    (("drug interactions",), DRUG_INTERACTIONS),
    (("differential diagnosis", "diagnosis"), DIFFERENTIAL_DIAGNOSIS),
]


def _task_line(prompt: str) -> str:
    """The prompt's 'Task:' line, or the whole prompt when it has none."""
    for line in prompt.splitlines():
        if line.strip().lower().startswith("task:"):
            return line
    return prompt


def canned_response_for(prompt: str) -> str:
    task = _task_line(prompt).lower()
    for keywords, payload in CANNED_RESPONSES:
        if any(keyword in task for keyword in keywords):
            return json.dumps(payload, ensure_ascii=False)
    return DEFAULT_TEXT
