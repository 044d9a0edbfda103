# backend/medconsult/services/symptom_patterns.py
#
# Deterministic fallback content keyed by symptom keywords. Used by the
# response interpreter when model output can't be parsed into the wanted shape.

from typing import Dict, List

from medconsult.models import AnalysisResult, DiagnosisCandidate, FollowUpMCQ

SYMPTOM_PATTERNS: List[Dict] = [
    {
        "keywords": ["fever", "joint pain", "muscle ache"],
        "diagnoses": [
            {"name": "Dengue Fever", "confidence": 72, "category": "Viral Infection"},
            {"name": "Chikungunya", "confidence": 20, "category": "Viral Infection"},
            {"name": "Viral Fever", "confidence": 8, "category": "Viral Infection"},
        ],
        "questions": [
            "How long has the fever lasted?",
            "Any recent travel to tropical areas?",
            "Any skin rashes or bleeding?",
            "Has there been sore throat or cough?",
        ],
        "red_flags": ["Check for bleeding gums", "Monitor platelet count"],
        "tests": ["CBC with platelet count", "Dengue NS1 antigen", "Liver function tests"],
    },
    {
        "keywords": ["headache", "migraine", "head pain"],
        "diagnoses": [
            {"name": "Tension Headache", "confidence": 65, "category": "Neurological"},
            {"name": "Migraine", "confidence": 25, "category": "Neurological"},
            {"name": "Cluster Headache", "confidence": 10, "category": "Neurological"},
        ],
        "questions": [
            "Where exactly is the pain located?",
            "Is the pain throbbing or constant?",
            "Any visual changes or nausea?",
            "What triggers seem to make it worse?",
        ],
        "red_flags": ["Sudden severe headache", "Neck stiffness", "Vision changes"],
        "tests": ["Neurological examination", "Blood pressure check", "CT scan if severe"],
    },
    {
        "keywords": ["chest pain", "breathing", "shortness of breath"],
        "diagnoses": [
            {"name": "Anxiety", "confidence": 45, "category": "Psychological"},
            {"name": "Acid Reflux", "confidence": 30, "category": "Gastrointestinal"},
            {"name": "Costochondritis", "confidence": 25, "category": "Musculoskeletal"},
        ],
        "questions": [
            "Is the pain sharp or burning?",
            "Does it worsen with deep breathing?",
            "Any recent stress or anxiety?",
            "Does it relate to eating or lying down?",
        ],
        "red_flags": ["Severe crushing chest pain", "Pain radiating to arm/jaw", "Severe shortness of breath"],
        "tests": ["ECG", "Chest X-ray", "Stress test if indicated"],
    },
]

DIAGNOSIS_DESCRIPTIONS = {
    "Dengue Fever": {
        "doctor": "Mosquito-borne viral infection. Monitor for hemorrhagic complications and plasma leakage.",
        "patient": "A viral infection spread by mosquitoes. Usually gets better with rest and fluids, but needs monitoring.",
    },
    "Chikungunya": {
        "doctor": "Alphavirus infection with characteristic joint involvement. Chronic arthralgia may persist.",
        "patient": "A viral infection that causes fever and joint pain. Joint pain may last several weeks.",
    },
    "Tension Headache": {
        "doctor": "Primary headache disorder. Often stress-related with bilateral distribution.",
        "patient": "Common type of headache often caused by stress, tension, or muscle strain in the head and neck.",
    },
    "Migraine": {
        "doctor": "Neurological disorder with recurrent episodes. Consider prophylaxis if frequent.",
        "patient": "A type of headache that can be very painful and may come with nausea or sensitivity to light.",
    },
}

DOCTOR_EXTRA_QUESTIONS = ["What are the vital signs?", "Any relevant medical history?", "Current medications?"]
PATIENT_EXTRA_QUESTIONS = [
    "How would you rate the pain from 1-10?",
    "Does anything make it better or worse?",
    "Are you taking any medications?",
]


def mean_confidence(confidences: List[int]) -> int:
    """Arithmetic mean rounded half up; 0 for an empty list."""
    if not confidences:
        return 0
    return int(sum(confidences) / len(confidences) + 0.5)


def describe_diagnosis(name: str, mode: str) -> str:
    target = "doctor" if mode == "doctor" else "patient"
    known = DIAGNOSIS_DESCRIPTIONS.get(name)
    if known:
        return known[target]
    if target == "doctor":
        return "Clinical condition requiring evaluation."
    return "Medical condition that should be evaluated by a healthcare provider."


def match_pattern(symptoms: str) -> Dict:
    """Pattern with the most keyword hits; the first pattern when nothing matches."""
    symptoms_lower = symptoms.lower()
    best, best_hits = SYMPTOM_PATTERNS[0], 0
    for pattern in SYMPTOM_PATTERNS:
        hits = sum(1 for keyword in pattern["keywords"] if keyword in symptoms_lower)
        if hits > best_hits:
            best, best_hits = pattern, hits
    return best


def demo_analysis(symptoms: str, mode: str) -> AnalysisResult:
    pattern = match_pattern(symptoms)
    if mode == "doctor":
        red_flags = list(pattern["red_flags"])
        extra_questions = DOCTOR_EXTRA_QUESTIONS
    else:
        red_flags = [f"⚠️ {flag}" for flag in pattern["red_flags"]]
        extra_questions = PATIENT_EXTRA_QUESTIONS

    diagnoses = [
        DiagnosisCandidate(
            name=d["name"],
            description=describe_diagnosis(d["name"], mode),
            confidence=d["confidence"],
            category=d["category"],
            red_flags=red_flags,
            recommended_tests=list(pattern["tests"]),
        )
        for d in pattern["diagnoses"]
    ]
    return AnalysisResult(
        diagnoses=diagnoses,
        follow_up_questions=(pattern["questions"] + extra_questions)[:5],
        follow_up_mcqs=demo_follow_up_mcqs(symptoms),
        red_flags=list(pattern["red_flags"]),
        recommended_tests=list(pattern["tests"]),
        overall_confidence=mean_confidence([d.confidence for d in diagnoses]),
    )


def placeholder_analysis() -> AnalysisResult:
    return AnalysisResult(
        diagnoses=[
            DiagnosisCandidate(
                name="Analysis Available",
                description="AI analysis completed. Please review the detailed response.",
                confidence=75,
                category="General",
            )
        ],
        overall_confidence=75,
    )


GENERIC_QUESTIONS = [
    "Can you describe the onset and duration of your symptoms?",
    "Have you experienced any associated symptoms?",
    "Are there any specific triggers or patterns you've noticed?",
]

_QUESTIONS_BY_TOPIC = {
    "fever": {
        "doctor": [
            "What is the documented temperature range and pattern?",
            "Any associated symptoms like rigors, sweats, or rash?",
            "Recent travel history or exposure to infectious diseases?",
            "Any localizing symptoms suggesting source of infection?",
        ],
        "patient": [
            "How high has your temperature been?",
            "Are you experiencing chills or sweating?",
            "Have you traveled anywhere recently?",
            "Do you have any pain or discomfort anywhere specific?",
        ],
    },
    "headache": {
        "doctor": [
            "What is the location, quality, and severity of the headache?",
            "Any associated neurological symptoms or aura?",
            "Is there photophobia, phonophobia, or nausea?",
            "Any recent head trauma or medication changes?",
        ],
        "patient": [
            "Where in your head do you feel the pain?",
            "Do you feel sick to your stomach or sensitive to light?",
            "Have you hit your head recently?",
            "Are you taking any new medications?",
        ],
    },
    "pain": {
        "doctor": [
            "Can you describe the character, location, and radiation of pain?",
            "What are the aggravating and relieving factors?",
            "Is there any temporal pattern to the pain?",
            "Any associated neurological symptoms?",
        ],
        "patient": [
            "Where exactly do you feel the pain?",
            "What does the pain feel like (sharp, dull, burning)?",
            "Does anything make the pain better or worse?",
            "Have you noticed any numbness or tingling?",
        ],
    },
    "general": {
        "doctor": [
            "When did the symptoms first appear and how have they progressed?",
            "What is the severity of symptoms on a scale of 1-10?",
            "Are there any associated symptoms or warning signs?",
            "What is the patient's relevant medical and family history?",
            "What medications is the patient currently taking?",
        ],
        "patient": [
            "When did you first notice these symptoms?",
            "How would you rate the severity from 1-10?",
            "Have you noticed any other symptoms along with this?",
            "Do you have any ongoing health conditions?",
            "What medications are you currently taking?",
        ],
    },
}


def demo_follow_up_questions(symptoms: str, mode: str) -> List[str]:
    symptoms_lower = symptoms.lower()
    if "fever" in symptoms_lower or "temperature" in symptoms_lower:
        topic = "fever"
    elif "headache" in symptoms_lower or "head" in symptoms_lower:
        topic = "headache"
    elif "pain" in symptoms_lower or "ache" in symptoms_lower:
        topic = "pain"
    else:
        topic = "general"
    return list(_QUESTIONS_BY_TOPIC[topic]["doctor" if mode == "doctor" else "patient"])


_BASE_FOLLOW_UP_MCQS = [
    ("timing", "When did you first notice these symptoms?", [
        ("recent", "Less than 24 hours ago", "acute"),
        ("few_days", "2-7 days ago", "subacute"),
        ("week_plus", "More than a week ago", "chronic"),
    ]),
    ("severity", "How would you rate the severity of your symptoms?", [
        ("mild", "Mild - barely noticeable", "mild"),
        ("moderate", "Moderate - interferes with daily activities", "moderate"),
        ("severe", "Severe - significantly impacts daily life", "severe"),
    ]),
    ("progression", "How have your symptoms changed over time?", [
        ("better", "Getting better", "improving"),
        ("same", "Staying the same", "stable"),
        ("worse", "Getting worse", "worsening"),
    ]),
    ("triggers", "What makes your symptoms better or worse?", [
        ("rest", "Rest makes it better", "rest_helps"),
        ("activity", "Activity makes it worse", "activity_worsens"),
        ("position", "Certain positions help/worsen", "position_dependent"),
        ("nothing", "Nothing seems to affect it", "constant"),
    ]),
    ("associated", "Do you have any other symptoms along with this?", [
        ("fever", "Fever or chills", "fever"),
        ("nausea", "Nausea or vomiting", "nausea"),
        ("fatigue", "Unusual fatigue", "fatigue"),
        ("none", "No other symptoms", "isolated"),
    ]),
    ("medication", "Have you taken any medication for this?", [
        ("otc_helped", "Over-the-counter medicine helped", "otc_effective"),
        ("otc_no_help", "Over-the-counter medicine didn't help", "otc_ineffective"),
        ("prescription", "I have prescription medication", "prescription"),
        ("no_medication", "Haven't taken anything yet", "none"),
    ]),
]

_PAIN_QUALITY_MCQ = ("pain_quality", "How would you describe the pain?", [
    ("sharp", "Sharp or stabbing", "sharp"),
    ("dull", "Dull or aching", "dull"),
    ("burning", "Burning sensation", "burning"),
    ("throbbing", "Throbbing or pulsing", "throbbing"),
])

MAX_DEMO_MCQS = 6


def _mcq(entry) -> FollowUpMCQ:
    mcq_id, question, options = entry
    return FollowUpMCQ(
        id=mcq_id,
        question=question,
        options=[{"id": o_id, "label": label, "value": value} for o_id, label, value in options],
        category=mcq_id,
    )


def demo_follow_up_mcqs(symptoms: str) -> List[FollowUpMCQ]:
    entries = list(_BASE_FOLLOW_UP_MCQS)
    if "pain" in symptoms.lower():
        # takes the last slot, ahead of the medication question
        entries.insert(MAX_DEMO_MCQS - 1, _PAIN_QUALITY_MCQ)
    return [_mcq(entry) for entry in entries[:MAX_DEMO_MCQS]]
