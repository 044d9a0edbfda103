import json

import pytest

from medconsult.services.canned_responses import (
    DEFAULT_TEXT,
    DIFFERENTIAL_DIAGNOSIS,
    FOLLOW_UP_MCQS,
    canned_response_for,
)
from medconsult.services.prompts import (
    build_analysis_prompt,
    build_follow_up_mcq_prompt,
    build_follow_up_questions_prompt,
    build_treatment_pathway_prompt,
)
from medconsult.services.response_interpreter import (
    MODEL_JSON,
    PLACEHOLDER,
    SYMPTOM_PATTERN,
    TEXT_HEURISTIC,
    clamp_confidence,
    extract_json,
    interpret_analysis,
    interpret_mcqs,
    interpret_questions,
    parse_analysis,
    parse_mcqs,
    parse_questions,
)
from medconsult.services.symptom_patterns import mean_confidence


def test_extract_json_strips_reasoning_and_fences():
    text = '<think>maybe {"not": "this"}</think>\n```json\n{"diagnoses": [{"name": "Flu",}],}\n```'
    assert extract_json(text) == {"diagnoses": [{"name": "Flu"}]}


def test_extract_json_ignores_brackets_inside_strings():
    text = 'Result: {"note": "use } and ] freely", "items": [1, 2]} trailing words'
    assert extract_json(text) == {"note": "use } and ] freely", "items": [1, 2]}


def test_extract_json_returns_none_for_prose():
    assert extract_json("No structured output here.") is None
    assert extract_json(None) is None


@pytest.mark.parametrize("value, expected", [
    (85, 85), ("72%", 72), (150, 100), (-3, 0), (64.6, 65), ("high", 50), (None, 50),
])
def test_clamp_confidence(value, expected):
    assert clamp_confidence(value) == expected


def test_mean_confidence_rounds_half_up():
    assert mean_confidence([75, 60]) == 68
    assert mean_confidence([70, 25]) == 48
    assert mean_confidence([72, 20, 8]) == 33
    assert mean_confidence([]) == 0


# ---------- questions ----------

def test_questions_from_json_array():
    result = interpret_questions('Here you go: ["When did it start?", "Any fever?"]')
    assert result.strategy == MODEL_JSON
    assert result.value == ["When did it start?", "Any fever?"]
    assert not result.degraded


def test_questions_from_json_object():
    assert parse_questions('{"questions": ["Where does it hurt?"]}') == ["Where does it hurt?"]


def test_questions_text_heuristic_strips_numbering_and_caps():
    text = "\n".join(f"{i}. Question number {i}?" for i in range(1, 8)) + "\nNot a question."
    result = interpret_questions(text)
    assert result.strategy == TEXT_HEURISTIC
    assert result.value == [f"Question number {i}?" for i in range(1, 6)]


def test_questions_fall_back_to_symptom_topics():
    result = interpret_questions("no questions at all", symptoms="high fever since yesterday", mode="doctor")
    assert result.strategy == SYMPTOM_PATTERN
    assert result.value[0] == "What is the documented temperature range and pattern?"


def test_questions_placeholder_without_symptoms():
    result = interpret_questions("")
    assert result.strategy == PLACEHOLDER
    assert len(result.value) == 3


# ---------- MCQs ----------

def test_mcqs_from_json_accept_text_or_label_options():
    text = json.dumps([
        {"id": "onset", "question": "When did it start?", "options": [
            {"id": "a", "text": "Today", "value": "acute"},
            {"id": "b", "label": "Last week", "value": "subacute"},
        ]},
        {"question": "Only one option?", "options": ["Yes"]},
        {"question": "Plain options?", "options": ["Yes", "No"]},
    ])
    result = interpret_mcqs(text)
    assert result.strategy == MODEL_JSON
    assert [m.question for m in result.value] == ["When did it start?", "Plain options?"]
    assert result.value[0].options[0].label == "Today"
    assert result.value[1].id == "mcq_3"


def test_mcqs_from_question_blocks():
    text = (
        "Question 1: How severe is the pain?\n1. Mild\n2. Moderate\n3. Severe\n\n"
        "Question 2: Does it radiate?\nA) Yes\nB) No\n"
    )
    result = interpret_mcqs(text)
    assert result.strategy == TEXT_HEURISTIC
    assert [m.question for m in result.value] == ["How severe is the pain?", "Does it radiate?"]
    assert [o.label for o in result.value[0].options] == ["Mild", "Moderate", "Severe"]


def test_mcq_fallback_adds_pain_quality():
    mcqs = parse_mcqs("garbage", symptoms="sharp chest pain when breathing")
    ids = [m.id for m in mcqs]
    assert len(mcqs) == 6
    assert "pain_quality" in ids
    assert all(len(m.options) >= 2 for m in mcqs)


def test_mcq_fallback_without_pain():
    ids = [m.id for m in parse_mcqs(None, symptoms="persistent cough at night")]
    assert ids == ["timing", "severity", "progression", "triggers", "associated", "medication"]


# ---------- analysis ----------

def test_analysis_from_model_json_recomputes_overall_confidence():
    text = json.dumps({
        "diagnoses": [
            {"name": "Migraine", "confidence": "70%", "redFlags": ["Aura"], "severity": "high"},
            {"name": "Tension Headache", "confidence": 25},
            {"description": "missing a name"},
        ],
        "redFlags": ["Sudden onset"],
        "recommendedTests": ["MRI"],
        "overallConfidence": 99,
    })
    result = interpret_analysis(text, "throbbing headache for two days")
    assert result.strategy == MODEL_JSON
    analysis = result.value
    assert [d.name for d in analysis.diagnoses] == ["Migraine", "Tension Headache"]
    assert analysis.overall_confidence == 48
    assert analysis.diagnoses[0].red_flags == ["Aura"]
    assert analysis.recommended_tests == ["MRI"]


def test_analysis_accepts_snake_case_keys():
    text = json.dumps({
        "diagnoses": [{
            "name": "Migraine",
            "confidence": 80,
            "red_flags": ["Worst headache of life"],
            "recommended_tests": ["CT head"],
            "literature_support": "strong",
        }],
        "red_flags": ["Neck stiffness"],
        "recommended_tests": ["Lumbar puncture"],
        "follow_up_questions": ["Any visual aura?"],
    })
    result = interpret_analysis(text, "throbbing headache for two days")
    assert result.strategy == MODEL_JSON
    candidate = result.value.diagnoses[0]
    assert candidate.red_flags == ["Worst headache of life"]
    assert candidate.recommended_tests == ["CT head"]
    assert candidate.literature_support == "strong"
    assert result.value.red_flags == ["Neck stiffness"]
    assert result.value.recommended_tests == ["Lumbar puncture"]
    assert result.value.follow_up_questions == ["Any visual aura?"]


def test_canned_analysis_parses():
    text = canned_response_for(build_analysis_prompt("persistent cough and sore throat", "doctor"))
    analysis = parse_analysis(text)
    assert [d.name for d in analysis.diagnoses] == [
        d["name"] for d in DIFFERENTIAL_DIAGNOSIS["diagnoses"]
    ]
    assert analysis.overall_confidence == 68


@pytest.mark.parametrize("symptoms, expected", [
    ("fever with joint pain and muscle ache", "Dengue Fever"),
    ("throbbing headache behind the eyes", "Tension Headache"),
    ("chest pain and shortness of breath", "Anxiety"),
    ("a rash on my left arm", "Dengue Fever"),
])
def test_analysis_symptom_pattern_fallback(symptoms, expected):
    result = interpret_analysis("I cannot answer in JSON today.", symptoms, "patient")
    assert result.strategy == SYMPTOM_PATTERN
    assert result.value.diagnoses[0].name == expected


def test_symptom_pattern_mode_specific_wording():
    doctor = parse_analysis("", "fever with joint pain", "doctor")
    patient = parse_analysis("", "fever with joint pain", "patient")
    assert doctor.diagnoses[0].description.startswith("Mosquito-borne")
    assert patient.diagnoses[0].description.startswith("A viral infection")
    assert patient.diagnoses[0].red_flags[0].startswith("⚠️")
    assert doctor.overall_confidence == 33


def test_analysis_placeholder_without_symptoms():
    result = interpret_analysis("nothing useful", "")
    assert result.strategy == PLACEHOLDER
    assert result.value.diagnoses[0].name == "Analysis Available"
    assert result.value.overall_confidence == 75


@pytest.mark.parametrize("raw", [
    None,
    "",
    "not json at all",
    "{broken",
    "[1, 2, 3]",
    '{"diagnoses": []}',
    '{"diagnoses": [{"confidence": 90}]}',
    '{"diagnoses": "Flu"}',
    DEFAULT_TEXT,
])
@pytest.mark.parametrize("symptoms", ["", "feeling dizzy after standing up"])
def test_malformed_output_still_yields_valid_analysis(raw, symptoms):
    analysis = parse_analysis(raw, symptoms)
    assert analysis.diagnoses
    assert all(0 <= d.confidence <= 100 for d in analysis.diagnoses)
    assert analysis.overall_confidence == mean_confidence([d.confidence for d in analysis.diagnoses])


# ---------- canned payload selection ----------

def test_prompts_select_matching_canned_payloads():
    assert json.loads(canned_response_for(build_follow_up_mcq_prompt("chest pain", "patient"))) == FOLLOW_UP_MCQS
    questions = json.loads(canned_response_for(build_follow_up_questions_prompt("chest pain", "doctor")))
    assert isinstance(questions, list) and all(q.endswith("?") for q in questions)
    assert "firstLineTherapy" in canned_response_for(build_treatment_pathway_prompt("Influenza"))
    assert "diagnoses" in canned_response_for(build_analysis_prompt("chest pain", "patient"))


def test_symptom_text_does_not_change_canned_payload():
    prompt = build_analysis_prompt("Headache for a week, no treatment helped, tried an mcq quiz online", "patient")
    assert json.loads(canned_response_for(prompt)) == DIFFERENTIAL_DIAGNOSIS
    assert interpret_analysis(canned_response_for(prompt), "headache").strategy == MODEL_JSON


def test_canned_response_keyword_order():
    assert json.loads(canned_response_for("mcq about treatment")) == FOLLOW_UP_MCQS
    assert "immediateRisk" in canned_response_for("Task: risk stratification.")
    assert canned_response_for("Say hello") == DEFAULT_TEXT
