import json

import pytest

from medconsult.services.canned_responses import DEFAULT_TEXT, FOLLOW_UP_QUESTIONS

SYMPTOMS = "Sharp chest pain when breathing deeply since this morning"


def _create(client, session_id="s-1", mode="patient", **extra):
    return client.post("/api/sessions", json={"sessionId": session_id, "mode": mode, **extra})


def _analysis_json(*confidences):
    return json.dumps({
        "diagnoses": [{"name": f"Condition {c}", "confidence": c} for c in confidences],
    })


# ---------- sessions ----------

def test_create_session_is_idempotent_and_camel_cased(client):
    first = _create(client, patientInfo={"name": "Ana", "age": 30, "medicalHistory": "asthma"})
    assert first.status_code == 200
    body = first.json()
    assert body["sessionId"] == "s-1"
    assert body["state"] == "AWAITING_SYMPTOMS"
    assert body["patientInfo"]["medicalHistory"] == "asthma"

    second = _create(client, mode="doctor")
    assert second.status_code == 200
    assert second.json()["mode"] == "doctor"
    assert second.json()["patientInfo"]["name"] == "Ana"


@pytest.mark.parametrize("payload", [
    {"mode": "patient"},
    {"sessionId": "s-1"},
    {"sessionId": "s-1", "mode": "nurse"},
])
def test_create_session_rejects_bad_input(client, payload):
    response = client.post("/api/sessions", json=payload)
    assert response.status_code == 400


def test_unknown_session_is_404(client):
    assert client.get("/api/sessions/missing").status_code == 404
    assert client.get("/api/sessions/missing/conversation").status_code == 404
    assert client.get("/api/sessions/missing/export").status_code == 404
    assert client.patch("/api/sessions/missing", json={"symptoms": "cough"}).status_code == 404


def test_patch_session(client):
    _create(client)
    response = client.patch("/api/sessions/s-1", json={"symptoms": "dizzy when standing up", "mode": "unified"})
    assert response.status_code == 200
    assert response.json()["symptoms"] == "dizzy when standing up"
    assert response.json()["mode"] == "unified"
    assert client.patch("/api/sessions/s-1", json={"mode": "nurse"}).status_code == 400


# ---------- consultation flow ----------

def test_generate_questions_rejects_short_symptoms(client, gateway):
    response = client.post(
        "/api/generate-questions",
        json={"sessionId": "s-1", "mode": "patient", "symptoms": "cough", "questionType": "mcq"},
    )
    assert response.status_code == 400
    assert "at least 10 characters" in response.json()["detail"]
    assert gateway.prompts == []


def test_generate_questions_rejects_unknown_question_type(client, gateway):
    response = client.post(
        "/api/generate-questions",
        json={"sessionId": "s-1", "mode": "patient", "symptoms": SYMPTOMS, "questionType": "essay"},
    )
    assert response.status_code == 400
    assert gateway.prompts == []


def test_generate_mcq_questions(client):
    response = client.post(
        "/api/generate-questions",
        json={"sessionId": "s-1", "mode": "patient", "symptoms": SYMPTOMS, "questionType": "mcq"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["questionType"] == "mcq"
    assert "questions" not in body
    assert body["degraded"] is True
    for mcq in body["followUpMCQs"]:
        assert len(mcq["options"]) >= 2
        assert {"id", "label", "value"} <= set(mcq["options"][0])

    session = client.get("/api/sessions/s-1").json()
    assert session["state"] == "AWAITING_FOLLOWUP_ANSWERS"
    assert session["symptoms"] == SYMPTOMS


def test_generate_descriptive_questions(client):
    response = client.post(
        "/api/generate-questions",
        json={"sessionId": "s-1", "mode": "doctor", "symptoms": SYMPTOMS, "questionType": "descriptive"},
    )
    assert response.status_code == 200
    assert response.json()["questions"] == FOLLOW_UP_QUESTIONS
    assert "followUpMCQs" not in response.json()


def test_analyze_last_write_wins(client, gateway):
    gateway.replies = [_analysis_json(90), _analysis_json(60, 30)]
    payload = {"sessionId": "s-1", "mode": "doctor", "symptoms": SYMPTOMS}

    first = client.post("/api/analyze", json=payload)
    second = client.post("/api/analyze", json={
        **payload, "followUpAnswers": [{"question": "Any fever?", "answer": "No"}],
    })

    assert first.status_code == second.status_code == 200
    assert first.json()["overallConfidence"] == 90
    assert second.json()["overallConfidence"] == 45

    session = client.get("/api/sessions/s-1").json()
    assert session["state"] == "COMPLETE"
    assert session["aiAnalysis"]["overallConfidence"] == 45
    assert "Q: Any fever?\nA: No" in session["symptoms"]


def test_submit_answers_flow(client):
    client.post(
        "/api/generate-questions",
        json={"sessionId": "s-1", "mode": "patient", "symptoms": SYMPTOMS, "questionType": "descriptive"},
    )
    response = client.post(
        "/api/submit-answers",
        json={"sessionId": "s-1", "answers": [{"question": FOLLOW_UP_QUESTIONS[0], "answer": "This morning"}]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Follow-up answers submitted and analysis generated successfully"
    assert body["analysis"]["diagnoses"]

    diagnoses = client.get("/api/sessions/s-1/diagnoses").json()
    assert [d["name"] for d in diagnoses] == [d["name"] for d in body["analysis"]["diagnoses"]]

    messages = [e["message"] for e in client.get("/api/sessions/s-1/conversation").json()]
    assert messages[0] == SYMPTOMS
    assert f"Answer to {FOLLOW_UP_QUESTIONS[0]}: This morning" in messages


def test_submit_mcq_answers_by_question_id(client):
    client.post(
        "/api/generate-questions",
        json={"sessionId": "s-1", "mode": "patient", "symptoms": SYMPTOMS, "questionType": "mcq"},
    )
    response = client.post(
        "/api/submit-answers",
        json={"sessionId": "s-1", "answers": [{"questionId": "timing", "answer": "acute"}]},
    )

    assert response.status_code == 200
    assert response.json()["analysis"]["diagnoses"]
    messages = [e["message"] for e in client.get("/api/sessions/s-1/conversation").json()]
    assert "Answer to Question timing: acute" in messages
    assert "Q: Question timing\nA: acute" in client.get("/api/sessions/s-1").json()["symptoms"]


def test_submit_answers_errors(client):
    assert client.post("/api/submit-answers", json={"answers": []}).status_code == 400
    assert client.post("/api/submit-answers", json={"sessionId": "missing", "answers": []}).status_code == 404
    _create(client)
    assert client.post("/api/submit-answers", json={"sessionId": "s-1"}).status_code == 400
    assert client.post("/api/skip-follow-up", json={"sessionId": "s-1"}).status_code == 400


def test_skip_follow_up(client):
    client.post(
        "/api/generate-questions",
        json={"sessionId": "s-1", "mode": "patient", "symptoms": SYMPTOMS, "questionType": "mcq"},
    )
    response = client.post("/api/skip-follow-up", json={"sessionId": "s-1"})
    assert response.status_code == 200
    assert response.json()["diagnoses"]
    assert client.get("/api/sessions/s-1").json()["state"] == "COMPLETE"


def test_export_sets_attachment_header(client):
    client.post("/api/analyze", json={"sessionId": "s-1", "mode": "patient", "symptoms": SYMPTOMS})

    response = client.get("/api/sessions/s-1/export")

    assert response.status_code == 200
    assert response.headers["content-disposition"] == 'attachment; filename="consultation-s-1.json"'
    body = response.json()
    assert body["session"]["sessionId"] == "s-1"
    assert body["diagnoses"]
    assert body["conversation"][-1]["type"] == "system"


def test_clear_returns_fresh_session(client):
    client.post("/api/analyze", json={"sessionId": "s-1", "mode": "doctor", "symptoms": SYMPTOMS})

    response = client.post("/api/sessions/s-1/clear")

    assert response.status_code == 200
    fresh = response.json()
    assert fresh["sessionId"] != "s-1"
    assert fresh["mode"] == "doctor"
    assert fresh["state"] == "AWAITING_SYMPTOMS"
    old = client.get("/api/sessions/s-1").json()
    assert old["symptoms"] is None
    assert old["aiAnalysis"] is None


def test_enhanced_analysis_for_doctor(client):
    response = client.post(
        "/api/enhanced-analysis",
        json={"sessionId": "s-1", "mode": "doctor", "symptoms": SYMPTOMS, "patientInfo": {"age": 64}},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["analysis"]["diagnoses"]
    assert body["followUpMCQs"]
    assert body["treatmentPathway"]["firstLineTherapy"]
    assert body["riskAssessment"]["immediateRisk"] in ("low", "medium", "high", "critical")
    assert body["clinicalAlerts"]
    assert "patientEducation" not in body


def test_enhanced_analysis_validates_like_analyze(client, gateway):
    response = client.post("/api/enhanced-analysis", json={"sessionId": "s-1", "mode": "doctor", "symptoms": "ow"})
    assert response.status_code == 400
    assert gateway.prompts == []


# ---------- single enhanced features ----------

@pytest.mark.parametrize("path, payload", [
    ("/api/generate-mcq", {}),
    ("/api/treatment-pathway", {}),
    ("/api/risk-assessment", {"diagnosis": "Pneumonia"}),
    ("/api/patient-education", {"language": "english"}),
    ("/api/clinical-alerts", {"symptoms": SYMPTOMS}),
    ("/api/drug-interactions", {"medications": ["warfarin"]}),
    ("/api/second-opinion", {"diagnosis": "Pneumonia"}),
    ("/api/adapt-communication", {"audience": "patient"}),
])
def test_features_require_their_inputs(client, path, payload):
    assert client.post(path, json=payload).status_code == 400


def test_generate_mcq(client):
    response = client.post("/api/generate-mcq", json={"diagnosis": "Migraine", "mode": "doctor"})
    assert response.status_code == 200
    questions = response.json()["questions"]
    assert questions
    assert all(len(q["options"]) >= 2 for q in questions)


def test_single_features(client):
    pathway = client.post("/api/treatment-pathway", json={"diagnosis": "Pneumonia"})
    assert pathway.status_code == 200
    assert pathway.json()["firstLineTherapy"]

    risk = client.post("/api/risk-assessment", json={"diagnosis": "Pneumonia", "symptoms": SYMPTOMS})
    assert risk.json()["immediateRisk"] in ("low", "medium", "high", "critical")

    education = client.post("/api/patient-education", json={"diagnosis": "Pneumonia"})
    assert education.json()["simpleExplanation"]

    alerts = client.post("/api/clinical-alerts", json={"diagnosis": "Pneumonia", "symptoms": SYMPTOMS}).json()
    assert [a["priority"] for a in alerts] == sorted(a["priority"] for a in alerts)


def test_drug_interactions(client):
    response = client.post(
        "/api/drug-interactions",
        json={"diagnosis": "Atrial fibrillation", "medications": ["warfarin", "aspirin"], "allergies": []},
    )
    assert response.status_code == 200
    interactions = response.json()["interactions"]
    assert interactions
    assert all(isinstance(item, str) and item for item in interactions)


def test_second_opinion_and_communication(client):
    opinion = client.post("/api/second-opinion", json={"diagnosis": "Pneumonia", "symptoms": SYMPTOMS})
    assert opinion.status_code == 200
    assert opinion.json()["opinion"]

    content = "Community-acquired pneumonia, start empirical amoxicillin."
    adapted = client.post("/api/adapt-communication", json={"content": content, "audience": "caregiver"})
    assert adapted.status_code == 200
    assert adapted.json() == {"content": content, "audience": "caregiver"}

    invalid = client.post("/api/adapt-communication", json={"content": content, "audience": "lawyer"})
    assert invalid.status_code == 400


# ---------- health ----------

def test_health_in_demo_mode(client, settings):
    body = client.get("/api/health").json()
    assert body["status"] == "healthy"
    assert body["version"] == settings.VERSION
    assert body["models"] == {"reasoner": "demo_mode", "chat": "demo_mode"}
    assert body["database"] == "in_memory"


def test_ai_probe_returns_canned_text(client):
    body = client.get("/api/test-ai").json()
    assert body["status"] == "success"
    assert body["response"] == DEFAULT_TEXT
    assert body["degraded"] is True
