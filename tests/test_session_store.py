import pytest

from medconsult.models import (
    AnalysisResult,
    ConsultationSession,
    ConsultationState,
    DiagnosisCandidate,
    PatientInfo,
)
from medconsult.services.session_store import MemorySessionStore, SqlSessionStore, build_session_store


@pytest.fixture(params=["memory", "sqlite"])
def session_store(request, tmp_path):
    if request.param == "memory":
        return MemorySessionStore()
    return build_session_store(f"sqlite:///{tmp_path / 'consultations.db'}")


def _analysis():
    return AnalysisResult(
        diagnoses=[
            DiagnosisCandidate(name="Migraine", confidence=70, red_flags=["Aura"]),
            DiagnosisCandidate(name="Tension Headache", confidence=25),
        ],
        red_flags=["Sudden onset"],
        overall_confidence=48,
    )


def test_create_is_idempotent_by_id(session_store):
    session_store.create_session(
        ConsultationSession(session_id="s-1", mode="patient", patient_info=PatientInfo(name="Ana", age=30))
    )
    updated = session_store.create_session(
        ConsultationSession(session_id="s-1", mode="doctor", patient_info=PatientInfo(name="Ana", age=31))
    )

    assert updated.mode == "doctor"
    assert updated.patient_info.age == 31
    fetched = session_store.get_session("s-1")
    assert fetched.patient_info.age == 31
    assert fetched.state == ConsultationState.AWAITING_SYMPTOMS


def test_upsert_without_patient_info_keeps_existing(session_store):
    session_store.create_session(
        ConsultationSession(session_id="s-1", mode="patient", patient_info=PatientInfo(gender="female"))
    )
    session_store.create_session(ConsultationSession(session_id="s-1", mode="patient"))
    assert session_store.get_session("s-1").patient_info.gender == "female"


def test_missing_session(session_store):
    assert session_store.get_session("nope") is None
    assert session_store.update_session("nope", symptoms="cough") is None


def test_update_round_trips_analysis_and_state(session_store):
    session_store.create_session(ConsultationSession(session_id="s-1", mode="unified"))
    session_store.update_session(
        "s-1", symptoms="headache for two days", ai_analysis=_analysis(), state=ConsultationState.COMPLETE
    )

    session = session_store.get_session("s-1")
    assert session.symptoms == "headache for two days"
    assert session.state == ConsultationState.COMPLETE
    assert session.ai_analysis.model_dump() == _analysis().model_dump()


def test_last_write_wins(session_store):
    session_store.create_session(ConsultationSession(session_id="s-1", mode="patient"))
    session_store.update_session("s-1", symptoms="first description")
    session_store.update_session("s-1", symptoms="second description")
    assert session_store.get_session("s-1").symptoms == "second description"


def test_returned_sessions_are_copies(session_store):
    session_store.create_session(ConsultationSession(session_id="s-1", mode="patient"))
    session = session_store.get_session("s-1")
    session.symptoms = "mutated locally"
    assert session_store.get_session("s-1").symptoms is None


def test_conversation_keeps_append_order(session_store):
    session_store.create_session(ConsultationSession(session_id="s-1", mode="patient"))
    session_store.add_conversation_entry("s-1", "user", "I have a cough")
    session_store.add_conversation_entry("s-1", "system", "Generated follow-up questions")
    session_store.add_conversation_entry("s-2", "user", "other session")

    entries = session_store.get_conversation("s-1")
    assert [(e.type, e.message) for e in entries] == [
        ("user", "I have a cough"),
        ("system", "Generated follow-up questions"),
    ]
    assert entries[0].id < entries[1].id


def test_diagnoses_are_stored_per_session(session_store):
    for candidate in _analysis().diagnoses:
        session_store.create_diagnosis("s-1", candidate)

    records = session_store.get_diagnoses("s-1")
    assert [r.name for r in records] == ["Migraine", "Tension Headache"]
    assert records[0].confidence == 70
    assert records[0].red_flags == ["Aura"]
    assert session_store.get_diagnoses("s-2") == []


def test_health(session_store):
    expected = "in_memory" if isinstance(session_store, MemorySessionStore) else "connected"
    assert session_store.health() == expected


def test_build_session_store(tmp_path):
    assert isinstance(build_session_store(""), MemorySessionStore)
    assert isinstance(build_session_store(f"sqlite:///{tmp_path / 'x.db'}"), SqlSessionStore)
