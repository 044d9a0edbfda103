# backend/medconsult/services/consultation_orchestrator.py

import asyncio
import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from medconsult.models import (
    MODES,
    AnalysisResult,
    ConsultationSession,
    ConsultationState,
    ConversationEntry,
    DiagnosisRecord,
    EnhancedAnalysis,
    FollowUpAnswer,
    FollowUpBundle,
    PatientInfo,
    SessionExport,
)
from . import prompts
from .enhanced_features import EnhancedFeatureService
from .model_gateway import ModelGateway
from .response_interpreter import interpret_analysis, interpret_mcqs, interpret_questions
from .session_store import SessionStore
from .symptom_patterns import demo_follow_up_mcqs

logger = logging.getLogger(__name__)

QUESTION_TYPES = ("mcq", "descriptive")

QUESTIONS_GENERATED_MESSAGE = "Generated follow-up questions to gather more details"
ANALYSIS_COMPLETE_MESSAGE = "Provided comprehensive differential diagnoses and recommendations"

S = ConsultationState
ALL_STATES = frozenset({
    S.AWAITING_SYMPTOMS, S.AWAITING_QUESTION_TYPE, S.AWAITING_FOLLOWUP_ANSWERS, S.ANALYZING, S.COMPLETE,
})

# event -> (states it is allowed from, resulting state)
TRANSITIONS = {
    "submit_symptoms": (
        frozenset({S.AWAITING_SYMPTOMS, S.AWAITING_QUESTION_TYPE, S.AWAITING_FOLLOWUP_ANSWERS, S.COMPLETE}),
        S.AWAITING_QUESTION_TYPE,
    ),
    "select_question_type": (
        frozenset({S.AWAITING_QUESTION_TYPE, S.AWAITING_FOLLOWUP_ANSWERS}),
        S.AWAITING_FOLLOWUP_ANSWERS,
    ),
    "submit_answers": (ALL_STATES, S.ANALYZING),
    "analysis_ready": (frozenset({S.ANALYZING}), S.COMPLETE),
    "clear": (ALL_STATES, S.AWAITING_SYMPTOMS),
}


class ConsultationError(Exception):
    pass


class ConsultationValidationError(ConsultationError):
    pass


class SessionNotFoundError(ConsultationError):
    pass


class InvalidTransitionError(ConsultationError):
    pass


def build_comprehensive_symptoms(symptoms: str, answers: Optional[List[FollowUpAnswer]]) -> str:
    if not answers:
        return symptoms
    pairs = "\n\n".join(f"Q: {a.question}\nA: {a.answer}" for a in answers)
    return f"{symptoms}\n\nAdditional Information:\n{pairs}"


class ConsultationOrchestrator:
    """
    Drives one consultation through symptom intake, follow-up questions and
    final analysis.

    Every request field is validated before the model gateway is called. If a
    step fails or is cancelled after its transition was persisted, the session goes back to
    the state it had before the step and the error is re-raised.
    """

    def __init__(self, store: SessionStore, gateway: ModelGateway, min_symptom_length: int = 10):
        self.store = store
        self.gateway = gateway
        self.features = EnhancedFeatureService(gateway)
        self.min_symptom_length = min_symptom_length

    # ---------- validation ----------

    @staticmethod
    def require_text(value: Optional[str], field: str) -> str:
        if value is None or not str(value).strip():
            raise ConsultationValidationError(f"Missing required field: {field}")
        return str(value).strip()

    def validate_mode(self, mode: Optional[str]) -> str:
        mode = self.require_text(mode, "mode")
        if mode not in MODES:
            raise ConsultationValidationError(f"Invalid mode '{mode}', expected one of: {', '.join(MODES)}")
        return mode

    def validate_symptoms(self, symptoms: Optional[str]) -> str:
        symptoms = self.require_text(symptoms, "symptoms")
        if len(symptoms) < self.min_symptom_length:
            raise ConsultationValidationError(
                f"Symptoms must be at least {self.min_symptom_length} characters long"
            )
        return symptoms

    @staticmethod
    def validate_question_type(question_type: Optional[str]) -> str:
        if question_type is None:
            return "descriptive"
        if question_type not in QUESTION_TYPES:
            raise ConsultationValidationError(
                f"Invalid questionType '{question_type}', expected 'mcq' or 'descriptive'"
            )
        return question_type

    # ---------- state handling ----------

    def _require_session(self, session_id: str) -> ConsultationSession:
        session = self.store.get_session(session_id)
        if not session:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return session

    def _check_transition(self, session: ConsultationSession, event: str) -> ConsultationState:
        allowed, target = TRANSITIONS[event]
        if session.state not in allowed:
            raise InvalidTransitionError(
                f"Cannot {event.replace('_', ' ')} while session {session.session_id} is {session.state.value}"
            )
        return target

    def _restore(self, session_id: str, prior: ConsultationState, event: str) -> None:
        logger.error(f"{event} failed for session {session_id}, returning to {prior.value}")
        self.store.update_session(session_id, state=prior)

    # ---------- sessions ----------

    def open_session(
        self, session_id: Optional[str], mode: Optional[str], patient_info: Optional[PatientInfo] = None
    ) -> ConsultationSession:
        session_id = self.require_text(session_id, "sessionId")
        mode = self.validate_mode(mode)
        return self.store.create_session(
            ConsultationSession(session_id=session_id, mode=mode, patient_info=patient_info)
        )

    def get_session(self, session_id: str) -> ConsultationSession:
        return self._require_session(session_id)

    def patch_session(self, session_id: str, changes: Dict[str, Any]) -> ConsultationSession:
        self._require_session(session_id)
        if "mode" in changes:
            changes["mode"] = self.validate_mode(changes["mode"])
        updated = self.store.update_session(session_id, **changes)
        if not updated:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return updated

    def clear_session(self, session_id: str) -> ConsultationSession:
        session = self._require_session(session_id)
        target = self._check_transition(session, "clear")
        self.store.update_session(session_id, symptoms=None, ai_analysis=None, state=target)
        fresh = ConsultationSession(
            session_id=str(uuid4()), mode=session.mode, patient_info=session.patient_info, state=target
        )
        logger.info(f"Cleared session {session_id}, continuing as {fresh.session_id}")
        return self.store.create_session(fresh)

    def conversation(self, session_id: str) -> List[ConversationEntry]:
        self._require_session(session_id)
        return self.store.get_conversation(session_id)

    def diagnoses(self, session_id: str) -> List[DiagnosisRecord]:
        self._require_session(session_id)
        return self.store.get_diagnoses(session_id)

    def export(self, session_id: str) -> SessionExport:
        session = self._require_session(session_id)
        return SessionExport(
            session=session,
            diagnoses=self.store.get_diagnoses(session_id),
            conversation=self.store.get_conversation(session_id),
        )

    # ---------- follow-up questions ----------

    def submit_symptoms(
        self,
        session_id: Optional[str],
        mode: Optional[str],
        symptoms: Optional[str],
        patient_info: Optional[PatientInfo] = None,
    ) -> ConsultationSession:
        symptoms = self.validate_symptoms(symptoms)
        session = self.open_session(session_id, mode, patient_info)
        target = self._check_transition(session, "submit_symptoms")
        self.store.add_conversation_entry(session.session_id, "user", symptoms)
        return self.store.update_session(session.session_id, symptoms=symptoms, state=target)

    async def select_question_type(self, session_id: str, question_type: Optional[str]) -> FollowUpBundle:
        question_type = self.validate_question_type(question_type)
        session = self._require_session(session_id)
        if not session.symptoms:
            raise ConsultationValidationError("No symptoms found for this session")
        target = self._check_transition(session, "select_question_type")

        try:
            bundle = await self._follow_up_bundle(
                session.symptoms, session.mode, session.patient_info, question_type
            )
        except BaseException:  # includes cancellation
            self._restore(session_id, session.state, "select_question_type")
            raise

        self.store.update_session(session_id, state=target)
        self.store.add_conversation_entry(session_id, "system", QUESTIONS_GENERATED_MESSAGE)
        return bundle

    async def generate_questions(
        self,
        session_id: Optional[str],
        mode: Optional[str],
        symptoms: Optional[str],
        question_type: Optional[str] = None,
        patient_info: Optional[PatientInfo] = None,
    ) -> FollowUpBundle:
        # everything is checked up front so a bad request never reaches the model
        self.require_text(session_id, "sessionId")
        self.validate_mode(mode)
        self.validate_symptoms(symptoms)
        self.validate_question_type(question_type)

        session = self.submit_symptoms(session_id, mode, symptoms, patient_info)
        return await self.select_question_type(session.session_id, question_type)

    async def _follow_up_bundle(
        self, symptoms: str, mode: str, patient_info: Optional[PatientInfo], question_type: str
    ) -> FollowUpBundle:
        if question_type == "mcq":
            try:
                return await self._mcq_bundle(symptoms, mode, patient_info)
            except Exception:
                logger.exception("MCQ generation failed, falling back to descriptive questions")

        reply = await self.gateway.generate(
            prompts.build_follow_up_questions_prompt(symptoms, mode, patient_info), use_reasoner=False
        )
        interpretation = interpret_questions(reply.text, symptoms, mode)
        return FollowUpBundle(
            question_type="descriptive",
            questions=interpretation.value,
            degraded=reply.degraded or interpretation.degraded,
        )

    async def _mcq_bundle(self, symptoms: str, mode: str, patient_info: Optional[PatientInfo]) -> FollowUpBundle:
        reply = await self.gateway.generate(
            prompts.build_follow_up_mcq_prompt(symptoms, mode, patient_info), use_reasoner=False
        )
        interpretation = interpret_mcqs(reply.text, symptoms)
        return FollowUpBundle(
            question_type="mcq",
            follow_up_mcqs=interpretation.value,
            degraded=reply.degraded or interpretation.degraded,
        )

    # ---------- analysis ----------

    async def _analysis(
        self, symptoms: str, mode: str, patient_info: Optional[PatientInfo]
    ) -> AnalysisResult:
        reply = await self.gateway.generate(prompts.build_analysis_prompt(symptoms, mode, patient_info))
        interpretation = interpret_analysis(reply.text, symptoms, mode)
        degraded = reply.degraded or interpretation.degraded
        if degraded:
            logger.info(f"Analysis degraded (strategy={interpretation.strategy}, model={reply.model})")
        return interpretation.value.model_copy(update={"degraded": degraded})

    async def _run_analysis(
        self, session: ConsultationSession, comprehensive: str, patient_info: Optional[PatientInfo]
    ) -> AnalysisResult:
        session_id = session.session_id
        analyzing = self._check_transition(session, "submit_answers")
        self.store.update_session(session_id, state=analyzing)

        try:
            analysis = await self._analysis(comprehensive, session.mode, patient_info)
        except BaseException:  # includes cancellation
            self._restore(session_id, session.state, "submit_answers")
            raise

        complete = TRANSITIONS["analysis_ready"][1]
        self.store.update_session(session_id, symptoms=comprehensive, ai_analysis=analysis, state=complete)
        self.store.add_conversation_entry(session_id, "system", ANALYSIS_COMPLETE_MESSAGE)
        for candidate in analysis.diagnoses:
            self.store.create_diagnosis(session_id, candidate)
        return analysis

    async def analyze(
        self,
        session_id: Optional[str],
        mode: Optional[str],
        symptoms: Optional[str],
        follow_up_answers: Optional[List[FollowUpAnswer]] = None,
        patient_info: Optional[PatientInfo] = None,
    ) -> AnalysisResult:
        self.require_text(session_id, "sessionId")
        self.validate_mode(mode)
        symptoms = self.validate_symptoms(symptoms)

        session = self.open_session(session_id, mode, patient_info)
        if follow_up_answers:
            responses = "; ".join(f"{a.question}: {a.answer}" for a in follow_up_answers)
            self.store.add_conversation_entry(session.session_id, "user", f"Follow-up responses: {responses}")

        comprehensive = build_comprehensive_symptoms(symptoms, follow_up_answers)
        return await self._run_analysis(session, comprehensive, patient_info or session.patient_info)

    async def submit_answers(
        self, session_id: Optional[str], answers: Optional[List[FollowUpAnswer]]
    ) -> AnalysisResult:
        session_id = self.require_text(session_id, "sessionId")
        if answers is None:
            raise ConsultationValidationError("Missing required field: answers")
        session = self._require_session(session_id)
        if not session.symptoms:
            raise ConsultationValidationError("No symptoms found for this session")

        for answer in answers:
            self.store.add_conversation_entry(
                session_id, "user", f"Answer to {answer.question}: {answer.answer}"
            )
        comprehensive = build_comprehensive_symptoms(session.symptoms, answers)
        return await self._run_analysis(session, comprehensive, session.patient_info)

    async def skip_follow_up(self, session_id: Optional[str]) -> AnalysisResult:
        return await self.submit_answers(session_id, [])

    async def enhanced_analysis(
        self,
        session_id: Optional[str],
        mode: Optional[str],
        symptoms: Optional[str],
        follow_up_answers: Optional[List[FollowUpAnswer]] = None,
        patient_info: Optional[PatientInfo] = None,
    ) -> EnhancedAnalysis:
        analysis = await self.analyze(session_id, mode, symptoms, follow_up_answers, patient_info)
        comprehensive = build_comprehensive_symptoms(symptoms.strip(), follow_up_answers)
        primary = analysis.diagnoses[0].name

        result = EnhancedAnalysis(
            analysis=analysis,
            follow_up_mcqs=analysis.follow_up_mcqs or demo_follow_up_mcqs(comprehensive),
        )

        features = {}
        if mode == "patient":
            result.mcq_questions = self.features.education_mcqs(
                comprehensive, mode, primary, patient_info, analysis
            )
            features["patient_education"] = self.features.patient_education(
                primary,
                (patient_info.education_level if patient_info else None) or "general",
                (patient_info.language if patient_info else None) or "english",
            )
        elif mode == "doctor":
            features["treatment_pathway"] = self.features.treatment_pathway(primary, patient_info)
            features["risk_assessment"] = self.features.risk_assessment(primary, patient_info)
            features["clinical_alerts"] = self.features.clinical_alerts(primary, comprehensive, patient_info)

        outcomes = await asyncio.gather(*features.values(), return_exceptions=True)
        for name, outcome in zip(features, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Enhanced feature {name} failed, omitting it: {outcome}")
                continue
            setattr(result, name, outcome)
        return result
