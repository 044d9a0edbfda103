# backend/medconsult/services/session_store.py

import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy import select, text
from sqlalchemy.engine import Engine

from medconsult.db.database import Base, create_db_engine, get_db, make_session_factory
from medconsult.db.tables import ConsultationSessionRow, ConversationEntryRow, DiagnosisRow
from medconsult.models import (
    AnalysisResult,
    ConsultationSession,
    ConsultationState,
    ConversationEntry,
    DiagnosisCandidate,
    DiagnosisRecord,
    PatientInfo,
)
from medconsult.models.consultation import utcnow

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """Storage for consultation sessions, keyed by session id.

    Pure storage: no store ever calls back into the orchestrator. Updates are
    last-write-wins; there is no version check.
    """

    @abstractmethod
    def create_session(self, session: ConsultationSession) -> ConsultationSession:
        """Insert, or update the existing record when the id is already known."""

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[ConsultationSession]:
        ...

    @abstractmethod
    def update_session(self, session_id: str, **changes: Any) -> Optional[ConsultationSession]:
        """Apply field changes; returns None when the session does not exist."""

    @abstractmethod
    def add_conversation_entry(self, session_id: str, type: str, message: str) -> ConversationEntry:
        ...

    @abstractmethod
    def get_conversation(self, session_id: str) -> List[ConversationEntry]:
        ...

    @abstractmethod
    def create_diagnosis(self, session_id: str, candidate: DiagnosisCandidate) -> DiagnosisRecord:
        ...

    @abstractmethod
    def get_diagnoses(self, session_id: str) -> List[DiagnosisRecord]:
        ...

    @abstractmethod
    def health(self) -> str:
        ...


class MemorySessionStore(SessionStore):
    def __init__(self):
        self._sessions: Dict[str, ConsultationSession] = {}
        self._conversations: Dict[str, List[ConversationEntry]] = {}
        self._diagnoses: Dict[str, List[DiagnosisRecord]] = {}
        self._entry_ids = itertools.count(1)
        self._diagnosis_ids = itertools.count(1)

    def create_session(self, session: ConsultationSession) -> ConsultationSession:
        existing = self._sessions.get(session.session_id)
        if existing:
            changes = {"mode": session.mode}
            if session.patient_info is not None:
                changes["patient_info"] = session.patient_info
            return self.update_session(session.session_id, **changes)
        self._sessions[session.session_id] = session.model_copy(deep=True)
        return session.model_copy(deep=True)

    def get_session(self, session_id: str) -> Optional[ConsultationSession]:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    def update_session(self, session_id: str, **changes: Any) -> Optional[ConsultationSession]:
        session = self._sessions.get(session_id)
        if not session:
            return None
        updated = session.model_copy(update={**changes, "updated_at": utcnow()}, deep=True)
        self._sessions[session_id] = updated
        return updated.model_copy(deep=True)

    def add_conversation_entry(self, session_id: str, type: str, message: str) -> ConversationEntry:
        entry = ConversationEntry(id=next(self._entry_ids), session_id=session_id, type=type, message=message)
        self._conversations.setdefault(session_id, []).append(entry)
        return entry

    def get_conversation(self, session_id: str) -> List[ConversationEntry]:
        return list(self._conversations.get(session_id, []))

    def create_diagnosis(self, session_id: str, candidate: DiagnosisCandidate) -> DiagnosisRecord:
        record = DiagnosisRecord.from_candidate(next(self._diagnosis_ids), session_id, candidate)
        self._diagnoses.setdefault(session_id, []).append(record)
        return record

    def get_diagnoses(self, session_id: str) -> List[DiagnosisRecord]:
        return list(self._diagnoses.get(session_id, []))

    def health(self) -> str:
        return "in_memory"


def _column_value(value: Any) -> Any:
    if isinstance(value, (PatientInfo, AnalysisResult)):
        return value.model_dump(mode="json")
    if isinstance(value, ConsultationState):
        return value.value
    return value


def _session_from_row(row: ConsultationSessionRow) -> ConsultationSession:
    return ConsultationSession(
        session_id=row.session_id,
        mode=row.mode,
        patient_info=PatientInfo.model_validate(row.patient_info) if row.patient_info else None,
        symptoms=row.symptoms,
        ai_analysis=AnalysisResult.model_validate(row.ai_analysis) if row.ai_analysis else None,
        state=ConsultationState(row.state),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _entry_from_row(row: ConversationEntryRow) -> ConversationEntry:
    return ConversationEntry(
        id=row.id, session_id=row.session_id, type=row.type, message=row.message, timestamp=row.timestamp
    )


def _diagnosis_from_row(row: DiagnosisRow) -> DiagnosisRecord:
    return DiagnosisRecord(
        id=row.id,
        session_id=row.session_id,
        name=row.name,
        description=row.description,
        confidence=row.confidence,
        category=row.category,
        red_flags=row.red_flags or [],
        recommended_tests=row.recommended_tests or [],
        created_at=row.created_at,
    )


class SqlSessionStore(SessionStore):
    """SQLAlchemy-backed store; tables are created on construction."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = make_session_factory(engine)
        Base.metadata.create_all(bind=engine)

    def _find(self, db, session_id: str) -> Optional[ConsultationSessionRow]:
        return db.execute(
            select(ConsultationSessionRow).where(ConsultationSessionRow.session_id == session_id)
        ).scalar_one_or_none()

    def create_session(self, session: ConsultationSession) -> ConsultationSession:
        with get_db(self._session_factory) as db:
            row = self._find(db, session.session_id)
            if row is None:
                row = ConsultationSessionRow(
                    session_id=session.session_id,
                    mode=session.mode,
                    patient_info=_column_value(session.patient_info),
                    symptoms=session.symptoms,
                    ai_analysis=_column_value(session.ai_analysis),
                    state=session.state.value,
                    created_at=session.created_at,
                    updated_at=session.updated_at,
                )
                db.add(row)
            else:
                row.mode = session.mode
                if session.patient_info is not None:
                    row.patient_info = _column_value(session.patient_info)
                row.updated_at = utcnow()
            db.flush()
            return _session_from_row(row)

    def get_session(self, session_id: str) -> Optional[ConsultationSession]:
        with get_db(self._session_factory) as db:
            row = self._find(db, session_id)
            return _session_from_row(row) if row else None

    def update_session(self, session_id: str, **changes: Any) -> Optional[ConsultationSession]:
        with get_db(self._session_factory) as db:
            row = self._find(db, session_id)
            if row is None:
                return None
            for field, value in changes.items():
                setattr(row, field, _column_value(value))
            row.updated_at = utcnow()
            db.flush()
            return _session_from_row(row)

    def add_conversation_entry(self, session_id: str, type: str, message: str) -> ConversationEntry:
        with get_db(self._session_factory) as db:
            row = ConversationEntryRow(session_id=session_id, type=type, message=message, timestamp=utcnow())
            db.add(row)
            db.flush()
            return _entry_from_row(row)

    def get_conversation(self, session_id: str) -> List[ConversationEntry]:
        with get_db(self._session_factory) as db:
            rows = db.execute(
                select(ConversationEntryRow)
                .where(ConversationEntryRow.session_id == session_id)
                .order_by(ConversationEntryRow.timestamp, ConversationEntryRow.id)
            ).scalars()
            return [_entry_from_row(row) for row in rows]

    def create_diagnosis(self, session_id: str, candidate: DiagnosisCandidate) -> DiagnosisRecord:
        with get_db(self._session_factory) as db:
            row = DiagnosisRow(
                session_id=session_id,
                name=candidate.name,
                description=candidate.description,
                confidence=candidate.confidence,
                category=candidate.category,
                red_flags=list(candidate.red_flags),
                recommended_tests=list(candidate.recommended_tests),
                created_at=utcnow(),
            )
            db.add(row)
            db.flush()
            return _diagnosis_from_row(row)

    def get_diagnoses(self, session_id: str) -> List[DiagnosisRecord]:
        with get_db(self._session_factory) as db:
            rows = db.execute(
                select(DiagnosisRow).where(DiagnosisRow.session_id == session_id).order_by(DiagnosisRow.id)
            ).scalars()
            return [_diagnosis_from_row(row) for row in rows]

    def health(self) -> str:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return "connected"
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return "disconnected"


def build_session_store(database_url: str) -> SessionStore:
    if not database_url:
        logger.info("DATABASE_URL not set, using in-memory session store")
        return MemorySessionStore()
    logger.info("Using SQL session store")
    return SqlSessionStore(create_db_engine(database_url))
