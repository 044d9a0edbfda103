import sqlalchemy as sa

from .database import Base


class ConsultationSessionRow(Base):
    __tablename__ = "consultation_sessions"

    id = sa.Column(sa.Integer, primary_key=True, autoincrement=True)
    session_id = sa.Column(sa.String(255), nullable=False, unique=True, index=True)
    mode = sa.Column(sa.String(32), nullable=False)
    patient_info = sa.Column(sa.JSON, nullable=True)
    symptoms = sa.Column(sa.Text, nullable=True)
    ai_analysis = sa.Column(sa.JSON, nullable=True)
    state = sa.Column(sa.String(64), nullable=False, default="AWAITING_SYMPTOMS")
    created_at = sa.Column(sa.DateTime(timezone=True), nullable=False)
    updated_at = sa.Column(sa.DateTime(timezone=True), nullable=False)


class DiagnosisRow(Base):
    __tablename__ = "diagnoses"

    id = sa.Column(sa.Integer, primary_key=True, autoincrement=True)
    session_id = sa.Column(sa.String(255), nullable=False, index=True)
    name = sa.Column(sa.Text, nullable=False)
    description = sa.Column(sa.Text, nullable=True)
    confidence = sa.Column(sa.Integer, nullable=True)
    category = sa.Column(sa.Text, nullable=True)
    red_flags = sa.Column(sa.JSON, nullable=True)
    recommended_tests = sa.Column(sa.JSON, nullable=True)
    created_at = sa.Column(sa.DateTime(timezone=True), nullable=False)


class ConversationEntryRow(Base):
    __tablename__ = "conversation_entries"

    id = sa.Column(sa.Integer, primary_key=True, autoincrement=True)
    session_id = sa.Column(sa.String(255), nullable=False, index=True)
    type = sa.Column(sa.String(16), nullable=False)
    message = sa.Column(sa.Text, nullable=False)
    timestamp = sa.Column(sa.DateTime(timezone=True), nullable=False)
