from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import Mapped, mapped_column

from carecall.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PatientProfile(Base):
    """Structured demographics and mental-health history for one patient."""

    __tablename__ = "user_information"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(
        String(64), nullable=False, doc="Subject identifier issued by the identity provider."
    )
    information: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)

    age: Mapped[str | None] = mapped_column(String(16), nullable=True)
    gender: Mapped[str | None] = mapped_column(String(64), nullable=True)
    occupation: Mapped[str | None] = mapped_column(String(120), nullable=True)
    relationship_status: Mapped[str | None] = mapped_column(String(64), nullable=True)
    living_situation: Mapped[str | None] = mapped_column(Text, nullable=True)

    mental_health_diagnosis: Mapped[str | None] = mapped_column(Text, nullable=True)
    therapy_history: Mapped[str | None] = mapped_column(Text, nullable=True)
    psychiatric_medication: Mapped[str | None] = mapped_column(Text, nullable=True)
    mental_health_hospitalization: Mapped[str | None] = mapped_column(Text, nullable=True)
    past_self_harm_thoughts: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_self_harm_thoughts: Mapped[str | None] = mapped_column(Text, nullable=True)

    additional_info: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_user_information_user_id"),
        Index("ix_user_information_phone_number", "phone_number"),
    )


class CallReport(Base):
    """Mood assessment derived from one completed phone check-in."""

    __tablename__ = "phone_call_reports"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    conversation_id: Mapped[str | None] = mapped_column(
        String(128), nullable=True, doc="Call platform conversation id of the source event."
    )
    mood: Mapped[int] = mapped_column(Integer, nullable=False)
    mood_description: Mapped[str] = mapped_column(Text, nullable=False)
    emotions: Mapped[list[str]] = mapped_column(MutableList.as_mutable(JSON), default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        CheckConstraint("mood >= 1 AND mood <= 5", name="ck_phone_call_reports_mood"),
        UniqueConstraint("conversation_id", name="uq_phone_call_reports_conversation"),
        Index("ix_phone_call_reports_user_created", "user_id", "created_at"),
    )
