"""Symptom submissions and their attached files.

Urgency flag and AI risk label are written once, on insert. Nothing in the
member-facing code path updates them afterwards; only ``status`` and
``attachments_incomplete`` change after creation.
"""

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from concierge.db.session import Base
from concierge.utils.encryption import EncryptedText


class DurationCategory(str, Enum):
    LESS_THAN_A_DAY = "Less than a day"
    ONE_TO_THREE_DAYS = "1-3 days"
    FOUR_TO_SEVEN_DAYS = "4-7 days"
    ONE_TO_TWO_WEEKS = "1-2 weeks"
    MORE_THAN_TWO_WEEKS = "More than 2 weeks"


class UrgencyFlag(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class RiskLabel(str, Enum):
    MILD = "Mild"
    MODERATE = "Moderate"
    NEEDS_REVIEW = "Needs Review"


class SubmissionStatus(str, Enum):
    SUBMITTED = "Submitted"
    UNDER_REVIEW = "Under Review"
    REVIEWED = "Reviewed"
    SCHEDULED = "Scheduled"
    ESCALATED = "Escalated"


def _enum_col(enum_cls):
    # Persist the human-readable values ("Under Review"), not member names
    return SAEnum(
        enum_cls,
        values_callable=lambda e: [m.value for m in e],
        native_enum=False,
        length=32,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SymptomSubmission(Base):
    __tablename__ = "symptom_submissions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    profile_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )

    symptoms: Mapped[str] = mapped_column(EncryptedText, nullable=False)
    duration: Mapped[Optional[DurationCategory]] = mapped_column(_enum_col(DurationCategory), nullable=True)
    severity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    onset_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    urgency_flag: Mapped[UrgencyFlag] = mapped_column(_enum_col(UrgencyFlag), nullable=False)
    status: Mapped[SubmissionStatus] = mapped_column(
        _enum_col(SubmissionStatus),
        nullable=False,
        default=SubmissionStatus.SUBMITTED,
    )
    ai_assessment: Mapped[Optional[str]] = mapped_column(EncryptedText, nullable=True)
    ai_risk_level: Mapped[Optional[RiskLabel]] = mapped_column(_enum_col(RiskLabel), nullable=True)
    ai_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    attachments_incomplete: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    # Microsecond precision keeps newest-first ordering stable for quick successive inserts
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )

    owner = relationship("User", back_populates="submissions")
    files: Mapped[List["SubmissionFile"]] = relationship(
        "SubmissionFile",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="SubmissionFile.created_at",
    )
    notes: Mapped[List["ProviderNote"]] = relationship(
        "ProviderNote",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="ProviderNote.created_at",
    )


class SubmissionFile(Base):
    __tablename__ = "submission_files"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    submission_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("symptom_submissions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    file_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str] = mapped_column(String(100), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    submission = relationship("SymptomSubmission", back_populates="files")
