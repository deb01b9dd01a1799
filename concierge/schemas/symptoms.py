# concierge/schemas/symptoms.py
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from concierge.models.symptom_submission import (
    DurationCategory,
    RiskLabel,
    SubmissionStatus,
    UrgencyFlag,
)


# ---------- Intake ----------
class IntakeFields(BaseModel):
    """Fields collected on the Describe step."""

    symptoms: str = Field("", max_length=5000, description="Free-text symptom description.")
    duration: Optional[DurationCategory] = None
    severity: Optional[int] = Field(5, description="Self-reported severity, 1-10.")
    onset_date: Optional[date] = None


class AssessRequest(BaseModel):
    symptoms: str = Field(..., max_length=5000)
    severity: Optional[int] = Field(None, ge=1, le=10)
    duration: Optional[DurationCategory] = None


class AssessmentOut(BaseModel):
    assessment: str
    risk: RiskLabel
    urgency: UrgencyFlag
    confidence: float = Field(..., ge=0.0, le=1.0)
    session_id: str
    timestamp: datetime


# ---------- Submissions ----------
class SubmissionFileOut(BaseModel):
    id: str
    submission_id: str
    file_url: str
    file_name: str
    file_type: str
    created_at: datetime

    class Config:
        from_attributes = True


class SubmissionOut(BaseModel):
    id: str
    profile_id: str
    symptoms: str
    duration: Optional[DurationCategory] = None
    severity: Optional[int] = None
    onset_date: Optional[date] = None
    status: SubmissionStatus
    urgency_flag: UrgencyFlag
    ai_assessment: Optional[str] = None
    ai_risk_level: Optional[RiskLabel] = None
    ai_confidence: Optional[float] = None
    session_id: Optional[str] = None
    attachments_incomplete: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class SubmissionDetailOut(SubmissionOut):
    files: List[SubmissionFileOut] = []


class SubmitResponse(BaseModel):
    success: bool
    submission_id: Optional[str] = None
    urgency_flag: Optional[UrgencyFlag] = None
    attachments_incomplete: bool = False
    failed_files: List[str] = []
    message: Optional[str] = None


class SummaryRequest(BaseModel):
    session_id: str
    timestamp: datetime
    symptoms: str
    duration: Optional[DurationCategory] = None
    severity: Optional[int] = Field(None, ge=1, le=10)
    onset_date: Optional[date] = None
    assessment: str
    risk: RiskLabel


# ---------- Provider triage ----------
class StatusUpdateIn(BaseModel):
    status: SubmissionStatus


class NoteIn(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class NoteOut(BaseModel):
    id: str
    submission_id: str
    provider_id: str
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class ProviderSubmissionOut(SubmissionDetailOut):
    notes: List[NoteOut] = []
