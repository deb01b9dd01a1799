"""Submit and history entry points used by the UI shell and the HTTP routes."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from concierge.models.symptom_submission import SymptomSubmission, UrgencyFlag
from concierge.schemas.symptoms import IntakeFields
from concierge.services import triage
from concierge.services.attachments import AttachmentHandler, PendingAttachment
from concierge.services.storage import BlobStorage
from concierge.services.submissions import NewSubmission, SubmissionRepository
from concierge.services.validation import validate_intake
from concierge.utils.exceptions import (
    IntakeError,
    NotAuthenticatedError,
    PartialUploadFailure,
    PersistenceError,
)

logger = logging.getLogger("concierge")


@dataclass
class SubmitResult:
    success: bool
    submission_id: Optional[str] = None
    urgency_flag: Optional[UrgencyFlag] = None
    error: Optional[IntakeError] = None
    failed_files: List[str] = field(default_factory=list)

    @property
    def attachments_incomplete(self) -> bool:
        return bool(self.failed_files)

    @property
    def message(self) -> str:
        if self.error is not None:
            return self.error.message
        return "Your symptom assessment has been submitted"


def submit_intake(
    db: Session,
    storage: BlobStorage,
    owner_id: Optional[str],
    fields: IntakeFields,
    attachments: Iterable[PendingAttachment] = (),
    assessment: Optional[triage.Assessment] = None,
) -> SubmitResult:
    """Persist one submission, then its attachments, in that order.

    Validation and persistence failures come back as ``SubmitResult(success=False)``.
    If the row was created but some uploads failed, the result is a success
    carrying a ``PartialUploadFailure`` and the row is flagged
    ``attachments_incomplete``.
    """
    if not owner_id:
        raise NotAuthenticatedError("You must be logged in to submit a symptom assessment")

    repo = SubmissionRepository(db)
    try:
        validate_intake(fields.symptoms, fields.severity, fields.onset_date)
        if assessment is None:
            assessment = triage.assess(fields.symptoms, fields.severity, fields.duration)
        urgency = triage.compute_urgency(fields.symptoms, fields.severity)
        row = repo.create_submission(
            NewSubmission(
                profile_id=str(owner_id),
                symptoms=fields.symptoms,
                duration=fields.duration,
                severity=fields.severity,
                onset_date=fields.onset_date,
                urgency_flag=urgency,
                ai_assessment=assessment.assessment_text,
                ai_risk_level=assessment.risk_label,
                ai_confidence=assessment.confidence,
                session_id=assessment.session_id,
            )
        )
    except IntakeError as exc:
        logger.warning({
            "function": "submit_intake",
            "status": "rejected",
            "error": type(exc).__name__,
        })
        return SubmitResult(success=False, error=exc)

    outcome = AttachmentHandler(storage, repo).upload_all(str(owner_id), row.id, list(attachments))
    if outcome.complete:
        return SubmitResult(success=True, submission_id=row.id, urgency_flag=urgency)

    try:
        repo.mark_attachments_incomplete(row.id)
    except PersistenceError:
        logger.error({
            "function": "submit_intake",
            "status": "incomplete_flag_failed",
            "submission_id": row.id,
        })
    return SubmitResult(
        success=True,
        submission_id=row.id,
        urgency_flag=urgency,
        error=PartialUploadFailure(row.id, outcome.failed),
        failed_files=outcome.failed,
    )


def submission_history(
    db: Session, owner_id: str, limit: Optional[int] = None, offset: int = 0
) -> List[SymptomSubmission]:
    return SubmissionRepository(db).list_submissions(owner_id, limit=limit, offset=offset)


__all__ = ["SubmitResult", "submit_intake", "submission_history"]
