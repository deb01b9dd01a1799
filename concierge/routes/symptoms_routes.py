# concierge/routes/symptoms_routes.py
import dataclasses
import logging
import re
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from concierge.auth.deps import get_current_user, get_rate_limited_user
from concierge.db.session import get_db
from concierge.middleware.rate_limit import limiter, user_rate_key
from concierge.models.symptom_submission import DurationCategory
from concierge.models.user import User
from concierge.schemas.symptoms import (
    AssessRequest,
    AssessmentOut,
    IntakeFields,
    SubmissionDetailOut,
    SubmissionFileOut,
    SubmissionOut,
    SubmitResponse,
    SummaryRequest,
)
from concierge.services import triage
from concierge.services.attachments import accept_attachment
from concierge.services.history import HistoryViewer
from concierge.services.intake import submission_history, submit_intake
from concierge.services.storage import BlobStorage, get_blob_storage
from concierge.services.submissions import SubmissionRepository
from concierge.services.summary import render_assessment_summary, summary_filename
from concierge.services.validation import validate_intake
from concierge.utils.exceptions import ValidationError

router = APIRouter(prefix="/api/symptoms", tags=["symptoms"])
logger = logging.getLogger("concierge")

_SESSION_ID_RE = re.compile(r"^SYM-\d{4}$")


def _fields_from_form(
    symptoms: str,
    duration: Optional[str],
    severity: Optional[int],
    onset_date: Optional[str],
) -> IntakeFields:
    try:
        duration_val = DurationCategory(duration) if duration else None
    except ValueError:
        raise ValidationError(f"Unknown duration: {duration}", field="duration")
    try:
        onset_val = date.fromisoformat(onset_date) if onset_date else None
    except ValueError:
        raise ValidationError("Onset date must be YYYY-MM-DD", field="onset_date")
    fields = IntakeFields(symptoms=symptoms or "", duration=duration_val, severity=severity, onset_date=onset_val)
    validate_intake(fields.symptoms, fields.severity, fields.onset_date)
    return fields


@router.post("/assess", response_model=AssessmentOut)
@limiter.limit("30/minute", key_func=user_rate_key)
def assess_symptoms(
    request: Request,
    payload: AssessRequest,
    current_user: User = Depends(get_rate_limited_user),
):
    """Run the advisory classifier for the Review step. Nothing is persisted."""
    validate_intake(payload.symptoms, payload.severity)
    result = triage.assess(payload.symptoms, payload.severity, payload.duration)
    return AssessmentOut(
        assessment=result.assessment_text,
        risk=result.risk_label,
        urgency=triage.compute_urgency(payload.symptoms, payload.severity),
        confidence=result.confidence,
        session_id=result.session_id,
        timestamp=result.timestamp,
    )


@router.post("/submissions", response_model=SubmitResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute", key_func=user_rate_key)
async def create_submission(
    request: Request,
    symptoms: str = Form(""),
    duration: Optional[str] = Form(None),
    severity: Optional[int] = Form(5),
    onset_date: Optional[str] = Form(None),
    session_id: Optional[str] = Form(None),
    files: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    storage: BlobStorage = Depends(get_blob_storage),
    current_user: User = Depends(get_rate_limited_user),
):
    fields = _fields_from_form(symptoms, duration, severity, onset_date)

    attachments = []
    for upload in files or []:
        data = await upload.read()
        attachments.append(accept_attachment(upload.filename, upload.content_type, data))

    assessment = triage.assess(fields.symptoms, fields.severity, fields.duration)
    if session_id and _SESSION_ID_RE.match(session_id):
        # keep the reference the member already saw on the Review step
        assessment = dataclasses.replace(assessment, session_id=session_id)

    result = submit_intake(db, storage, current_user.id, fields, attachments, assessment)
    if not result.success:
        raise result.error
    return SubmitResponse(
        success=True,
        submission_id=result.submission_id,
        urgency_flag=result.urgency_flag,
        attachments_incomplete=result.attachments_incomplete,
        failed_files=result.failed_files,
        message=result.message,
    )


@router.get("/submissions", response_model=List[SubmissionOut])
def list_submissions(
    limit: Optional[int] = Query(None, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return submission_history(db, str(current_user.id), limit=limit, offset=offset)


@router.get("/submissions/{submission_id}", response_model=SubmissionDetailOut)
def get_submission(
    submission_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    viewer = HistoryViewer(SubmissionRepository(db), str(current_user.id))
    return viewer.load_detail(submission_id)


@router.get("/submissions/{submission_id}/files", response_model=List[SubmissionFileOut])
def list_submission_files(
    submission_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    repo = SubmissionRepository(db)
    row = repo.get_submission(submission_id, owner_id=str(current_user.id))
    return repo.list_files(row.id)


@router.post("/summary", response_class=PlainTextResponse)
def download_summary(
    payload: SummaryRequest,
    current_user: User = Depends(get_current_user),
):
    text = render_assessment_summary(
        session_id=payload.session_id,
        timestamp=payload.timestamp,
        symptoms=payload.symptoms,
        assessment=payload.assessment,
        risk=payload.risk,
        duration=payload.duration,
        severity=payload.severity,
        onset_date=payload.onset_date,
    )
    filename = summary_filename(payload.session_id)
    return PlainTextResponse(
        text,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
