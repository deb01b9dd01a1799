# concierge/routes/triage_routes.py
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from concierge.auth.deps import require_provider
from concierge.db.session import get_db
from concierge.models.user import User
from concierge.schemas.symptoms import (
    NoteIn,
    NoteOut,
    ProviderSubmissionOut,
    StatusUpdateIn,
    SubmissionFileOut,
    SubmissionOut,
)
from concierge.services.summary import render_submission_report
from concierge.services.triage_inbox import QueueFilter, TriageInbox

router = APIRouter(prefix="/api/triage", tags=["triage"])


@router.get("/queue", response_model=List[SubmissionOut])
def triage_queue(
    filter: QueueFilter = Query(QueueFilter.ALL),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
    provider: User = Depends(require_provider),
):
    return TriageInbox(db, provider.id).list_queue(filter, limit=limit)


@router.get("/submissions/{submission_id}", response_model=ProviderSubmissionOut)
def open_submission(
    submission_id: str,
    db: Session = Depends(get_db),
    provider: User = Depends(require_provider),
):
    inbox = TriageInbox(db, provider.id)
    row = inbox.open_submission(submission_id)
    base = SubmissionOut.model_validate(row, from_attributes=True)
    return ProviderSubmissionOut(
        **base.model_dump(),
        files=[SubmissionFileOut.model_validate(f, from_attributes=True) for f in inbox.repository.list_files(row.id)],
        notes=[NoteOut.model_validate(n, from_attributes=True) for n in inbox.list_notes(row.id)],
    )


@router.post("/submissions/{submission_id}/status", response_model=SubmissionOut)
def update_status(
    submission_id: str,
    payload: StatusUpdateIn,
    db: Session = Depends(get_db),
    provider: User = Depends(require_provider),
):
    return TriageInbox(db, provider.id).change_status(submission_id, payload.status)


@router.post("/submissions/{submission_id}/notes", response_model=NoteOut, status_code=status.HTTP_201_CREATED)
def add_note(
    submission_id: str,
    payload: NoteIn,
    db: Session = Depends(get_db),
    provider: User = Depends(require_provider),
):
    return TriageInbox(db, provider.id).add_note(submission_id, payload.content)


@router.get("/submissions/{submission_id}/report", response_class=PlainTextResponse)
def submission_report(
    submission_id: str,
    db: Session = Depends(get_db),
    provider: User = Depends(require_provider),
):
    inbox = TriageInbox(db, provider.id)
    row = inbox.repository.get_submission(submission_id)
    text = render_submission_report(
        row,
        inbox.repository.list_files(row.id),
        inbox.list_notes(row.id),
        generated_at=datetime.now(timezone.utc),
    )
    return PlainTextResponse(
        text,
        headers={"Content-Disposition": f'attachment; filename="symptom-submission-{row.id}.txt"'},
    )
