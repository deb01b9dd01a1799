"""Provider-side triage queue.

This is the only place a submission's ``status`` changes. Status moves
forward only: Submitted -> Under Review -> Reviewed -> Scheduled, with
Escalated reachable from any state that is not yet final. Scheduled and
Escalated are final.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from concierge.models.symptom_submission import SubmissionStatus, SymptomSubmission, UrgencyFlag
from concierge.models.triage import ProviderNote, TriageActivity
from concierge.services.submissions import SubmissionRepository, run_guarded
from concierge.utils.exceptions import InvalidStatusTransition, ValidationError

logger = logging.getLogger("concierge")

_RANK = {
    SubmissionStatus.SUBMITTED: 0,
    SubmissionStatus.UNDER_REVIEW: 1,
    SubmissionStatus.REVIEWED: 2,
    SubmissionStatus.SCHEDULED: 3,
}
TERMINAL_STATUSES = frozenset({SubmissionStatus.SCHEDULED, SubmissionStatus.ESCALATED})


class QueueFilter(str, Enum):
    ALL = "all"
    UNREVIEWED = "unreviewed"
    HIGH_PRIORITY = "high_priority"


def can_transition(current: SubmissionStatus, new: SubmissionStatus) -> bool:
    if current in TERMINAL_STATUSES:
        return False
    if new == SubmissionStatus.ESCALATED:
        return True
    return _RANK[new] > _RANK[current]


class TriageInbox:
    def __init__(self, db: Session, provider_id: str) -> None:
        self.db = db
        self.provider_id = str(provider_id)
        self.repository = SubmissionRepository(db)

    def list_queue(self, queue_filter: QueueFilter = QueueFilter.ALL, limit: Optional[int] = None) -> List[SymptomSubmission]:
        def _query() -> List[SymptomSubmission]:
            stmt = select(SymptomSubmission).order_by(SymptomSubmission.created_at.desc())
            if queue_filter == QueueFilter.UNREVIEWED:
                stmt = stmt.where(
                    SymptomSubmission.status.in_([SubmissionStatus.SUBMITTED, SubmissionStatus.UNDER_REVIEW])
                )
            elif queue_filter == QueueFilter.HIGH_PRIORITY:
                stmt = stmt.where(SymptomSubmission.urgency_flag == UrgencyFlag.HIGH)
            if limit is not None:
                stmt = stmt.limit(limit)
            return list(self.db.execute(stmt).scalars().all())

        return run_guarded(self.db, "load triage queue", _query)

    def _log(self, submission_id: str, action: str, details: str) -> None:
        self.db.add(TriageActivity(
            submission_id=submission_id,
            user_id=self.provider_id,
            action=action,
            details=details,
        ))

    def open_submission(self, submission_id: str) -> SymptomSubmission:
        """Load a submission for review; a fresh one moves to Under Review."""
        row = self.repository.get_submission(submission_id)

        def _mark_viewed() -> None:
            self._log(row.id, "Viewed", "Provider viewed submission details")
            if row.status == SubmissionStatus.SUBMITTED:
                row.status = SubmissionStatus.UNDER_REVIEW
                self._log(row.id, "Status Changed", "Submitted -> Under Review")
            self.db.commit()
            self.db.refresh(row)

        run_guarded(self.db, "open submission", _mark_viewed)
        return row

    def change_status(self, submission_id: str, new_status: SubmissionStatus) -> SymptomSubmission:
        row = self.repository.get_submission(submission_id)
        new_status = SubmissionStatus(new_status)
        if row.status == new_status:
            return row
        if not can_transition(row.status, new_status):
            raise InvalidStatusTransition(
                f"Cannot move submission from {row.status.value} to {new_status.value}",
                details={"current": row.status.value, "requested": new_status.value},
            )
        previous = row.status

        def _update() -> None:
            row.status = new_status
            self._log(row.id, "Status Changed", f"{previous.value} -> {new_status.value}")
            self.db.commit()
            self.db.refresh(row)

        run_guarded(self.db, "update submission status", _update)
        logger.info({
            "function": "change_status",
            "submission_id": row.id,
            "from": previous.value,
            "to": new_status.value,
        })
        return row

    def add_note(self, submission_id: str, content: str) -> ProviderNote:
        text = (content or "").strip()
        if not text:
            raise ValidationError("Note cannot be empty", field="content")
        row = self.repository.get_submission(submission_id)

        def _insert() -> ProviderNote:
            note = ProviderNote(submission_id=row.id, provider_id=self.provider_id, content=text)
            self.db.add(note)
            self._log(row.id, "Note Added", "Provider added a note")
            self.db.commit()
            self.db.refresh(note)
            return note

        return run_guarded(self.db, "add provider note", _insert)

    def list_notes(self, submission_id: str) -> List[ProviderNote]:
        def _query() -> List[ProviderNote]:
            stmt = (
                select(ProviderNote)
                .where(ProviderNote.submission_id == str(submission_id))
                .order_by(ProviderNote.created_at.asc())
            )
            return list(self.db.execute(stmt).scalars().all())

        return run_guarded(self.db, "list provider notes", _query)

    def list_activity(self, submission_id: str) -> List[TriageActivity]:
        def _query() -> List[TriageActivity]:
            stmt = (
                select(TriageActivity)
                .where(TriageActivity.submission_id == str(submission_id))
                .order_by(TriageActivity.created_at.asc())
            )
            return list(self.db.execute(stmt).scalars().all())

        return run_guarded(self.db, "list triage activity", _query)


__all__ = ["QueueFilter", "TriageInbox", "can_transition", "TERMINAL_STATUSES"]
