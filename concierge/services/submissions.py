"""Create/read access to symptom submissions and their files."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from concierge.models.symptom_submission import (
    DurationCategory,
    RiskLabel,
    SubmissionFile,
    SymptomSubmission,
    UrgencyFlag,
)
from concierge.services.validation import validate_intake
from concierge.utils.exceptions import NotFoundError, PersistenceError
from concierge.utils.retry import call_with_retry

logger = logging.getLogger("concierge")

T = TypeVar("T")


@dataclass
class NewSubmission:
    profile_id: str
    symptoms: str
    urgency_flag: UrgencyFlag
    duration: Optional[DurationCategory] = None
    severity: Optional[int] = None
    onset_date: Optional[date] = None
    ai_assessment: Optional[str] = None
    ai_risk_level: Optional[RiskLabel] = None
    ai_confidence: Optional[float] = None
    session_id: Optional[str] = None


def run_guarded(db: Session, label: str, fn: Callable[[], T]) -> T:
    """Run a unit of DB work, retrying transient errors and mapping failures to PersistenceError."""

    def attempt() -> T:
        try:
            return fn()
        except OperationalError:
            db.rollback()
            raise

    try:
        return call_with_retry(attempt, retry_on=(OperationalError,), label=label)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning({
            "function": "run_guarded",
            "operation": label,
            "status": "failed",
            "error": type(exc).__name__,
        })
        raise PersistenceError(f"Could not {label}", details=type(exc).__name__) from exc


class SubmissionRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _run(self, label: str, fn: Callable[[], T]) -> T:
        return run_guarded(self.db, label, fn)

    def create_submission(self, data: NewSubmission) -> SymptomSubmission:
        validate_intake(data.symptoms, data.severity, data.onset_date)

        def _insert() -> SymptomSubmission:
            row = SymptomSubmission(
                profile_id=data.profile_id,
                symptoms=data.symptoms,
                duration=data.duration,
                severity=data.severity,
                onset_date=data.onset_date,
                urgency_flag=data.urgency_flag,
                ai_assessment=data.ai_assessment,
                ai_risk_level=data.ai_risk_level,
                ai_confidence=data.ai_confidence,
                session_id=data.session_id,
            )
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row

        row = self._run("create submission", _insert)
        logger.info({
            "function": "create_submission",
            "status": "inserted",
            "submission_id": row.id,
            "urgency": row.urgency_flag.value,
        })
        return row

    def list_submissions(
        self, owner_id: str, limit: Optional[int] = None, offset: int = 0
    ) -> List[SymptomSubmission]:
        def _query() -> List[SymptomSubmission]:
            stmt = (
                select(SymptomSubmission)
                .where(SymptomSubmission.profile_id == str(owner_id))
                .order_by(SymptomSubmission.created_at.desc())
                .offset(max(0, offset))
            )
            if limit is not None:
                stmt = stmt.limit(limit)
            return list(self.db.execute(stmt).scalars().all())

        return self._run("list submissions", _query)

    def get_submission(self, submission_id: str, owner_id: Optional[str] = None) -> SymptomSubmission:
        """Fetch one submission; with ``owner_id`` set, rows owned by anyone else are invisible."""

        def _query() -> Optional[SymptomSubmission]:
            stmt = select(SymptomSubmission).where(SymptomSubmission.id == str(submission_id))
            if owner_id is not None:
                stmt = stmt.where(SymptomSubmission.profile_id == str(owner_id))
            return self.db.execute(stmt).scalar_one_or_none()

        row = self._run("load submission", _query)
        if row is None:
            raise NotFoundError("Submission not found", details={"submission_id": str(submission_id)})
        return row

    def list_files(self, submission_id: str) -> List[SubmissionFile]:
        def _query() -> List[SubmissionFile]:
            stmt = (
                select(SubmissionFile)
                .where(SubmissionFile.submission_id == str(submission_id))
                .order_by(SubmissionFile.created_at.asc())
            )
            return list(self.db.execute(stmt).scalars().all())

        return self._run("list submission files", _query)

    def add_file(self, submission_id: str, file_url: str, file_name: str, file_type: str) -> SubmissionFile:
        def _insert() -> SubmissionFile:
            row = SubmissionFile(
                submission_id=submission_id,
                file_url=file_url,
                file_name=file_name,
                file_type=file_type,
            )
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row

        return self._run("record submission file", _insert)

    def mark_attachments_incomplete(self, submission_id: str) -> None:
        def _update() -> None:
            row = self.db.get(SymptomSubmission, str(submission_id))
            if row is None:
                raise NotFoundError("Submission not found", details={"submission_id": str(submission_id)})
            row.attachments_incomplete = True
            self.db.commit()

        self._run("flag incomplete attachments", _update)


__all__ = ["NewSubmission", "SubmissionRepository", "run_guarded"]
