"""Read-only history of a member's submissions with graceful detail loading."""
from __future__ import annotations

import logging
from typing import List, Optional

from concierge.schemas.symptoms import SubmissionDetailOut, SubmissionFileOut, SubmissionOut
from concierge.services.submissions import SubmissionRepository
from concierge.utils.exceptions import IntakeError, PersistenceError

logger = logging.getLogger("concierge")


class HistoryViewer:
    def __init__(self, repository: SubmissionRepository, owner_id: str) -> None:
        self.repository = repository
        self.owner_id = str(owner_id)
        self.items: List[SubmissionOut] = []
        self.notices: List[str] = []

    def refresh(self, limit: Optional[int] = None, offset: int = 0) -> List[SubmissionOut]:
        """Reload summaries; on a backend failure keep what is already held."""
        try:
            rows = self.repository.list_submissions(self.owner_id, limit=limit, offset=offset)
        except PersistenceError as exc:
            logger.warning({"function": "HistoryViewer.refresh", "status": "failed", "error": exc.message})
            self.notices.append("Failed to load submission history")
            return self.items
        self.items = [SubmissionOut.model_validate(r, from_attributes=True) for r in rows]
        return self.items

    def summary(self, submission_id: str) -> Optional[SubmissionOut]:
        return next((s for s in self.items if s.id == str(submission_id)), None)

    def load_detail(self, submission_id: str) -> SubmissionDetailOut:
        """Submission plus files; falls back to the in-memory summary if the fetch fails.

        Without a cached summary the repository error (NotFoundError or
        PersistenceError) propagates unchanged.
        """
        try:
            row = self.repository.get_submission(submission_id, owner_id=self.owner_id)
            files = self.repository.list_files(row.id)
        except IntakeError as exc:
            logger.warning({
                "function": "HistoryViewer.load_detail",
                "status": "fallback",
                "submission_id": str(submission_id),
                "error": type(exc).__name__,
            })
            self.notices.append("Failed to load submission details")
            cached = self.summary(submission_id)
            if cached is None:
                raise
            return SubmissionDetailOut(**cached.model_dump(), files=[])
        base = SubmissionOut.model_validate(row, from_attributes=True)
        return SubmissionDetailOut(
            **base.model_dump(),
            files=[SubmissionFileOut.model_validate(f, from_attributes=True) for f in files],
        )


__all__ = ["HistoryViewer"]
