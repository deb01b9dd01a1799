"""Member attachments: input-boundary checks and post-submit upload."""
from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from concierge.models.symptom_submission import SubmissionFile
from concierge.services.storage import BlobStorage, BlobStorageError
from concierge.services.submissions import SubmissionRepository
from concierge.utils.exceptions import PersistenceError, ValidationError

logger = logging.getLogger("concierge")

ACCEPTED_MIME_TYPES = ("image/jpeg", "image/png", "video/mp4")
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "25"))


@dataclass(frozen=True)
class PendingAttachment:
    """A file the member picked or dropped, held in memory until submit."""

    file_name: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass
class UploadOutcome:
    files: List[SubmissionFile] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed


def _sanitize_filename(name: str) -> str:
    name = os.path.basename(name or "file").strip()
    return name or "file"


def accept_attachment(file_name: Optional[str], content_type: Optional[str], data: bytes) -> PendingAttachment:
    mt = (content_type or "").split(";")[0].strip().lower()
    name = _sanitize_filename(file_name or "")
    if mt not in ACCEPTED_MIME_TYPES:
        raise ValidationError(f"Unsupported file type: {mt or 'unknown'}", field="files")
    if not data:
        raise ValidationError(f"Empty file: {name}", field="files")
    if len(data) > MAX_UPLOAD_MB * 1024 * 1024:
        raise ValidationError(f"File size exceeds the {MAX_UPLOAD_MB}MB limit", field="files")
    return PendingAttachment(file_name=name, content_type=mt, data=data)


def storage_path(owner_id: str, submission_id: str, file_name: str) -> str:
    """``{owner}/{submission}/{random}{ext}``; the original name is kept only in metadata."""
    suffix = Path(file_name or "").suffix.lower()
    safe_suffix = suffix if 1 < len(suffix) <= 10 else ""
    return f"{owner_id}/{submission_id}/{uuid.uuid4().hex}{safe_suffix}"


class AttachmentHandler:
    def __init__(self, storage: BlobStorage, repository: SubmissionRepository) -> None:
        self.storage = storage
        self.repository = repository

    def upload_all(
        self, owner_id: str, submission_id: str, attachments: Iterable[PendingAttachment]
    ) -> UploadOutcome:
        """Upload each attachment in turn and record a SubmissionFile per stored blob.

        A failed upload or metadata write is collected in ``failed`` and the
        remaining files are still attempted. No metadata row is written for a
        blob that was not stored.
        """
        outcome = UploadOutcome()
        for item in attachments:
            path = storage_path(owner_id, submission_id, item.file_name)
            try:
                url = self.storage.upload(path, item.data, item.content_type)
            except BlobStorageError as exc:
                logger.warning({
                    "function": "upload_all",
                    "status": "upload_failed",
                    "submission_id": submission_id,
                    "error": str(exc),
                })
                outcome.failed.append(item.file_name)
                continue
            try:
                row = self.repository.add_file(submission_id, url, item.file_name, item.content_type)
            except PersistenceError:
                # blob exists without a metadata row; nothing references it
                outcome.failed.append(item.file_name)
                continue
            outcome.files.append(row)
        logger.info({
            "function": "upload_all",
            "submission_id": submission_id,
            "uploaded": len(outcome.files),
            "failed": len(outcome.failed),
        })
        return outcome


__all__ = [
    "ACCEPTED_MIME_TYPES",
    "AttachmentHandler",
    "PendingAttachment",
    "UploadOutcome",
    "accept_attachment",
    "storage_path",
]
