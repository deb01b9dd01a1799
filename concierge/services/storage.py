"""Blob storage for symptom attachments.

Two backends share one shape, ``upload(path, data, content_type) -> public URL``:

- ``LocalBlobStorage`` writes under UPLOAD_ROOT and serves from
  PUBLIC_UPLOAD_BASE_URL (development, tests);
- ``SupabaseBlobStorage`` talks to a Supabase-style storage REST API.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import httpx

from concierge.utils.retry import call_with_retry

logger = logging.getLogger("concierge")

DEFAULT_UPLOAD_DIR = Path(
    os.getenv("UPLOAD_ROOT")
    or (Path(__file__).resolve().parent.parent / "uploads")
)
PUBLIC_UPLOAD_BASE_URL = (os.getenv("PUBLIC_UPLOAD_BASE_URL") or "/uploads").rstrip("/")
SYMPTOM_UPLOAD_BUCKET = (os.getenv("SYMPTOM_UPLOAD_BUCKET") or "symptom_uploads").strip()


class BlobStorageError(Exception):
    """Upload rejected by the blob store or transport failed after retries."""


class BlobStorage:
    def upload(self, path: str, data: bytes, content_type: str) -> str:  # pragma: no cover - interface
        raise NotImplementedError


def _safe_relative(path: str) -> Path:
    rel = Path(path.lstrip("/"))
    if any(part in ("..", "") for part in rel.parts):
        raise BlobStorageError(f"Invalid storage path: {path}")
    return rel


class LocalBlobStorage(BlobStorage):
    def __init__(self, root: Optional[Path] = None, base_url: str = PUBLIC_UPLOAD_BASE_URL) -> None:
        self.root = Path(root or DEFAULT_UPLOAD_DIR)
        self.base_url = base_url.rstrip("/")

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        rel = _safe_relative(path)
        target = self.root / rel
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise BlobStorageError(f"Could not write {rel}: {exc}") from exc
        return f"{self.base_url}/{rel.as_posix()}"


class SupabaseBlobStorage(BlobStorage):
    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str = SYMPTOM_UPLOAD_BUCKET,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self._client = client
        self.timeout = timeout

    def _headers(self, content_type: str) -> dict:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": content_type or "application/octet-stream",
            "x-upsert": "false",
        }

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    def _post(self, client: httpx.Client, path: str, data: bytes, content_type: str) -> None:
        response = client.post(
            f"{self.base_url}/storage/v1/object/{self.bucket}/{path}",
            content=data,
            headers=self._headers(content_type),
        )
        response.raise_for_status()

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        rel = _safe_relative(path).as_posix()

        def attempt() -> None:
            if self._client is not None:
                self._post(self._client, rel, data, content_type)
                return
            with httpx.Client(timeout=self.timeout) as client:
                self._post(client, rel, data, content_type)

        try:
            # Only transport errors are transient; a 4xx from the store is final
            call_with_retry(attempt, retry_on=(httpx.TransportError,), label="blob upload")
        except httpx.HTTPError as exc:
            raise BlobStorageError(f"Upload of {rel} failed: {exc}") from exc
        return self.public_url(rel)


def get_blob_storage() -> BlobStorage:
    backend = (os.getenv("STORAGE_BACKEND") or "local").strip().lower()
    if backend == "supabase":
        url = (os.getenv("SUPABASE_URL") or "").strip()
        key = (os.getenv("SUPABASE_SERVICE_KEY") or "").strip()
        if not url or not key:
            raise RuntimeError("STORAGE_BACKEND=supabase requires SUPABASE_URL and SUPABASE_SERVICE_KEY")
        return SupabaseBlobStorage(url, key)
    return LocalBlobStorage()


__all__ = [
    "BlobStorage",
    "BlobStorageError",
    "LocalBlobStorage",
    "SupabaseBlobStorage",
    "get_blob_storage",
    "DEFAULT_UPLOAD_DIR",
]
