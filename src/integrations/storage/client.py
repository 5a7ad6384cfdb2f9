"""Async httpx client for the upload service (remote blob storage).

Objects are addressed by an opaque path built by the caller, e.g.
``quotation-requests/42/files/20260101_120000_drawing.pdf``.

Endpoints (relative to the configured base URL):
    POST   path?objectPath=...                      multipart upload
    GET    path?objectPath=...                      download
    DELETE path?objectPath=...                      delete
    HEAD   path?objectPath=...                      existence check
    POST   path/signed-url?objectPath=...&expirationHours=N
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from email.message import Message

import httpx

from src.config import settings
from src.integrations.storage.schemas import FileDownload, FileUploadResponse

logger = logging.getLogger(__name__)

_DEFAULT_CONTENT_TYPE = "application/octet-stream"


class StorageError(Exception):
    """The upload service failed or returned an unexpected status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _filename_from_disposition(header: str | None) -> str | None:
    """Extract the filename parameter from a Content-Disposition header."""
    if not header:
        return None
    msg = Message()
    msg["content-disposition"] = header
    filename = msg.get_filename()
    return filename.strip('"') if filename else None


def signed_url_hours(expires_in: timedelta) -> int:
    """Whole hours the upload service is asked for: rounded up, at least one."""
    return max(1, math.ceil(expires_in.total_seconds() / 3600))


class UploadServiceClient:
    """Thin async wrapper around the upload service.

    Every call is a single request with the configured timeout. A 404 on
    download/delete is reported as a value (None/False); any other failure
    raises StorageError and the caller decides whether it is fatal.
    """

    def __init__(self, base_url: str | None = None, timeout: float | None = None) -> None:
        self._base_url = (base_url or settings.storage.upload_service_base_url).rstrip("/") + "/"
        self._timeout = httpx.Timeout(timeout or settings.storage.upload_service_timeout, connect=5.0)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)

    async def upload(
        self,
        object_path: str,
        filename: str,
        content: bytes,
        content_type: str | None = None,
    ) -> FileUploadResponse:
        """Upload a blob to ``object_path`` and return the stored object's metadata."""
        files = {"file": (filename, content, content_type or _DEFAULT_CONTENT_TYPE)}
        try:
            async with self._client() as client:
                response = await client.post("path", params={"objectPath": object_path}, files=files)
                response.raise_for_status()
                uploaded = FileUploadResponse.model_validate(response.json())
        except httpx.HTTPStatusError as exc:
            logger.error("Upload of %s to %s failed: HTTP %s", filename, object_path, exc.response.status_code)
            raise StorageError(f"Upload failed for {object_path}", exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            logger.error("Upload of %s to %s failed: %s", filename, object_path, exc)
            raise StorageError(f"Upload failed for {object_path}") from exc
        except ValueError as exc:
            # Undecodable JSON or a reply that does not match FileUploadResponse
            logger.error("Upload of %s to %s returned an invalid reply: %s", filename, object_path, exc)
            raise StorageError(f"Invalid response from upload service for {object_path}") from exc

        if not uploaded.object_name:
            raise StorageError(f"Invalid response from upload service for {object_path}")

        logger.info("Uploaded file %s to %s", filename, object_path)
        return uploaded

    async def download(self, object_path: str) -> FileDownload | None:
        """Download a blob. Returns None when the object does not exist."""
        try:
            async with self._client() as client:
                response = await client.get("path", params={"objectPath": object_path})
                if response.status_code == httpx.codes.NOT_FOUND:
                    return None
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("Download of %s failed: HTTP %s", object_path, exc.response.status_code)
            raise StorageError(f"Download failed for {object_path}", exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            logger.error("Download of %s failed: %s", object_path, exc)
            raise StorageError(f"Download failed for {object_path}") from exc

        content = response.content
        content_type = response.headers.get("content-type", _DEFAULT_CONTENT_TYPE).split(";")[0].strip()
        filename = _filename_from_disposition(response.headers.get("content-disposition")) or "download"

        logger.info("Downloaded %s (%d bytes)", object_path, len(content))
        return FileDownload(
            file_name=filename,
            content_type=content_type or _DEFAULT_CONTENT_TYPE,
            content=content,
            file_size=len(content),
        )

    async def delete(self, object_path: str) -> bool:
        """Delete a blob. Returns False when it was already gone."""
        try:
            async with self._client() as client:
                response = await client.delete("path", params={"objectPath": object_path})
                if response.status_code == httpx.codes.NOT_FOUND:
                    return False
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("Delete of %s failed: HTTP %s", object_path, exc.response.status_code)
            raise StorageError(f"Delete failed for {object_path}", exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            logger.error("Delete of %s failed: %s", object_path, exc)
            raise StorageError(f"Delete failed for {object_path}") from exc

        logger.info("Deleted %s", object_path)
        return True

    async def exists(self, object_path: str) -> bool:
        """HEAD the object. Transport failures count as "does not exist"."""
        try:
            async with self._client() as client:
                response = await client.head("path", params={"objectPath": object_path})
        except httpx.HTTPError:
            logger.warning("Existence check for %s failed", object_path, exc_info=True)
            return False
        return response.is_success

    async def sign(self, object_path: str, expires_in: timedelta) -> str:
        """Ask the upload service for a time-limited download URL.

        The service works in whole hours, so the expiry is rounded up.
        """
        hours = signed_url_hours(expires_in)
        try:
            async with self._client() as client:
                response = await client.post(
                    "path/signed-url",
                    params={"objectPath": object_path, "expirationHours": hours},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("Signing %s failed: HTTP %s", object_path, exc.response.status_code)
            raise StorageError(f"Signed URL failed for {object_path}", exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            logger.error("Signing %s failed: %s", object_path, exc)
            raise StorageError(f"Signed URL failed for {object_path}") from exc

        # The service answers with a bare JSON string
        return response.text.strip().strip('"')


# Module-level singleton
upload_client = UploadServiceClient()
