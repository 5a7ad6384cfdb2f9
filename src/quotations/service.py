"""Quotation request lifecycle — creation, status changes, assignment, comments, files.

Every method takes the request-scoped AsyncSession as its first argument and
returns pydantic read models. Missing requests (or children scoped to a
request) raise NotFoundError.

Caching: single-request reads and list pages are memoized for a fixed TTL.
Mutations remove only the `quotation_request_{id}` entry; list pages stay
stale until they expire.

Remote storage: upload failures during creation skip that one file; delete
failures during file/request deletion are logged and ignored so database
state is never blocked by the upload service.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.cache.result_cache import ResultCache
from src.config import settings
from src.integrations.storage.client import StorageError, UploadServiceClient, signed_url_hours
from src.integrations.storage.schemas import FileDownload, FileUploadResponse
from src.models.base import utcnow
from src.models.comment import QuotationRequestComment
from src.models.enums import CommentType, Priority, QuotationRequestStatus
from src.models.quotation_request import QuotationRequest
from src.models.request_file import QuotationRequestFile
from src.models.status_history import QuotationRequestStatusHistory
from src.quotations import repository
from src.quotations.errors import NotFoundError
from src.schemas.quotation import (
    DEFAULT_PAGE_SIZE,
    AttachmentMetadata,
    CommentRead,
    FileRead,
    Pagination,
    QuotationRequestCreate,
    QuotationRequestList,
    QuotationRequestRead,
    SignedUrlRead,
    StatusHistoryRead,
)

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "System"
SEED_HISTORY_REASON = "Initial quotation request created"

# Milestone timestamp set when a request moves *to* the given status.
MILESTONE_FIELDS: dict[QuotationRequestStatus, str] = {
    QuotationRequestStatus.IN_REVIEW: "reviewed_at",
    QuotationRequestStatus.QUOTED: "quoted_at",
    QuotationRequestStatus.ACCEPTED: "completed_at",
    QuotationRequestStatus.REJECTED: "completed_at",
    QuotationRequestStatus.CANCELLED: "completed_at",
}


@dataclass(frozen=True)
class Attachment:
    """An uploaded file as received from the client."""

    filename: str
    content: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


# ── Pure helpers ─────────────────────────────────────────────────────


def generate_request_number(now: datetime | None = None) -> str:
    """Human-readable request number, e.g. ``QR-20260301-9F2C41AB``."""
    now = now or utcnow()
    return f"QR-{now:%Y%m%d}-{uuid.uuid4().hex[:8].upper()}"


def build_object_path(request_id: int, filename: str, now: datetime | None = None) -> str:
    """Storage path for an attachment, unique per request, second and filename."""
    now = now or utcnow()
    return f"quotation-requests/{request_id}/files/{now:%Y%m%d_%H%M%S}_{filename}"


def request_cache_key(request_id: int) -> str:
    return f"quotation_request_{request_id}"


def list_cache_key(
    page: int,
    page_size: int,
    status: QuotationRequestStatus | None,
    priority: Priority | None,
    assigned_to: str | None,
) -> str:
    status_part = status.value if status else ""
    priority_part = priority.value if priority else ""
    return f"quotation_requests_p{page}_ps{page_size}_s{status_part}_pr{priority_part}_a{assigned_to or ''}"


def status_cache_key(status: QuotationRequestStatus) -> str:
    return f"quotation_requests_status_{status.value}"


def to_read(request: QuotationRequest, visible_comments_only: bool = True) -> QuotationRequestRead:
    """Map a hydrated aggregate to its read model.

    Children are ordered by creation time; hidden comments are dropped unless
    an internal view asks for them.
    """
    read = QuotationRequestRead.model_validate(request)
    comments = [c for c in read.comments if c.is_visible or not visible_comments_only]
    return read.model_copy(
        update={
            "files": sorted(read.files, key=lambda f: (f.created_at, f.id)),
            "comments": sorted(comments, key=lambda c: (c.created_at, c.id)),
            "status_history": sorted(read.status_history, key=lambda h: (h.created_at, h.id)),
        }
    )


# ── Service ──────────────────────────────────────────────────────────


class QuotationRequestService:
    """Orchestrates the quotation request aggregate, its storage objects, and the read cache."""

    def __init__(
        self,
        storage: UploadServiceClient,
        cache: ResultCache,
        cache_ttl: int | None = None,
    ) -> None:
        self._storage = storage
        self._cache = cache
        self._cache_ttl = cache_ttl or settings.cache.cache_ttl_seconds

    # ── Creation ─────────────────────────────────────────────────────

    async def create_quotation_request(
        self,
        db: AsyncSession,
        payload: QuotationRequestCreate,
        attachments: Sequence[Attachment] = (),
    ) -> QuotationRequestRead:
        """Persist a new request, upload its attachments, and seed the status trail.

        Row inserts happen in one transaction that is rolled back on any
        persistence error. Objects already uploaded at that point are left in
        storage.
        """
        now = utcnow()
        request = QuotationRequest(
            request_number=generate_request_number(now),
            customer_name=payload.customer_name,
            customer_email=str(payload.customer_email),
            customer_phone=payload.customer_phone,
            company_name=payload.company_name,
            job_title=payload.job_title,
            subject=payload.subject,
            description=payload.description,
            requirements=payload.requirements,
            industry=payload.industry,
            project_timeline=payload.project_timeline,
            estimated_budget=payload.estimated_budget,
            preferred_contact_method=payload.preferred_contact_method,
            priority=payload.priority.value,
            customer_id=payload.customer_id,
            status=QuotationRequestStatus.NEW.value,
            created_at=now,
            updated_at=now,
            files=[],
            comments=[],
            status_history=[],
        )
        metadata = payload.files or []

        try:
            db.add(request)
            await db.flush()  # assigns request.id for the object paths

            for index, attachment in enumerate(attachments):
                meta = metadata[index] if index < len(metadata) else None
                file_row = await self._upload_attachment(request.id, attachment, meta)
                if file_row is not None:
                    request.files.append(file_row)

            request.status_history.append(
                QuotationRequestStatusHistory(
                    from_status=QuotationRequestStatus.NEW.value,
                    to_status=QuotationRequestStatus.NEW.value,
                    changed_by_team_member=SYSTEM_ACTOR,
                    change_reason=SEED_HISTORY_REASON,
                )
            )
            await db.flush()
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception("Failed to create quotation request for %s", payload.customer_email)
            raise

        logger.info(
            "Created quotation request %s (%s) for %s with %d/%d files",
            request.id,
            request.request_number,
            request.customer_email,
            len(request.files),
            len(attachments),
        )
        return to_read(request)

    async def _upload_attachment(
        self,
        request_id: int,
        attachment: Attachment,
        meta: AttachmentMetadata | None,
    ) -> QuotationRequestFile | None:
        """Upload one attachment; on storage failure log it and return None."""
        object_path = build_object_path(request_id, attachment.filename)
        try:
            uploaded: FileUploadResponse = await self._storage.upload(
                object_path, attachment.filename, attachment.content, attachment.content_type
            )
        except StorageError:
            logger.error(
                "Failed to upload file %s for quotation request %s, skipping",
                attachment.filename,
                request_id,
                exc_info=True,
            )
            return None

        return QuotationRequestFile(
            file_name=attachment.filename,
            object_name=uploaded.object_name,
            file_size=attachment.size,
            content_type=attachment.content_type,
            upload_service_file_id=uploaded.object_name,
            description=meta.description if meta else None,
            file_category=meta.file_category if meta else None,
        )

    # ── Reads ────────────────────────────────────────────────────────

    async def list_quotation_requests(
        self,
        db: AsyncSession,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        status: QuotationRequestStatus | None = None,
        priority: Priority | None = None,
        assigned_to: str | None = None,
    ) -> list[QuotationRequestRead]:
        """One page of requests, newest first. Page size is clamped to 100."""
        paging = Pagination(page=page, page_size=page_size)
        assigned_to = assigned_to if assigned_to and assigned_to.strip() else None
        key = list_cache_key(paging.page, paging.page_size, status, priority, assigned_to)

        cached = await self._cached_list(key)
        if cached is not None:
            return cached

        rows = await repository.list_requests(
            db,
            page=paging.page,
            page_size=paging.page_size,
            status=status.value if status else None,
            priority=priority.value if priority else None,
            assigned_to=assigned_to,
        )
        results = [to_read(row) for row in rows]
        await self._cache.set(key, QuotationRequestList.dump_json(results).decode(), self._cache_ttl)
        return results

    async def get_quotation_request(self, db: AsyncSession, request_id: int) -> QuotationRequestRead:
        key = request_cache_key(request_id)
        cached_raw = await self._cache.get(key)
        if cached_raw is not None:
            try:
                return QuotationRequestRead.model_validate_json(cached_raw)
            except ValidationError:
                logger.warning("Discarding unreadable cache entry %s", key)

        request = await repository.get_request(db, request_id)
        if request is None:
            raise NotFoundError.request(request_id)

        result = to_read(request)
        await self._cache.set(key, result.model_dump_json(), self._cache_ttl)
        return result

    async def get_by_request_number(self, db: AsyncSession, request_number: str) -> QuotationRequestRead:
        """Internal lookup by request number, hidden comments included."""
        request = await repository.get_request_by_number(db, request_number)
        if request is None:
            raise NotFoundError(f"Quotation request {request_number} not found")
        return to_read(request, visible_comments_only=False)

    async def list_by_status(
        self, db: AsyncSession, status: QuotationRequestStatus
    ) -> list[QuotationRequestRead]:
        """Every request currently in ``status``, hidden comments included."""
        key = status_cache_key(status)
        cached = await self._cached_list(key)
        if cached is not None:
            return cached

        rows = await repository.list_requests_by_status(db, status.value)
        results = [to_read(row, visible_comments_only=False) for row in rows]
        await self._cache.set(key, QuotationRequestList.dump_json(results).decode(), self._cache_ttl)
        return results

    async def get_by_customer_id(self, db: AsyncSession, customer_id: int) -> list[QuotationRequestRead]:
        rows = await repository.list_requests_by_customer_id(db, customer_id)
        return [to_read(row) for row in rows]

    async def get_by_customer_email(self, db: AsyncSession, email: str) -> list[QuotationRequestRead]:
        rows = await repository.list_requests_by_customer_email(db, email)
        return [to_read(row) for row in rows]

    async def _cached_list(self, key: str) -> list[QuotationRequestRead] | None:
        cached_raw = await self._cache.get(key)
        if cached_raw is None:
            return None
        try:
            return QuotationRequestList.validate_json(cached_raw)
        except ValidationError:
            logger.warning("Discarding unreadable cache entry %s", key)
            return None

    # ── Workflow ─────────────────────────────────────────────────────

    async def update_status(
        self,
        db: AsyncSession,
        request_id: int,
        status: QuotationRequestStatus,
        reason: str | None = None,
        changed_by: str | None = None,
    ) -> QuotationRequestRead:
        """Set the status unconditionally and record the change.

        Any status may follow any other. The milestone timestamp for the new
        status (if it has one) is stamped every time.
        """
        request = await self._load(db, request_id)

        old_status = request.status
        now = utcnow()
        request.status = status.value
        request.updated_at = now

        milestone = MILESTONE_FIELDS.get(status)
        if milestone is not None:
            setattr(request, milestone, now)

        request.status_history.append(
            QuotationRequestStatusHistory(
                from_status=old_status,
                to_status=status.value,
                changed_by_team_member=changed_by,
                change_reason=reason,
            )
        )
        await db.commit()
        await self._invalidate(request_id)

        logger.info(
            "Updated quotation request %s status from %s to %s by %s",
            request_id,
            old_status,
            status.value,
            changed_by,
        )
        return to_read(request)

    async def assign_to_team_member(
        self,
        db: AsyncSession,
        request_id: int,
        team_member_name: str,
        reason: str | None = None,
    ) -> QuotationRequestRead:
        """Label the request with a team member and leave a System comment."""
        request = await self._load(db, request_id)

        request.assigned_to_team_member = team_member_name
        request.updated_at = utcnow()

        content = f"Assigned to {team_member_name}."
        if reason:
            content = f"{content} {reason}"
        request.comments.append(
            QuotationRequestComment(
                author_name=SYSTEM_ACTOR,
                content=content,
                comment_type=CommentType.SYSTEM.value,
                is_visible=True,
            )
        )
        await db.commit()
        await self._invalidate(request_id)

        logger.info("Assigned quotation request %s to %s", request_id, team_member_name)
        return to_read(request)

    async def delete_quotation_request(self, db: AsyncSession, request_id: int) -> None:
        """Delete the aggregate, purging its storage objects first (best effort)."""
        request = await self._load(db, request_id)

        failed = [f.object_name for f in request.files if not await self._delete_object(f.object_name)]
        if failed:
            logger.warning(
                "Quotation request %s deleted with %d storage objects left behind: %s",
                request_id,
                len(failed),
                failed,
            )

        await db.delete(request)
        await db.commit()
        await self._invalidate(request_id)
        logger.info("Deleted quotation request %s", request_id)

    # ── Comments ─────────────────────────────────────────────────────

    async def add_comment(
        self,
        db: AsyncSession,
        request_id: int,
        content: str,
        comment_type: CommentType = CommentType.INTERNAL,
        is_visible: bool = True,
        author_name: str = "Unknown",
        author_email: str | None = None,
    ) -> CommentRead:
        await self._ensure_exists(db, request_id)

        comment = QuotationRequestComment(
            quotation_request_id=request_id,
            author_name=author_name,
            author_email=author_email,
            content=content,
            comment_type=comment_type.value,
            is_visible=is_visible,
        )
        db.add(comment)
        await db.commit()
        await self._invalidate(request_id)

        logger.info("Added comment to quotation request %s by %s", request_id, author_name)
        return CommentRead.model_validate(comment)

    async def get_comments(self, db: AsyncSession, request_id: int) -> list[CommentRead]:
        """Visible comments only, oldest first."""
        await self._ensure_exists(db, request_id)
        comments = await repository.list_comments(db, request_id, visible_only=True)
        return [CommentRead.model_validate(c) for c in comments]

    async def delete_comment(self, db: AsyncSession, request_id: int, comment_id: int) -> None:
        comment = await repository.get_comment(db, request_id, comment_id)
        if comment is None:
            raise NotFoundError.child("Comment", comment_id, request_id)

        await db.delete(comment)
        await db.commit()
        await self._invalidate(request_id)
        logger.info("Deleted comment %s from quotation request %s", comment_id, request_id)

    # ── Files ────────────────────────────────────────────────────────

    async def get_files(self, db: AsyncSession, request_id: int) -> list[FileRead]:
        await self._ensure_exists(db, request_id)
        files = await repository.list_files(db, request_id)
        return [FileRead.model_validate(f) for f in files]

    async def get_file(self, db: AsyncSession, request_id: int, file_id: int) -> FileRead:
        return FileRead.model_validate(await self._load_file(db, request_id, file_id))

    async def download_file(self, db: AsyncSession, request_id: int, file_id: int) -> FileDownload:
        """Fetch an attachment's bytes. A row whose object is gone counts as not found."""
        file_row = await self._load_file(db, request_id, file_id)
        download = await self._storage.download(file_row.object_name)
        if download is None:
            raise NotFoundError(f"Stored object for file {file_id} not found")
        return download

    async def get_file_signed_url(
        self,
        db: AsyncSession,
        request_id: int,
        file_id: int,
        expires_in: timedelta = timedelta(hours=1),
    ) -> SignedUrlRead:
        file_row = await self._load_file(db, request_id, file_id)
        url = await self._storage.sign(file_row.object_name, expires_in)
        # The URL lives for the rounded-up hours the upload service was asked for
        return SignedUrlRead(url=url, expires_at=utcnow() + timedelta(hours=signed_url_hours(expires_in)))

    async def delete_file(self, db: AsyncSession, request_id: int, file_id: int) -> None:
        """Remove an attachment. The row goes even if the storage delete fails."""
        file_row = await self._load_file(db, request_id, file_id)
        await self._delete_object(file_row.object_name)

        await db.delete(file_row)
        await db.commit()
        await self._invalidate(request_id)
        logger.info("Deleted file %s from quotation request %s", file_id, request_id)

    # ── Status history ───────────────────────────────────────────────

    async def get_status_history(self, db: AsyncSession, request_id: int) -> list[StatusHistoryRead]:
        await self._ensure_exists(db, request_id)
        history = await repository.list_status_history(db, request_id)
        return [StatusHistoryRead.model_validate(h) for h in history]

    # ── Internals ────────────────────────────────────────────────────

    async def _load(self, db: AsyncSession, request_id: int) -> QuotationRequest:
        request = await repository.get_request(db, request_id)
        if request is None:
            raise NotFoundError.request(request_id)
        return request

    async def _ensure_exists(self, db: AsyncSession, request_id: int) -> None:
        if not await repository.request_exists(db, request_id):
            raise NotFoundError.request(request_id)

    async def _load_file(self, db: AsyncSession, request_id: int, file_id: int) -> QuotationRequestFile:
        file_row = await repository.get_file(db, request_id, file_id)
        if file_row is None:
            raise NotFoundError.child("File", file_id, request_id)
        return file_row

    async def _delete_object(self, object_name: str) -> bool:
        """Best-effort storage delete. Returns False if the call failed."""
        try:
            await self._storage.delete(object_name)
        except StorageError:
            logger.warning("Failed to delete file %s from storage service", object_name, exc_info=True)
            return False
        return True

    async def _invalidate(self, request_id: int) -> None:
        # List and by-status pages are left to expire on their own.
        await self._cache.remove(request_cache_key(request_id))
