"""Quotation request REST API (v1).

POST / is public and tightly rate limited; everything else requires staff
credentials (HTTP Basic) and uses the staff rate limit.
"""
# ruff: noqa: B008

from __future__ import annotations

import logging
from datetime import timedelta
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_quotation_service
from src.db.engine import get_session
from src.models.enums import Priority, QuotationRequestStatus
from src.quotations.service import Attachment, QuotationRequestService
from src.schemas.quotation import (
    DEFAULT_PAGE_SIZE,
    AssignmentRequest,
    CommentCreate,
    CommentRead,
    FileRead,
    QuotationRequestCreate,
    QuotationRequestRead,
    SignedUrlRead,
    StatusHistoryRead,
    StatusUpdate,
)
from src.security.auth import StaffIdentity, verify_staff
from src.security.rate_limiter import public_rate_limit, staff_rate_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/quotation-requests", tags=["quotation-requests"])


def attachment_disposition(filename: str) -> str:
    """Content-Disposition for a download, safe for any file name.

    Latin-1 header encoding cannot carry most names, so the real name goes in
    the RFC 5987 `filename*` parameter and `filename` gets a printable ASCII
    fallback with quotes and backslashes removed.
    """
    fallback = "".join(c for c in filename if c.isascii() and c.isprintable() and c not in '"\\').strip()
    return f"attachment; filename=\"{fallback or 'download'}\"; filename*=UTF-8''{quote(filename, safe='')}"


# ── Public submission ────────────────────────────────────────────────


@router.post(
    "",
    response_model=QuotationRequestRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(public_rate_limit)],
)
async def create_quotation_request(
    response: Response,
    request_json: str = Form(..., alias="request", description="QuotationRequestCreate as JSON"),
    files: list[UploadFile] | None = File(default=None),
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
) -> QuotationRequestRead:
    """Submit a quotation request with optional attachments (multipart/form-data)."""
    try:
        payload = QuotationRequestCreate.model_validate_json(request_json)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False, include_context=False)) from exc
    attachments = [
        Attachment(
            filename=upload.filename or "attachment",
            content=await upload.read(),
            content_type=upload.content_type,
        )
        for upload in files or []
    ]
    created = await service.create_quotation_request(db, payload, attachments)
    response.headers["Location"] = f"{router.prefix}/{created.id}"
    return created


# ── Staff: listing & lookup ──────────────────────────────────────────


@router.get("", response_model=list[QuotationRequestRead], dependencies=[Depends(staff_rate_limit)])
async def list_quotation_requests(
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, alias="pageSize"),
    status_filter: QuotationRequestStatus | None = Query(None, alias="status"),
    priority: Priority | None = Query(None),
    assigned_to: str | None = Query(None, alias="assignedTo"),
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> list[QuotationRequestRead]:
    return await service.list_quotation_requests(
        db,
        page=page,
        page_size=page_size,
        status=status_filter,
        priority=priority,
        assigned_to=assigned_to,
    )


@router.get("/by-number/{request_number}", response_model=QuotationRequestRead, dependencies=[Depends(staff_rate_limit)])
async def get_by_request_number(
    request_number: str,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> QuotationRequestRead:
    return await service.get_by_request_number(db, request_number)


@router.get(
    "/by-status/{status_value}", response_model=list[QuotationRequestRead], dependencies=[Depends(staff_rate_limit)]
)
async def list_by_status(
    status_value: QuotationRequestStatus,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> list[QuotationRequestRead]:
    return await service.list_by_status(db, status_value)


@router.get(
    "/by-customer/{customer_id}", response_model=list[QuotationRequestRead], dependencies=[Depends(staff_rate_limit)]
)
async def list_by_customer(
    customer_id: int,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> list[QuotationRequestRead]:
    return await service.get_by_customer_id(db, customer_id)


@router.get("/by-email/{email}", response_model=list[QuotationRequestRead], dependencies=[Depends(staff_rate_limit)])
async def list_by_email(
    email: str,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> list[QuotationRequestRead]:
    return await service.get_by_customer_email(db, email)


@router.get("/{request_id}", response_model=QuotationRequestRead, dependencies=[Depends(staff_rate_limit)])
async def get_quotation_request(
    request_id: int,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> QuotationRequestRead:
    return await service.get_quotation_request(db, request_id)


# ── Staff: workflow ──────────────────────────────────────────────────


@router.put("/{request_id}/status", response_model=QuotationRequestRead, dependencies=[Depends(staff_rate_limit)])
async def update_status(
    request_id: int,
    body: StatusUpdate,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> QuotationRequestRead:
    return await service.update_status(
        db, request_id, body.status, reason=body.reason, changed_by=staff.email or staff.name
    )


@router.put("/{request_id}/assign", response_model=QuotationRequestRead, dependencies=[Depends(staff_rate_limit)])
async def assign_quotation_request(
    request_id: int,
    body: AssignmentRequest,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> QuotationRequestRead:
    return await service.assign_to_team_member(
        db, request_id, body.team_member_name, reason=body.assignment_reason
    )


@router.delete(
    "/{request_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(staff_rate_limit)]
)
async def delete_quotation_request(
    request_id: int,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> Response:
    await service.delete_quotation_request(db, request_id)
    logger.info("Quotation request %s deleted by %s", request_id, staff.name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Staff: comments ──────────────────────────────────────────────────


@router.post(
    "/{request_id}/comments",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(staff_rate_limit)],
)
async def add_comment(
    request_id: int,
    body: CommentCreate,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> CommentRead:
    return await service.add_comment(
        db,
        request_id,
        content=body.content,
        comment_type=body.comment_type,
        is_visible=body.is_visible,
        author_name=staff.name,
        author_email=staff.email,
    )


@router.get("/{request_id}/comments", response_model=list[CommentRead], dependencies=[Depends(staff_rate_limit)])
async def get_comments(
    request_id: int,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> list[CommentRead]:
    return await service.get_comments(db, request_id)


@router.delete(
    "/{request_id}/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(staff_rate_limit)],
)
async def delete_comment(
    request_id: int,
    comment_id: int,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> Response:
    await service.delete_comment(db, request_id, comment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Staff: files ─────────────────────────────────────────────────────


@router.get("/{request_id}/files", response_model=list[FileRead], dependencies=[Depends(staff_rate_limit)])
async def get_files(
    request_id: int,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> list[FileRead]:
    return await service.get_files(db, request_id)


@router.get("/{request_id}/files/{file_id}/download", dependencies=[Depends(staff_rate_limit)])
async def download_file(
    request_id: int,
    file_id: int,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> Response:
    download = await service.download_file(db, request_id, file_id)
    return Response(
        content=download.content,
        media_type=download.content_type,
        headers={"Content-Disposition": attachment_disposition(download.file_name)},
    )


@router.get(
    "/{request_id}/files/{file_id}/signed-url",
    response_model=SignedUrlRead,
    dependencies=[Depends(staff_rate_limit)],
)
async def get_file_signed_url(
    request_id: int,
    file_id: int,
    expires_in_hours: int = Query(1, ge=1, le=168, alias="expiresInHours"),
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> SignedUrlRead:
    return await service.get_file_signed_url(db, request_id, file_id, timedelta(hours=expires_in_hours))


@router.delete(
    "/{request_id}/files/{file_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(staff_rate_limit)],
)
async def delete_file(
    request_id: int,
    file_id: int,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> Response:
    await service.delete_file(db, request_id, file_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Staff: status history ────────────────────────────────────────────


@router.get(
    "/{request_id}/status-history",
    response_model=list[StatusHistoryRead],
    dependencies=[Depends(staff_rate_limit)],
)
async def get_status_history(
    request_id: int,
    db: AsyncSession = Depends(get_session),
    service: QuotationRequestService = Depends(get_quotation_service),
    staff: StaffIdentity = Depends(verify_staff),
) -> list[StatusHistoryRead]:
    return await service.get_status_history(db, request_id)
