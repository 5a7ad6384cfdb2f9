"""Database query functions for quotation requests and their children.

The service calls these instead of building queries inline so the query
shapes (eager loads, ordering, parent scoping) live in one place.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select

from src.models.comment import QuotationRequestComment
from src.models.quotation_request import QuotationRequest
from src.models.request_file import QuotationRequestFile
from src.models.status_history import QuotationRequestStatusHistory


def _aggregate_query() -> Select[tuple[QuotationRequest]]:
    """SELECT a request with all three child collections eagerly loaded."""
    return select(QuotationRequest).options(
        selectinload(QuotationRequest.files),
        selectinload(QuotationRequest.comments),
        selectinload(QuotationRequest.status_history),
    )


def _newest_first(query: Select[tuple[QuotationRequest]]) -> Select[tuple[QuotationRequest]]:
    return query.order_by(QuotationRequest.created_at.desc(), QuotationRequest.id.desc())


async def get_request(db: AsyncSession, request_id: int) -> QuotationRequest | None:
    """Load one aggregate by id, children included."""
    result = await db.execute(_aggregate_query().where(QuotationRequest.id == request_id))
    return result.scalars().first()


async def get_request_by_number(db: AsyncSession, request_number: str) -> QuotationRequest | None:
    """Load one aggregate by its human-readable request number."""
    result = await db.execute(
        _aggregate_query().where(QuotationRequest.request_number == request_number)
    )
    return result.scalars().first()


async def request_exists(db: AsyncSession, request_id: int) -> bool:
    """Cheap existence check used before child-collection reads."""
    result = await db.execute(select(QuotationRequest.id).where(QuotationRequest.id == request_id))
    return result.scalar() is not None


async def list_requests(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    status: str | None = None,
    priority: str | None = None,
    assigned_to: str | None = None,
) -> list[QuotationRequest]:
    """Filtered page of aggregates, newest first.

    `assigned_to` is an exact, case-sensitive match.
    """
    query = _aggregate_query()
    if status:
        query = query.where(QuotationRequest.status == status)
    if priority:
        query = query.where(QuotationRequest.priority == priority)
    if assigned_to:
        query = query.where(QuotationRequest.assigned_to_team_member == assigned_to)

    query = _newest_first(query).offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_requests_by_status(db: AsyncSession, status: str) -> list[QuotationRequest]:
    result = await db.execute(_newest_first(_aggregate_query().where(QuotationRequest.status == status)))
    return list(result.scalars().all())


async def list_requests_by_customer_id(db: AsyncSession, customer_id: int) -> list[QuotationRequest]:
    result = await db.execute(
        _newest_first(_aggregate_query().where(QuotationRequest.customer_id == customer_id))
    )
    return list(result.scalars().all())


async def list_requests_by_customer_email(db: AsyncSession, email: str) -> list[QuotationRequest]:
    """Case-insensitive email match."""
    result = await db.execute(
        _newest_first(
            _aggregate_query().where(func.lower(QuotationRequest.customer_email) == email.strip().lower())
        )
    )
    return list(result.scalars().all())


# ── Child collections ────────────────────────────────────────────────


async def list_comments(
    db: AsyncSession, request_id: int, visible_only: bool = True
) -> list[QuotationRequestComment]:
    query = select(QuotationRequestComment).where(QuotationRequestComment.quotation_request_id == request_id)
    if visible_only:
        query = query.where(QuotationRequestComment.is_visible.is_(True))
    result = await db.execute(
        query.order_by(QuotationRequestComment.created_at.asc(), QuotationRequestComment.id.asc())
    )
    return list(result.scalars().all())


async def list_files(db: AsyncSession, request_id: int) -> list[QuotationRequestFile]:
    result = await db.execute(
        select(QuotationRequestFile)
        .where(QuotationRequestFile.quotation_request_id == request_id)
        .order_by(QuotationRequestFile.created_at.asc(), QuotationRequestFile.id.asc())
    )
    return list(result.scalars().all())


async def list_status_history(db: AsyncSession, request_id: int) -> list[QuotationRequestStatusHistory]:
    result = await db.execute(
        select(QuotationRequestStatusHistory)
        .where(QuotationRequestStatusHistory.quotation_request_id == request_id)
        .order_by(QuotationRequestStatusHistory.created_at.asc(), QuotationRequestStatusHistory.id.asc())
    )
    return list(result.scalars().all())


async def get_comment(db: AsyncSession, request_id: int, comment_id: int) -> QuotationRequestComment | None:
    """Comment lookup scoped by parent: another request's comment is not found."""
    result = await db.execute(
        select(QuotationRequestComment).where(
            QuotationRequestComment.id == comment_id,
            QuotationRequestComment.quotation_request_id == request_id,
        )
    )
    return result.scalars().first()


async def get_file(db: AsyncSession, request_id: int, file_id: int) -> QuotationRequestFile | None:
    """File lookup scoped by parent: another request's file is not found."""
    result = await db.execute(
        select(QuotationRequestFile).where(
            QuotationRequestFile.id == file_id,
            QuotationRequestFile.quotation_request_id == request_id,
        )
    )
    return result.scalars().first()
