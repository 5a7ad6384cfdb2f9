"""Pydantic schemas for the quotation request API.

Input schemas validate raw payloads before they reach the service; read
schemas are what the service returns and what gets cached. All of them use
camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from src.models.enums import CommentType, Priority, QuotationRequestStatus

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


class CamelModel(BaseModel):
    """Base for API schemas — camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _strip_required(v: str) -> str:
    stripped = v.strip()
    if not stripped:
        msg = "must not be blank"
        raise ValueError(msg)
    return stripped


# ── Input ────────────────────────────────────────────────────────────


class AttachmentMetadata(CamelModel):
    """Optional per-file metadata, paired positionally with uploaded files."""

    file_name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=500)
    file_category: str | None = Field(default=None, max_length=50)


class QuotationRequestCreate(CamelModel):
    """Public submission payload."""

    customer_name: str = Field(min_length=1, max_length=200)
    customer_email: EmailStr
    customer_phone: str | None = Field(default=None, max_length=20)
    company_name: str | None = Field(default=None, max_length=200)
    job_title: str | None = Field(default=None, max_length=100)
    subject: str = Field(min_length=1, max_length=500)
    description: str = Field(min_length=1, max_length=5000)
    requirements: str | None = Field(default=None, max_length=500)
    industry: str | None = Field(default=None, max_length=50)
    project_timeline: str | None = Field(default=None, max_length=100)
    estimated_budget: Decimal | None = Field(default=None, ge=0, le=Decimal("999999999.99"), decimal_places=2)
    preferred_contact_method: str | None = Field(default=None, max_length=50)
    priority: Priority = Priority.MEDIUM
    customer_id: int | None = None
    files: list[AttachmentMetadata] | None = None

    @field_validator("customer_name", "subject", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Required free text must contain something besides whitespace."""
        return _strip_required(v)


class StatusUpdate(CamelModel):
    """Staff status change."""

    status: QuotationRequestStatus
    reason: str | None = Field(default=None, max_length=500)


class AssignmentRequest(CamelModel):
    """Staff assignment to a team member (a free-text label)."""

    team_member_name: str = Field(min_length=1, max_length=100)
    assignment_reason: str | None = Field(default=None, max_length=500)

    @field_validator("team_member_name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _strip_required(v)


class CommentCreate(CamelModel):
    """Staff comment."""

    content: str = Field(min_length=1, max_length=2000)
    comment_type: CommentType = CommentType.INTERNAL
    is_visible: bool = True

    @field_validator("content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _strip_required(v)


class Pagination(BaseModel):
    """1-based paging; oversized pages are clamped, not rejected."""

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)

    @field_validator("page_size")
    @classmethod
    def clamp_page_size(cls, v: int) -> int:
        return min(v, MAX_PAGE_SIZE)


# ── Read models ──────────────────────────────────────────────────────


class ReadModel(CamelModel):
    """Base for read schemas built from ORM rows."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class FileRead(ReadModel):
    id: int
    file_name: str
    object_name: str
    file_size: int
    content_type: str | None = None
    upload_service_file_id: str | None = None
    description: str | None = None
    file_category: str | None = None
    created_at: datetime


class CommentRead(ReadModel):
    id: int
    author_name: str
    author_email: str | None = None
    content: str
    comment_type: CommentType
    is_visible: bool
    created_at: datetime


class StatusHistoryRead(ReadModel):
    id: int
    from_status: QuotationRequestStatus
    to_status: QuotationRequestStatus
    changed_by_team_member: str | None = None
    change_reason: str | None = None
    created_at: datetime


class QuotationRequestRead(ReadModel):
    """The hydrated aggregate as returned by the service."""

    id: int
    request_number: str
    customer_name: str
    customer_email: str
    customer_phone: str | None = None
    company_name: str | None = None
    job_title: str | None = None
    subject: str
    description: str
    requirements: str | None = None
    industry: str | None = None
    project_timeline: str | None = None
    estimated_budget: Decimal | None = None
    preferred_contact_method: str | None = None
    status: QuotationRequestStatus
    priority: Priority
    assigned_to_team_member: str | None = None
    reviewed_at: datetime | None = None
    quoted_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    customer_id: int | None = None
    files: list[FileRead] = []
    comments: list[CommentRead] = []
    status_history: list[StatusHistoryRead] = []


class SignedUrlRead(CamelModel):
    url: str
    expires_at: datetime


# Used to (de)serialize cached list results
QuotationRequestList = TypeAdapter(list[QuotationRequestRead])
