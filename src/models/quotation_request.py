"""QuotationRequest model — the aggregate root for a customer's quote request.

Owns its files, comments, and status history by composition: deleting a
request deletes all three (ORM cascade plus ON DELETE CASCADE foreign keys).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin
from src.models.enums import Priority, QuotationRequestStatus

if TYPE_CHECKING:
    from src.models.comment import QuotationRequestComment
    from src.models.request_file import QuotationRequestFile
    from src.models.status_history import QuotationRequestStatusHistory


class QuotationRequest(TimestampMixin, Base):
    """A quotation request submitted by a (possibly anonymous) customer."""

    __tablename__ = "quotation_requests"
    __table_args__ = (
        UniqueConstraint("request_number", name="uq_quotation_requests_request_number"),
        Index("ix_quotation_requests_created_at", "created_at"),
    )

    request_number: Mapped[str] = mapped_column(String(50), nullable=False)

    # Customer identity
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(254), nullable=False, index=True)
    customer_phone: Mapped[str | None] = mapped_column(String(20))
    company_name: Mapped[str | None] = mapped_column(String(200))
    job_title: Mapped[str | None] = mapped_column(String(100))
    customer_id: Mapped[int | None] = mapped_column(
        Integer, index=True, comment="External customer account id, null for guest submissions"
    )

    # Request content
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    requirements: Mapped[str | None] = mapped_column(String(500))
    industry: Mapped[str | None] = mapped_column(String(50))
    project_timeline: Mapped[str | None] = mapped_column(String(100))
    estimated_budget: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    preferred_contact_method: Mapped[str | None] = mapped_column(String(50))

    # Workflow
    status: Mapped[str] = mapped_column(
        String(30), default=QuotationRequestStatus.NEW.value, nullable=False, index=True
    )
    priority: Mapped[str] = mapped_column(
        String(20), default=Priority.MEDIUM.value, nullable=False, index=True
    )
    assigned_to_team_member: Mapped[str | None] = mapped_column(
        String(100), index=True, comment="Free-text label, not a user reference"
    )

    # Milestones, set by status transitions
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    quoted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    files: Mapped[list[QuotationRequestFile]] = relationship(
        "QuotationRequestFile",
        back_populates="quotation_request",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="QuotationRequestFile.created_at",
    )
    comments: Mapped[list[QuotationRequestComment]] = relationship(
        "QuotationRequestComment",
        back_populates="quotation_request",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="QuotationRequestComment.created_at",
    )
    status_history: Mapped[list[QuotationRequestStatusHistory]] = relationship(
        "QuotationRequestStatusHistory",
        back_populates="quotation_request",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="QuotationRequestStatusHistory.created_at",
    )

    def __repr__(self) -> str:
        return f"<QuotationRequest id={self.id} number={self.request_number} status={self.status}>"
