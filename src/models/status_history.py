"""QuotationRequestStatusHistory model — append-only trail of status changes.

Rows are never updated or deleted on their own; they go away only when the
parent request is deleted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.quotation_request import QuotationRequest


class QuotationRequestStatusHistory(TimestampMixin, Base):
    """One status change (or the New -> New seed entry written at creation)."""

    __tablename__ = "quotation_request_status_history"

    # Foreign keys
    quotation_request_id: Mapped[int] = mapped_column(
        ForeignKey("quotation_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )

    from_status: Mapped[str] = mapped_column(String(30), nullable=False)
    to_status: Mapped[str] = mapped_column(String(30), nullable=False)
    changed_by_team_member: Mapped[str | None] = mapped_column(String(100))
    change_reason: Mapped[str | None] = mapped_column(String(500))

    # Relationships
    quotation_request: Mapped[QuotationRequest] = relationship(
        "QuotationRequest", back_populates="status_history"
    )

    def __repr__(self) -> str:
        return f"<QuotationRequestStatusHistory {self.from_status} -> {self.to_status}>"
