"""QuotationRequestComment model — staff, customer, and system notes on a request."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin
from src.models.enums import CommentType

if TYPE_CHECKING:
    from src.models.quotation_request import QuotationRequest


class QuotationRequestComment(TimestampMixin, Base):
    """A comment attached to a quotation request.

    Hidden comments (is_visible=False) only show up in internal views.
    """

    __tablename__ = "quotation_request_comments"

    # Foreign keys
    quotation_request_id: Mapped[int] = mapped_column(
        ForeignKey("quotation_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )

    author_name: Mapped[str] = mapped_column(String(200), nullable=False)
    author_email: Mapped[str | None] = mapped_column(String(254))
    content: Mapped[str] = mapped_column(Text, nullable=False)
    comment_type: Mapped[str] = mapped_column(
        String(20), default=CommentType.INTERNAL.value, nullable=False
    )
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    quotation_request: Mapped[QuotationRequest] = relationship("QuotationRequest", back_populates="comments")

    def __repr__(self) -> str:
        return f"<QuotationRequestComment id={self.id} type={self.comment_type} visible={self.is_visible}>"
