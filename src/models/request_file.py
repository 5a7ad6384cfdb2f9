"""QuotationRequestFile model — metadata for an attachment held in remote storage."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.quotation_request import QuotationRequest


class QuotationRequestFile(TimestampMixin, Base):
    """An attachment uploaded with a quotation request.

    The blob itself lives in the upload service under `object_name`; this row
    only records where it is.
    """

    __tablename__ = "quotation_request_files"

    # Foreign keys
    quotation_request_id: Mapped[int] = mapped_column(
        ForeignKey("quotation_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )

    file_name: Mapped[str] = mapped_column(String(255), nullable=False, comment="Name as supplied by the client")
    object_name: Mapped[str] = mapped_column(String(500), nullable=False, comment="Opaque storage object path")
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    content_type: Mapped[str | None] = mapped_column(String(100))
    upload_service_file_id: Mapped[str | None] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(String(500))
    file_category: Mapped[str | None] = mapped_column(String(50))

    # Relationships
    quotation_request: Mapped[QuotationRequest] = relationship("QuotationRequest", back_populates="files")

    def __repr__(self) -> str:
        return f"<QuotationRequestFile id={self.id} object={self.object_name}>"
