"""SQLAlchemy ORM models for the quotation request service.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from src.models.base import Base
from src.models.comment import QuotationRequestComment
from src.models.enums import CommentType, Priority, QuotationRequestStatus
from src.models.quotation_request import QuotationRequest
from src.models.request_file import QuotationRequestFile
from src.models.status_history import QuotationRequestStatusHistory

__all__ = [
    # Base
    "Base",
    # Models
    "QuotationRequest",
    "QuotationRequestFile",
    "QuotationRequestComment",
    "QuotationRequestStatusHistory",
    # Enums
    "QuotationRequestStatus",
    "Priority",
    "CommentType",
]
