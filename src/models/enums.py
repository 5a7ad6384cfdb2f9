"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization. Values are the names the
public API accepts and returns; columns store them as plain strings.
"""

from __future__ import annotations

from enum import Enum


class QuotationRequestStatus(str, Enum):
    """Where a quotation request sits in the staff workflow.

    Flat enumeration: any status may follow any other. ACCEPTED, REJECTED and
    CANCELLED are conventionally terminal but nothing enforces it.
    """

    NEW = "New"
    IN_REVIEW = "InReview"
    ADDITIONAL_INFO_REQUIRED = "AdditionalInfoRequired"
    UNDER_EVALUATION = "UnderEvaluation"
    QUOTATION_PREPARING = "QuotationPreparing"
    QUOTED = "Quoted"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"
    ON_HOLD = "OnHold"


class Priority(str, Enum):
    """Triage priority set by the customer at submission."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class CommentType(str, Enum):
    """Who a comment is meant for."""

    INTERNAL = "Internal"
    CUSTOMER = "Customer"
    SYSTEM = "System"  # written by the service itself (e.g. assignment notes)
