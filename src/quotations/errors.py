"""Errors raised by the quotation request service."""

from __future__ import annotations


class NotFoundError(Exception):
    """A quotation request, or a child scoped to one, does not exist."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @classmethod
    def request(cls, request_id: int) -> NotFoundError:
        return cls(f"Quotation request with ID {request_id} not found")

    @classmethod
    def child(cls, kind: str, child_id: int, request_id: int) -> NotFoundError:
        return cls(f"{kind} with ID {child_id} not found for quotation request {request_id}")
