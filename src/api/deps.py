"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from functools import lru_cache

from src.cache.result_cache import build_result_cache
from src.integrations.storage.client import upload_client
from src.quotations.service import QuotationRequestService


@lru_cache(maxsize=1)
def get_quotation_service() -> QuotationRequestService:
    """Process-wide service instance; the result cache is built once here."""
    return QuotationRequestService(storage=upload_client, cache=build_result_cache())
