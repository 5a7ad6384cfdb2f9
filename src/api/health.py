"""Liveness and readiness endpoints."""
# ruff: noqa: B008

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.engine import get_session, ping_database

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotation-requests", tags=["health"])


@router.get("/liveness", response_class=PlainTextResponse)
async def liveness() -> str:
    return "Healthy"


@router.get("/readiness")
async def readiness(db: AsyncSession = Depends(get_session)) -> JSONResponse:
    """Ready when PostgreSQL answers a trivial query."""
    try:
        latency_ms = await ping_database(db)
    except Exception:
        logger.exception("Readiness check failed: database unreachable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "Unhealthy", "database": {"status": "error"}},
        )
    return JSONResponse(content={"status": "Healthy", "database": {"status": "ok", "latency_ms": latency_ms}})
