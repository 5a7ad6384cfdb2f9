"""FastAPI application entry point — wires everything together.

Usage:
    python -m src.main
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from src.api import health, quotations
from src.api.errors import register_exception_handlers
from src.config import settings
from src.db.engine import db_lifespan

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting quotation request service (env=%s)", settings.environment)

    async with db_lifespan():
        logger.info("Database initialized")
        logger.info(
            "Upload service at %s, result cache backend=%s ttl=%ss",
            settings.storage.upload_service_base_url,
            settings.cache.cache_backend,
            settings.cache.cache_ttl_seconds,
        )
        if not settings.security.admin_web_password:
            logger.warning("ADMIN_WEB_PASSWORD not set — staff endpoints will answer 503")

        try:
            yield
        finally:
            logger.info("Shutting down quotation request service...")

    logger.info("Quotation request service shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────


def create_app() -> FastAPI:
    app = FastAPI(
        title="Quotation Request Service",
        description="Customer quotation request intake and staff administration",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/quotation-requests/docs",
        openapi_url=None if settings.is_production else "/quotation-requests/openapi.json",
    )
    register_exception_handlers(app)
    app.include_router(quotations.router)
    app.include_router(health.router)
    return app


app = create_app()


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
