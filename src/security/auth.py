"""HTTP Basic Auth for staff endpoints.

Single shared password from ADMIN_WEB_PASSWORD env var. The username is
taken as the staff member's identity: it becomes `changedBy` on status
changes and the author of staff comments.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from src.config import settings

security = HTTPBasic()


@dataclass(frozen=True)
class StaffIdentity:
    """Who is calling a staff endpoint."""

    name: str
    email: str | None = None


async def verify_staff(
    credentials: HTTPBasicCredentials = Depends(security),  # noqa: B008
) -> StaffIdentity:
    """FastAPI dependency — verify HTTP Basic credentials.

    Returns the caller's identity on success, raises 401 on failure.
    """
    expected = settings.security.admin_web_password
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="ADMIN_WEB_PASSWORD not configured",
        )

    password_ok = secrets.compare_digest(
        credentials.password.encode("utf-8"),
        expected.encode("utf-8"),
    )
    # Any username is accepted (single shared password)
    if not password_ok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    username = credentials.username.strip() or "unknown"
    return StaffIdentity(name=username, email=username if "@" in username else None)
