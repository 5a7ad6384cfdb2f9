"""Security module — staff authentication and rate limiting."""

from src.security.auth import StaffIdentity, verify_staff
from src.security.rate_limiter import public_rate_limit, rate_limiter, staff_rate_limit

__all__ = ["StaffIdentity", "verify_staff", "rate_limiter", "public_rate_limit", "staff_rate_limit"]
