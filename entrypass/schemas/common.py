"""
Common schema types used across the API.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error body."""

    ok: bool = False
    error: str
    timestamp: str
    field: Optional[str] = None
    lockedUntil: Optional[int] = None
    retryAfter: Optional[float] = None


class HealthCheck(BaseModel):
    status: str
    responseTime: Optional[int] = None
    error: Optional[str] = None
    missingVars: Optional[List[str]] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"  # healthy | degraded | unhealthy
    timestamp: str
    checks: Dict[str, HealthCheck]
    limiter: Dict[str, Any] = {}
    uptime: int
    version: str
