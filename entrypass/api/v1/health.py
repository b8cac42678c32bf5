"""
Health endpoint: configuration, database and mail provider checks.
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from entrypass.api.deps import DbSession, Guard
from entrypass.config import get_settings
from entrypass.errors import UpstreamError
from entrypass.kernel.store import ParticipantStore
from entrypass.logging_config import get_logger
from entrypass.schemas.common import HealthCheck, HealthResponse

logger = get_logger(__name__)

router = APIRouter()

_started = time.monotonic()


def _downgrade(status: str) -> str:
    return "degraded" if status == "healthy" else "unhealthy"


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession, guard: Guard):
    """Report service health. 503 when unhealthy."""
    settings = get_settings()
    overall = "healthy"
    checks = {}

    missing = settings.missing_required()
    if missing:
        checks["environment"] = HealthCheck(status="error", missingVars=missing)
        overall = "unhealthy"
    else:
        checks["environment"] = HealthCheck(status="ok")

    start = time.perf_counter()
    try:
        await ParticipantStore(db).count_participants()
        checks["database"] = HealthCheck(
            status="ok", responseTime=int((time.perf_counter() - start) * 1000)
        )
    except (UpstreamError, SQLAlchemyError) as e:
        logger.error("Health check: database unavailable: %s", e)
        checks["database"] = HealthCheck(
            status="error",
            responseTime=int((time.perf_counter() - start) * 1000),
            error="Database unavailable",
        )
        overall = _downgrade(overall)

    api_key = settings.resend_api_key
    if not api_key:
        checks["email"] = HealthCheck(status="error", error="Missing email API key")
        overall = "unhealthy"
    elif not api_key.startswith("re_"):
        checks["email"] = HealthCheck(status="error", error="Invalid API key format")
        overall = _downgrade(overall)
    else:
        checks["email"] = HealthCheck(status="ok")

    response = HealthResponse(
        status=overall,
        timestamp=datetime.now(timezone.utc).isoformat(),
        checks=checks,
        limiter=guard.snapshot(),
        uptime=int((time.monotonic() - _started) * 1000),
        version=settings.version,
    )
    return JSONResponse(
        status_code=503 if overall == "unhealthy" else 200,
        content=response.model_dump(exclude_none=True),
        headers={"Cache-Control": "no-cache"},
    )
