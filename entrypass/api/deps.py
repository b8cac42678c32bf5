"""
FastAPI dependencies for database sessions, collaborators and client info.
"""

from typing import Annotated, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from entrypass.database import get_db
from entrypass.engines.entry_pass import EntryPassService
from entrypass.engines.guard import AbuseGuard, get_abuse_guard
from entrypass.engines.notifications import Mailer, ResendMailer
from entrypass.kernel.identity import AdminGate
from entrypass.kernel.store import ParticipantStore

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_request_id(request: Request) -> Optional[str]:
    """Get request correlation ID (set by RequestIdMiddleware)."""
    return getattr(request.state, "request_id", None)


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


def get_user_agent(request: Request) -> str:
    return request.headers.get("user-agent") or ""


def get_guard() -> AbuseGuard:
    return get_abuse_guard()


def get_admin_gate() -> AdminGate:
    return AdminGate()


def get_mailer() -> Mailer:
    return ResendMailer()


Guard = Annotated[AbuseGuard, Depends(get_guard)]
AdminGateDep = Annotated[AdminGate, Depends(get_admin_gate)]


async def get_entry_pass_service(
    db: DbSession,
    guard: Guard,
    mailer: Annotated[Mailer, Depends(get_mailer)],
) -> EntryPassService:
    return EntryPassService(ParticipantStore(db), guard=guard, mailer=mailer)


Service = Annotated[EntryPassService, Depends(get_entry_pass_service)]
