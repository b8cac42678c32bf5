"""
Pydantic schemas for API request/response validation.
"""

from entrypass.schemas.common import ErrorResponse, HealthCheck, HealthResponse
from entrypass.schemas.entry_pass import (
    ADMIN_ACTIONS,
    PUBLIC_ACTIONS,
    Action,
    BulkSendRequest,
    BulkSendResponse,
    BulkSendResult,
    CheckInRequest,
    CheckInResponse,
    CheckinView,
    EntryPassRequest,
    GenerateLinkRequest,
    GenerateLinkResponse,
    MailContent,
    ParticipantView,
    ResolveRequest,
    ResolveResponse,
    SendEmailRequest,
    SendEmailResponse,
)

__all__ = [
    "ErrorResponse",
    "HealthCheck",
    "HealthResponse",
    "ADMIN_ACTIONS",
    "PUBLIC_ACTIONS",
    "Action",
    "BulkSendRequest",
    "BulkSendResponse",
    "BulkSendResult",
    "CheckInRequest",
    "CheckInResponse",
    "CheckinView",
    "EntryPassRequest",
    "GenerateLinkRequest",
    "GenerateLinkResponse",
    "MailContent",
    "ParticipantView",
    "ResolveRequest",
    "ResolveResponse",
    "SendEmailRequest",
    "SendEmailResponse",
]
