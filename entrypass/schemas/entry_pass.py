"""
Entry pass request and response schemas.

Request models are only built after RequestValidator has checked every field,
so they carry no validation rules of their own.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Action(str, Enum):
    """The closed set of entry pass actions."""
    GENERATE_LINK = "generate_link"
    RESOLVE = "resolve"
    CHECK_IN = "check_in"
    SEND_EMAIL = "send_email"
    BULK_SEND = "bulk_send"


PUBLIC_ACTIONS = frozenset({Action.RESOLVE, Action.CHECK_IN})
ADMIN_ACTIONS = frozenset({Action.GENERATE_LINK, Action.SEND_EMAIL, Action.BULK_SEND})


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GenerateLinkRequest(_Request):
    action: Action = Action.GENERATE_LINK
    row_hash: str
    base_url: Optional[str] = Field(default=None, alias="baseUrl")


class ResolveRequest(_Request):
    action: Action = Action.RESOLVE
    token: str


class CheckInRequest(_Request):
    action: Action = Action.CHECK_IN
    token: str
    pin: str


class MailContent(_Request):
    """Message overrides shared by send_email and bulk_send."""

    base_url: Optional[str] = Field(default=None, alias="baseUrl")
    subject: Optional[str] = None
    html: Optional[str] = None
    text: Optional[str] = None
    sender: Optional[str] = Field(default=None, alias="from")
    pdf_url: Optional[str] = Field(default=None, alias="pdfUrl")
    pdf_base64: Optional[str] = Field(default=None, alias="pdfBase64")
    pdf_name: Optional[str] = Field(default=None, alias="pdfName")


class SendEmailRequest(MailContent):
    action: Action = Action.SEND_EMAIL
    row_hash: str
    to: Optional[str] = None
    name: Optional[str] = None


class BulkSendRequest(MailContent):
    action: Action = Action.BULK_SEND


EntryPassRequest = Union[
    GenerateLinkRequest,
    ResolveRequest,
    CheckInRequest,
    SendEmailRequest,
    BulkSendRequest,
]


class ParticipantView(BaseModel):
    row_number: int
    headers: List[str]
    data: Dict[str, Any]


class CheckinView(BaseModel):
    row_hash: str
    checked_in_at: Optional[str] = None
    checked_in_by: Optional[str] = None


class GenerateLinkResponse(BaseModel):
    ok: bool = True
    url: str
    token: str


class ResolveResponse(BaseModel):
    ok: bool = True
    participant: Optional[ParticipantView] = None
    checkin: Optional[CheckinView] = None
    state: str


class CheckInResponse(BaseModel):
    ok: bool = True


class SendEmailResponse(BaseModel):
    ok: bool = True
    url: str
    token: str
    provider: str = "resend"
    result: Optional[Dict[str, Any]] = None


class BulkSendResult(BaseModel):
    row_hash: str
    sent: Optional[bool] = None
    skipped: Optional[bool] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    reason: Optional[str] = None


class BulkSendResponse(BaseModel):
    ok: bool = True
    results: List[BulkSendResult]
