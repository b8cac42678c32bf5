"""
Outbound mail through the Resend HTTP API.

The protocol handler only needs `send(OutboundEmail) -> dict`; anything with
that method can stand in for ResendMailer.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import httpx

from entrypass.config import Settings, get_settings
from entrypass.errors import ConfigError, UpstreamError, ValidationError
from entrypass.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Attachment:
    filename: str
    content: str  # base64


@dataclass
class OutboundEmail:
    to: str
    subject: str
    html: str
    text: str
    sender: str
    attachments: List[Attachment] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "from": self.sender,
            "to": self.to,
            "subject": self.subject,
            "html": self.html,
            "text": self.text,
        }
        if self.attachments:
            payload["attachments"] = [
                {"filename": a.filename, "content": a.content} for a in self.attachments
            ]
        return payload


class Mailer(Protocol):
    provider: str

    async def send(self, message: OutboundEmail) -> Dict[str, Any]: ...


def resolve_allowed_from(requested: Optional[str], settings: Optional[Settings] = None) -> str:
    """
    Pick the sender address.

    No request -> first allowed sender (or the default). With no allow-list
    configured any requested sender passes; otherwise it must be listed.
    """
    settings = settings or get_settings()
    allowed = settings.allowed_from_list
    if not requested:
        return allowed[0] if allowed else settings.default_from
    sender = requested.strip()
    if not allowed or sender in allowed:
        return sender
    logger.warning("Sender not allowed", extra={"sender": sender})
    raise ValidationError("from", f"sender not allowed. Allowed senders: {', '.join(allowed)}")


class ResendMailer:
    """Send one email per call; no retries."""

    provider = "resend"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    async def send(self, message: OutboundEmail) -> Dict[str, Any]:
        api_key = self.settings.resend_api_key
        if not api_key:
            raise ConfigError("Missing RESEND_API_KEY env var")

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.settings.resend_api_url,
                    json=message.to_payload(),
                    headers={"Authorization": f"Bearer {api_key}"},
                )
        except httpx.TimeoutException as e:
            raise UpstreamError("Mail provider timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Mail provider unreachable: {type(e).__name__}") from e

        if response.status_code >= 400:
            logger.error("Resend API error", extra={"status_code": response.status_code})
            raise UpstreamError(f"Resend API error: {response.text}")
        try:
            return response.json()
        except ValueError:
            return {}
