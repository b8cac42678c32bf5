"""
Entry pass protocol handler.

Implements the five actions once the request has passed validation, the
request rate limiter and (for admin actions) the admin gate:

- generate_link: sign a token for a row and build its pass URL
- resolve: token -> participant view and check-in state (read-only)
- check_in: PIN-gated, idempotent check-in write
- send_email / bulk_send: mail pass links to participants

Pass state is derived on every call; nothing here keeps state between
requests apart from the shared abuse guard.
"""

import asyncio
import hmac
from datetime import datetime, timezone
from typing import Callable, List, Optional

from entrypass.config import Settings, get_settings
from entrypass.engines.entry_pass.attachments import resolve_attachment
from entrypass.engines.entry_pass.field_detection import detect_email, detect_name
from entrypass.engines.entry_pass.pass_state import derive_pass_state
from entrypass.engines.entry_pass.templates import render_entry_pass_message
from entrypass.engines.guard import AbuseGuard, get_abuse_guard
from entrypass.engines.notifications import (
    Attachment,
    Mailer,
    OutboundEmail,
    ResendMailer,
    resolve_allowed_from,
)
from entrypass.engines.validation import RequestValidator
from entrypass.errors import (
    AlreadyCheckedIn,
    ConfigError,
    INTERNAL_ERROR_MESSAGE,
    EntryPassError,
    Forbidden,
    NotFound,
    RateLimited,
    ValidationError,
)
from entrypass.kernel.identity import EntryTokenCodec, get_token_codec
from entrypass.kernel.models import PaidParticipant
from entrypass.kernel.store import ParticipantStore
from entrypass.logging_config import get_logger, mask_ip
from entrypass.schemas.entry_pass import (
    BulkSendRequest,
    BulkSendResponse,
    BulkSendResult,
    CheckInRequest,
    CheckInResponse,
    CheckinView,
    GenerateLinkRequest,
    GenerateLinkResponse,
    MailContent,
    ParticipantView,
    ResolveRequest,
    ResolveResponse,
    SendEmailRequest,
    SendEmailResponse,
)

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_pass_url(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/pass/{token}"


class EntryPassService:
    """
    Entry pass actions over one store session.

    Collaborators are injectable; anything left out comes from the process
    defaults (settings, token codec, abuse guard, Resend mailer).
    """

    def __init__(
        self,
        store: ParticipantStore,
        codec: Optional[EntryTokenCodec] = None,
        guard: Optional[AbuseGuard] = None,
        mailer: Optional[Mailer] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.codec = codec or get_token_codec()
        self.guard = guard or get_abuse_guard()
        self.mailer = mailer or ResendMailer(self.settings)
        self.clock = clock

    def _base_url(self, requested: Optional[str]) -> str:
        base_url = (requested or "").strip() or self.settings.public_app_url
        if not base_url:
            raise ValidationError("baseUrl", "is required (or set PUBLIC_APP_URL)")
        return RequestValidator.validate_url(base_url, "baseUrl")

    def _token_row_hash(self, token: str) -> str:
        payload = self.codec.verify(token)
        return RequestValidator.validate_row_hash(payload.rh, "rh")

    async def generate_link(self, request: GenerateLinkRequest) -> GenerateLinkResponse:
        base_url = self._base_url(request.base_url)
        token = self.codec.issue(request.row_hash)
        logger.info("Entry pass link generated")
        return GenerateLinkResponse(url=build_pass_url(base_url, token), token=token)

    async def resolve(self, request: ResolveRequest) -> ResolveResponse:
        row_hash = self._token_row_hash(request.token)

        participant = await self.store.get_participant(row_hash)
        if participant is None:
            raise NotFound("Entry pass not found")
        checkin = await self.store.get_checkin(row_hash)

        return ResolveResponse(
            participant=ParticipantView(**participant.to_view()),
            checkin=CheckinView(**checkin.to_view()) if checkin else None,
            state=derive_pass_state(participant, checkin).value,
        )

    async def check_in(self, request: CheckInRequest, client_ip: str) -> CheckInResponse:
        """
        Approve entry for the token's participant.

        The PIN attempt is counted before anything else is looked at, so a
        wrong PIN, a bad token and a correct attempt all use up the budget.

        Raises:
            RateLimited: PIN attempts exhausted for this IP and token
            ConfigError: No gate PIN configured
            Forbidden: Wrong PIN
            InvalidTokenError: Token fails verification
            AlreadyCheckedIn: Second approval under the `reject` policy
        """
        decision = self.guard.check_pin(client_ip, request.token)
        if not decision.allowed:
            logger.warning("PIN attempts locked for %s", mask_ip(client_ip))
            raise RateLimited(
                "Too many PIN attempts. Try again later.",
                retry_after=decision.retry_after,
                locked_until=decision.locked_until,
            )

        expected_pin = self.settings.entry_admin_pin
        if not expected_pin:
            raise ConfigError("Missing env: ENTRY_ADMIN_PIN")
        if not hmac.compare_digest(request.pin.encode("utf-8"), expected_pin.encode("utf-8")):
            logger.warning("Invalid PIN from %s", mask_ip(client_ip))
            raise Forbidden("Invalid PIN")

        row_hash = self._token_row_hash(request.token)
        overwrite = self.settings.checkin_policy == "overwrite"
        written = await self.store.record_checkin(
            row_hash,
            client_ip[:12],
            at=self.clock(),
            overwrite=overwrite,
        )
        if not written:
            raise AlreadyCheckedIn()

        logger.info("Check-in recorded")
        return CheckInResponse()

    def _compose(
        self,
        participant: PaidParticipant,
        url: str,
        content: MailContent,
        sender: str,
        attachment: Optional[Attachment],
        to: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Optional[OutboundEmail]:
        """
        Build the message for one participant.

        An explicit `to` must be a valid address. A detected one that is
        missing or malformed means no recipient is known and None is returned.
        """
        if to:
            recipient = RequestValidator.validate_email(to, "to")
        else:
            recipient = (detect_email(participant.headers, participant.data) or "").strip()
            if not RequestValidator.is_email(recipient):
                return None
        display_name = (name or detect_name(participant.headers, participant.data) or "").strip()

        rendered = render_entry_pass_message(
            name=display_name,
            email=recipient,
            url=url,
            subject=content.subject,
            html=content.html,
            text=content.text,
        )
        return OutboundEmail(
            to=recipient,
            subject=rendered.subject,
            html=rendered.html,
            text=rendered.text,
            sender=sender,
            attachments=[attachment] if attachment else [],
        )

    async def _attachment(self, content: MailContent) -> Optional[Attachment]:
        return await resolve_attachment(
            content.pdf_base64, content.pdf_name, content.pdf_url, self.settings
        )

    async def send_email(self, request: SendEmailRequest) -> SendEmailResponse:
        base_url = self._base_url(request.base_url)
        token = self.codec.issue(request.row_hash)
        url = build_pass_url(base_url, token)

        participant = await self.store.get_participant(request.row_hash)
        if participant is None:
            raise NotFound("Participant not found")

        sender = resolve_allowed_from(request.sender, self.settings)
        attachment = await self._attachment(request)
        message = self._compose(
            participant, url, request, sender, attachment, to=request.to, name=request.name
        )
        if message is None:
            raise ValidationError("to", "recipient email not found for this row")

        result = await self.mailer.send(message)
        logger.info("Entry pass email sent")
        return SendEmailResponse(
            url=url, token=token, provider=self.mailer.provider, result=result
        )

    async def bulk_send(self, request: BulkSendRequest) -> BulkSendResponse:
        """
        Mail every participant their pass link.

        Sender and attachment are resolved once for the batch; a failure there
        fails the whole call. Per-row failures are reported in the results and
        never stop the other rows.
        """
        base_url = self._base_url(request.base_url)
        sender = resolve_allowed_from(request.sender, self.settings)
        attachment = await self._attachment(request)
        participants = await self.store.list_participants()

        semaphore = asyncio.Semaphore(max(1, self.settings.bulk_send_concurrency))

        async def _send_one(participant: PaidParticipant) -> BulkSendResult:
            async with semaphore:
                return await self._send_row(participant, base_url, request, sender, attachment)

        results: List[BulkSendResult] = await asyncio.gather(
            *(_send_one(p) for p in participants)
        )
        sent = sum(1 for r in results if r.sent)
        logger.info("Bulk send finished: %d/%d sent", sent, len(results))
        return BulkSendResponse(results=results)

    async def _send_row(
        self,
        participant: PaidParticipant,
        base_url: str,
        content: MailContent,
        sender: str,
        attachment: Optional[Attachment],
    ) -> BulkSendResult:
        row_hash = participant.row_hash
        try:
            token = self.codec.issue(row_hash)
            message = self._compose(
                participant, build_pass_url(base_url, token), content, sender, attachment
            )
            if message is None:
                return BulkSendResult(row_hash=row_hash, skipped=True, reason="no-email")
            result = await self.mailer.send(message)
            return BulkSendResult(row_hash=row_hash, sent=True, result=result)
        except Exception as e:
            logger.warning("Bulk send failed for row %s: %s", row_hash[:8], type(e).__name__)
            return BulkSendResult(row_hash=row_hash, sent=False, error=self._row_error(e))

    def _row_error(self, exc: Exception) -> str:
        exposed = isinstance(exc, EntryPassError) and exc.expose
        if self.settings.is_production and not exposed:
            return INTERNAL_ERROR_MESSAGE
        return exc.message if isinstance(exc, EntryPassError) else str(exc)
