"""
Integration tests for EntryPassService against the SQLite store.
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from entrypass.config import Settings
from entrypass.engines.entry_pass import EntryPassService
from entrypass.engines.guard import AbuseGuard, FixedWindowLimiter, PinAttemptLimiter, pin_key
from entrypass.errors import (
    AlreadyCheckedIn,
    ConfigError,
    Forbidden,
    InvalidTokenError,
    NotFound,
    RateLimited,
    ValidationError,
)
from entrypass.kernel.identity import EntryTokenCodec
from entrypass.kernel.models import Checkin
from entrypass.kernel.store import ParticipantStore
from entrypass.schemas.entry_pass import (
    BulkSendRequest,
    CheckInRequest,
    GenerateLinkRequest,
    ResolveRequest,
    SendEmailRequest,
)
from tests.helpers import OTHER_ROW_HASH, ROW_HASH, RecordingMailer, StepClock, make_participant

CLIENT_IP = "198.51.100.234"


def make_service(
    session: AsyncSession,
    mailer: RecordingMailer = None,
    **setting_overrides,
) -> EntryPassService:
    settings = Settings(**setting_overrides)
    guard = AbuseGuard(
        FixedWindowLimiter(100, 60),
        PinAttemptLimiter(5, 60, 900),
    )
    codec = EntryTokenCodec(secret_key="integration-secret", ttl=timedelta(days=60))
    return EntryPassService(
        ParticipantStore(session),
        codec=codec,
        guard=guard,
        mailer=mailer or RecordingMailer(),
        settings=settings,
        clock=StepClock(),
    )


async def count_checkins(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Checkin))
    return int(result.scalar_one())


class TestGenerateLinkAndResolve:
    @pytest.mark.asyncio
    async def test_generate_link_uses_public_url(self, db_session):
        service = make_service(db_session, public_app_url="https://pass.example.com/")

        result = await service.generate_link(GenerateLinkRequest(row_hash=ROW_HASH))

        assert result.url == f"https://pass.example.com/pass/{result.token}"
        assert service.codec.verify(result.token).rh == ROW_HASH

    @pytest.mark.asyncio
    async def test_generate_link_requires_base_url(self, db_session):
        service = make_service(db_session, public_app_url="")

        with pytest.raises(ValidationError) as exc_info:
            await service.generate_link(GenerateLinkRequest(row_hash=ROW_HASH))
        assert exc_info.value.field == "baseUrl"

    @pytest.mark.asyncio
    async def test_resolve_pending(self, db_session, participant):
        service = make_service(db_session)
        token = service.codec.issue(ROW_HASH)

        result = await service.resolve(ResolveRequest(token=token))

        assert result.state == "paid_pending"
        assert result.checkin is None
        assert result.participant.row_number == 2
        assert result.participant.data["氏名"] == "山田 太郎"

    @pytest.mark.asyncio
    async def test_resolve_unknown_row(self, db_session, participant):
        service = make_service(db_session)
        token = service.codec.issue(OTHER_ROW_HASH)

        with pytest.raises(NotFound):
            await service.resolve(ResolveRequest(token=token))

    @pytest.mark.asyncio
    async def test_resolve_rejects_short_row_hash_claim(self, db_session):
        """A validly signed token whose rh is malformed never reaches the store."""
        service = make_service(db_session)
        token = service.codec.issue("short")

        with pytest.raises(ValidationError) as exc_info:
            await service.resolve(ResolveRequest(token=token))
        assert exc_info.value.field == "rh"


class TestCheckIn:
    @pytest.mark.asyncio
    async def test_check_in_then_resolve(self, db_session, participant):
        service = make_service(db_session)
        token = service.codec.issue(ROW_HASH)

        result = await service.check_in(CheckInRequest(token=token, pin="4321"), CLIENT_IP)
        resolved = await service.resolve(ResolveRequest(token=token))

        assert result.ok is True
        assert resolved.state == "checked_in"
        assert resolved.checkin.checked_in_by == CLIENT_IP[:12]
        assert resolved.checkin.checked_in_at is not None

    @pytest.mark.asyncio
    async def test_repeat_check_in_overwrites(self, db_session, participant):
        """Two approvals leave one row carrying the second timestamp."""
        service = make_service(db_session, checkin_policy="overwrite")
        token = service.codec.issue(ROW_HASH)

        await service.check_in(CheckInRequest(token=token, pin="4321"), "10.0.0.1")
        first = (await service.resolve(ResolveRequest(token=token))).checkin
        await service.check_in(CheckInRequest(token=token, pin="4321"), "10.0.0.2")
        second = (await service.resolve(ResolveRequest(token=token))).checkin

        assert await count_checkins(db_session) == 1
        assert second.checked_in_by == "10.0.0.2"
        assert second.checked_in_at > first.checked_in_at

    @pytest.mark.asyncio
    async def test_reject_policy(self, db_session, participant):
        service = make_service(db_session, checkin_policy="reject")
        token = service.codec.issue(ROW_HASH)

        await service.check_in(CheckInRequest(token=token, pin="4321"), "10.0.0.1")
        with pytest.raises(AlreadyCheckedIn):
            await service.check_in(CheckInRequest(token=token, pin="4321"), "10.0.0.2")

        resolved = await service.resolve(ResolveRequest(token=token))
        assert await count_checkins(db_session) == 1
        assert resolved.checkin.checked_in_by == "10.0.0.1"

    @pytest.mark.asyncio
    async def test_wrong_pin_is_forbidden_and_counted(self, db_session, participant):
        service = make_service(db_session)
        token = service.codec.issue(ROW_HASH)

        with pytest.raises(Forbidden) as exc_info:
            await service.check_in(CheckInRequest(token=token, pin="0000"), CLIENT_IP)

        assert exc_info.value.message == "Invalid PIN"
        assert service.guard.pins.peek(pin_key(CLIENT_IP, token)) == 1
        assert await count_checkins(db_session) == 0

    @pytest.mark.asyncio
    async def test_lockout_blocks_correct_pin(self, db_session, participant):
        service = make_service(db_session)
        token = service.codec.issue(ROW_HASH)

        for _ in range(5):
            with pytest.raises(Forbidden):
                await service.check_in(CheckInRequest(token=token, pin="9999"), CLIENT_IP)
        with pytest.raises(RateLimited) as exc_info:
            await service.check_in(CheckInRequest(token=token, pin="4321"), CLIENT_IP)

        assert exc_info.value.locked_until is not None
        assert await count_checkins(db_session) == 0

    @pytest.mark.asyncio
    async def test_missing_pin_config(self, db_session, participant):
        service = make_service(db_session, entry_admin_pin="")
        token = service.codec.issue(ROW_HASH)

        with pytest.raises(ConfigError):
            await service.check_in(CheckInRequest(token=token, pin="4321"), CLIENT_IP)

    @pytest.mark.asyncio
    async def test_bad_token_after_correct_pin(self, db_session, participant):
        service = make_service(db_session)
        foreign = EntryTokenCodec(secret_key="other-secret").issue(ROW_HASH)

        with pytest.raises(InvalidTokenError):
            await service.check_in(CheckInRequest(token=foreign, pin="4321"), CLIENT_IP)
        assert await count_checkins(db_session) == 0


class TestSendEmail:
    @pytest.mark.asyncio
    async def test_malformed_detected_email_is_rejected(self, db_session):
        db_session.add(
            make_participant(ROW_HASH, 2, {"Name": "Taro", "Email": "taro@example.com (work)"})
        )
        await db_session.commit()
        mailer = RecordingMailer()
        service = make_service(db_session, mailer)

        with pytest.raises(ValidationError) as exc_info:
            await service.send_email(SendEmailRequest(row_hash=ROW_HASH))

        assert exc_info.value.field == "to"
        assert mailer.sent == []

    @pytest.mark.asyncio
    async def test_detected_recipient(self, db_session, participant):
        mailer = RecordingMailer()
        service = make_service(db_session, mailer)

        result = await service.send_email(SendEmailRequest(row_hash=ROW_HASH))

        assert result.provider == "resend"
        assert result.result == {"id": "msg-1"}
        message = mailer.sent[0]
        assert message.to == "taro@example.com"
        assert message.sender == "Event Team <events@example.com>"
        assert "山田 太郎 様" in message.html
        assert result.url in message.text

    @pytest.mark.asyncio
    async def test_explicit_overrides(self, db_session, participant):
        mailer = RecordingMailer()
        service = make_service(db_session, mailer)

        await service.send_email(SendEmailRequest(
            row_hash=ROW_HASH,
            to="other@example.com",
            name="Guest",
            subject="Pass",
            text="{{name}} {{email}} {{url}}",
            sender="noreply@example.com",
            pdf_base64="JVBERi0=",
            pdf_name="map.pdf",
        ))

        message = mailer.sent[0]
        assert message.to == "other@example.com"
        assert message.subject == "Pass"
        assert message.text.startswith("Guest other@example.com https://pass.example.com/pass/")
        assert message.attachments[0].filename == "map.pdf"

    @pytest.mark.asyncio
    async def test_no_recipient(self, db_session):
        db_session.add(make_participant(data={"氏名": "No Mail"}))
        await db_session.commit()
        service = make_service(db_session)

        with pytest.raises(ValidationError) as exc_info:
            await service.send_email(SendEmailRequest(row_hash=ROW_HASH))
        assert exc_info.value.field == "to"

    @pytest.mark.asyncio
    async def test_unknown_participant(self, db_session):
        service = make_service(db_session)

        with pytest.raises(NotFound):
            await service.send_email(SendEmailRequest(row_hash=ROW_HASH))

    @pytest.mark.asyncio
    async def test_sender_not_allowed(self, db_session, participant):
        mailer = RecordingMailer()
        service = make_service(db_session, mailer)

        with pytest.raises(ValidationError) as exc_info:
            await service.send_email(SendEmailRequest(row_hash=ROW_HASH, sender="boss@example.com"))
        assert exc_info.value.field == "from"
        assert mailer.sent == []


class TestBulkSend:
    async def _seed(self, session: AsyncSession, count: int = 3):
        rows = [
            make_participant(f"{i:032x}", i + 2, {"Name": f"P{i}", "Email": f"p{i}@example.com"})
            for i in range(count)
        ]
        session.add_all(rows)
        await session.commit()
        return rows

    @pytest.mark.asyncio
    async def test_skips_and_isolates_failures(self, db_session):
        await self._seed(db_session, 2)
        db_session.add(make_participant("e" * 32, 10, {"Name": "No Mail"}))
        await db_session.commit()
        mailer = RecordingMailer(fail_for=["p0@example.com"])
        service = make_service(db_session, mailer)

        response = await service.bulk_send(BulkSendRequest())

        by_row = {r.row_hash: r for r in response.results}
        assert [r.row_hash for r in response.results] == [f"{0:032x}", f"{1:032x}", "e" * 32]
        assert by_row[f"{0:032x}"].sent is False
        assert "p0@example.com" in by_row[f"{0:032x}"].error
        assert by_row[f"{1:032x}"].sent is True
        assert by_row["e" * 32].skipped is True
        assert by_row["e" * 32].reason == "no-email"
        assert [m.to for m in mailer.sent] == ["p1@example.com"]

    @pytest.mark.asyncio
    async def test_malformed_detected_email_is_skipped(self, db_session):
        await self._seed(db_session, 1)
        db_session.add(
            make_participant("d" * 32, 11, {"Name": "Taro", "Email": "taro@example.com (work)"})
        )
        await db_session.commit()
        mailer = RecordingMailer()
        service = make_service(db_session, mailer)

        response = await service.bulk_send(BulkSendRequest())

        by_row = {r.row_hash: r for r in response.results}
        assert by_row["d" * 32].skipped is True
        assert by_row["d" * 32].reason == "no-email"
        assert by_row["d" * 32].sent is None
        assert by_row["d" * 32].error is None
        assert [m.to for m in mailer.sent] == ["p0@example.com"]

    @pytest.mark.asyncio
    async def test_production_hides_row_errors(self, db_session):
        await self._seed(db_session, 1)
        mailer = RecordingMailer(fail_for=["p0@example.com"])
        service = make_service(db_session, mailer, environment="production")

        response = await service.bulk_send(BulkSendRequest())

        assert response.results[0].error == "An internal error occurred"

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, db_session):
        await self._seed(db_session, 8)
        mailer = RecordingMailer(delay=0.01)
        service = make_service(db_session, mailer, bulk_send_concurrency=3)

        response = await service.bulk_send(BulkSendRequest())

        assert len(mailer.sent) == 8
        assert all(r.sent for r in response.results)
        assert 1 < mailer.max_in_flight <= 3

    @pytest.mark.asyncio
    async def test_each_row_gets_its_own_token(self, db_session):
        await self._seed(db_session, 2)
        mailer = RecordingMailer()
        service = make_service(db_session, mailer)

        await service.bulk_send(BulkSendRequest())

        urls = {m.text.rsplit("\n", 1)[-1] for m in mailer.sent}
        assert len(urls) == 2
        for url in urls:
            token = url.rsplit("/", 1)[-1]
            assert service.codec.verify(token).rh in {f"{0:032x}", f"{1:032x}"}
