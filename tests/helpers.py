"""Shared test doubles and sample rows."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from entrypass.engines.notifications import OutboundEmail
from entrypass.errors import UpstreamError
from entrypass.kernel.models import PaidParticipant

ROW_HASH = "a1b2c3d4e5f60718293a4b5c6d7e8f90"
OTHER_ROW_HASH = "ffeeddccbbaa99887766554433221100"


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StepClock:
    """datetime clock that moves forward one second per call."""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


class RecordingMailer:
    """Mailer double that records messages and can fail for chosen recipients."""

    provider = "resend"

    def __init__(self, fail_for: Optional[List[str]] = None, delay: float = 0.0):
        self.sent: List[OutboundEmail] = []
        self.fail_for = set(fail_for or [])
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def send(self, message: OutboundEmail) -> Dict[str, str]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if message.to in self.fail_for:
                raise UpstreamError(f"Resend API error: mailbox {message.to} rejected")
            self.sent.append(message)
            return {"id": f"msg-{len(self.sent)}"}
        finally:
            self.in_flight -= 1


def make_participant(
    row_hash: str = ROW_HASH,
    row_number: int = 2,
    data: Optional[Dict[str, str]] = None,
) -> PaidParticipant:
    data = data if data is not None else {
        "氏名": "山田 太郎",
        "メールアドレス": "taro@example.com",
        "チーム": "A",
    }
    return PaidParticipant(
        row_hash=row_hash,
        row_number=row_number,
        headers=list(data.keys()),
        data=data,
    )
