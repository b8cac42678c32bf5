"""
Pytest fixtures for entry pass tests.

Settings are fixed through environment variables before any application
module is imported; the app and the fixtures share one temp-file SQLite DB.
"""

import os
import tempfile
from typing import AsyncGenerator, Dict

_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp.close()
TEST_DB_PATH = _tmp.name

TEST_ENV = {
    "DATABASE_URL": f"sqlite+aiosqlite:///{TEST_DB_PATH}",
    "ENVIRONMENT": "test",
    "ENTRY_JWT_SECRET": "test-entry-secret-for-testing-only",
    "ENTRY_ADMIN_PIN": "4321",
    "ADMIN_SECRET": "test-admin-secret",
    "ADMIN_EMAILS": "",
    "IDENTITY_URL": "",
    "IDENTITY_API_KEY": "",
    "PUBLIC_APP_URL": "https://pass.example.com",
    "CORS_ALLOW_ORIGINS": "https://admin.example.com",
    "RESEND_API_KEY": "re_test_key",
    "ALLOWED_FROM": "Event Team <events@example.com>,noreply@example.com",
    "CHECKIN_POLICY": "overwrite",
    "BLOCK_BOTS": "true",
}
os.environ.update(TEST_ENV)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from entrypass.config import get_settings

get_settings.cache_clear()

from entrypass.database import async_session_maker, engine
from entrypass.engines.guard import get_abuse_guard
from entrypass.kernel.identity import reset_token_codec
from entrypass.kernel.models import Base, PaidParticipant
from tests.helpers import RecordingMailer, make_participant


@pytest.fixture(autouse=True)
def reset_process_state():
    """Limiter counters and the cached token codec are process-wide."""
    get_abuse_guard().reset()
    reset_token_codec()
    yield
    get_abuse_guard().reset()
    reset_token_codec()


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh tables per test on the shared temp DB."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def participant(db_session: AsyncSession) -> PaidParticipant:
    row = make_participant()
    db_session.add(row)
    await db_session.commit()
    return row


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, mailer: RecordingMailer):
    """Async client against the app, with the mail provider replaced."""
    from entrypass.api.deps import get_mailer
    from entrypass.main import app

    app.dependency_overrides[get_mailer] = lambda: mailer
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_mailer, None)


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"x-admin-secret": TEST_ENV["ADMIN_SECRET"]}


def pytest_sessionfinish(session, exitstatus):
    """Clean up temp DB file after test run."""
    for suffix in ("", "-wal", "-shm"):
        path = TEST_DB_PATH + suffix
        if os.path.exists(path):
            os.unlink(path)
