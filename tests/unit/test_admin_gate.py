"""Unit tests for admin authorization."""

from typing import List

import httpx
import pytest

from entrypass.config import Settings
from entrypass.errors import ConfigError, Forbidden, Unauthorized, UpstreamError
from entrypass.kernel.identity import AdminGate

IDENTITY_URL = "https://identity.example.com"
ANON_KEY = "anon-public-key"


def make_settings(**overrides) -> Settings:
    values = dict(
        admin_secret="s3cret-admin",
        identity_url=IDENTITY_URL,
        identity_api_key=ANON_KEY,
        admin_emails="admin@example.com, ops@example.com",
    )
    values.update(overrides)
    return Settings(**values)


def identity_transport(status_code: int, body: dict, seen: List[httpx.Request]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code, json=body)

    return httpx.MockTransport(handler)


class TestSharedSecret:
    @pytest.mark.asyncio
    async def test_matching_secret_passes(self):
        gate = AdminGate(make_settings())
        identity = await gate.authorize({"x-admin-secret": "s3cret-admin"})

        assert identity.method == "secret"

    @pytest.mark.asyncio
    async def test_wrong_secret_without_bearer_is_unauthorized(self):
        gate = AdminGate(make_settings())

        with pytest.raises(Unauthorized):
            await gate.authorize({"x-admin-secret": "guess"})

    @pytest.mark.asyncio
    async def test_no_credentials_is_unauthorized(self):
        """Rejected before any identity configuration is needed."""
        gate = AdminGate(make_settings(identity_url="", identity_api_key=""))

        with pytest.raises(Unauthorized):
            await gate.authorize({})

    @pytest.mark.asyncio
    async def test_empty_configured_secret_never_matches(self):
        gate = AdminGate(make_settings(admin_secret=""))

        with pytest.raises(Unauthorized):
            await gate.authorize({"x-admin-secret": ""})


class TestBearerIdentity:
    @pytest.mark.asyncio
    async def test_allow_listed_user_passes(self):
        """Email comparison is case-insensitive."""
        seen: List[httpx.Request] = []
        transport = identity_transport(200, {"id": "u-1", "email": "Admin@Example.com"}, seen)
        gate = AdminGate(make_settings(), transport=transport)

        identity = await gate.authorize({"authorization": "Bearer user-jwt"})

        assert identity.method == "bearer"
        assert identity.email == "Admin@Example.com"
        assert str(seen[0].url) == f"{IDENTITY_URL}/auth/v1/user"
        assert seen[0].headers["apikey"] == ANON_KEY
        assert seen[0].headers["authorization"] == "Bearer user-jwt"

    @pytest.mark.asyncio
    async def test_user_not_on_list_is_forbidden(self):
        transport = identity_transport(200, {"id": "u-2", "email": "someone@example.com"}, [])
        gate = AdminGate(make_settings(), transport=transport)

        with pytest.raises(Forbidden):
            await gate.authorize({"authorization": "Bearer user-jwt"})

    @pytest.mark.asyncio
    async def test_empty_allow_list_accepts_any_identity(self):
        transport = identity_transport(200, {"id": "u-2", "email": "someone@example.com"}, [])
        gate = AdminGate(make_settings(admin_emails=""), transport=transport)

        identity = await gate.authorize({"authorization": "Bearer user-jwt"})
        assert identity.email == "someone@example.com"

    @pytest.mark.asyncio
    async def test_anon_key_as_bearer_is_unauthorized(self):
        seen: List[httpx.Request] = []
        gate = AdminGate(make_settings(), transport=identity_transport(200, {"id": "x"}, seen))

        with pytest.raises(Unauthorized):
            await gate.authorize({"authorization": f"Bearer {ANON_KEY}"})
        assert seen == []

    @pytest.mark.asyncio
    async def test_non_bearer_scheme_is_unauthorized(self):
        gate = AdminGate(make_settings())

        with pytest.raises(Unauthorized):
            await gate.authorize({"authorization": "Basic dXNlcjpwYXNz"})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403])
    async def test_rejected_credential_is_unauthorized(self, status_code):
        gate = AdminGate(make_settings(), transport=identity_transport(status_code, {"msg": "bad jwt"}, []))

        with pytest.raises(Unauthorized):
            await gate.authorize({"authorization": "Bearer expired"})

    @pytest.mark.asyncio
    async def test_user_without_id_is_unauthorized(self):
        gate = AdminGate(make_settings(), transport=identity_transport(200, {}, []))

        with pytest.raises(Unauthorized):
            await gate.authorize({"authorization": "Bearer user-jwt"})

    @pytest.mark.asyncio
    async def test_identity_service_error_is_upstream(self):
        gate = AdminGate(make_settings(), transport=identity_transport(500, {"msg": "down"}, []))

        with pytest.raises(UpstreamError):
            await gate.authorize({"authorization": "Bearer user-jwt"})

    @pytest.mark.asyncio
    async def test_unreachable_identity_service_is_upstream(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        gate = AdminGate(make_settings(), transport=httpx.MockTransport(handler))

        with pytest.raises(UpstreamError):
            await gate.authorize({"authorization": "Bearer user-jwt"})

    @pytest.mark.asyncio
    async def test_missing_identity_config(self):
        gate = AdminGate(make_settings(identity_url=""))

        with pytest.raises(ConfigError):
            await gate.authorize({"authorization": "Bearer user-jwt"})
