"""
Admin authorization for link generation and mail dispatch.

An admin is either a caller presenting the pre-shared `x-admin-secret`, or a
caller whose bearer credential the identity service resolves to a user on the
admin allow-list.
"""

import hmac
from dataclasses import dataclass
from typing import Mapping, Optional

import httpx

from entrypass.config import Settings, get_settings
from entrypass.errors import ConfigError, Forbidden, Unauthorized, UpstreamError
from entrypass.logging_config import get_logger

logger = get_logger(__name__)

ADMIN_SECRET_HEADER = "x-admin-secret"


@dataclass
class AdminIdentity:
    """Who passed the admin gate, and how."""

    method: str  # "secret" or "bearer"
    email: Optional[str] = None


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        return ""
    scheme, _, credential = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return credential.strip()


class AdminGate:
    """
    Resolve a request's headers to an AdminIdentity or fail.

    Failures:
        Unauthorized: no usable credential, or the identity service rejected it
        Forbidden: authenticated identity not on ADMIN_EMAILS
        ConfigError: bearer path needed but identity service not configured
        UpstreamError: identity service unreachable
    """

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or get_settings()
        self._transport = transport

    async def authorize(self, headers: Mapping[str, str]) -> AdminIdentity:
        configured_secret = self.settings.admin_secret
        presented_secret = headers.get(ADMIN_SECRET_HEADER) or ""
        if configured_secret and presented_secret and hmac.compare_digest(
            presented_secret.encode("utf-8"), configured_secret.encode("utf-8")
        ):
            return AdminIdentity(method="secret")

        token = _bearer_token(headers.get("authorization"))
        anon_key = self.settings.identity_api_key
        if not token or (anon_key and token == anon_key):
            raise Unauthorized()

        if not self.settings.identity_url or not anon_key:
            raise ConfigError("Server misconfigured: identity service not set")

        email = await self._lookup_email(token)
        allowed = self.settings.admin_email_list
        if allowed and (email or "").lower() not in allowed:
            logger.warning("Admin gate: identity not on allow-list")
            raise Forbidden()
        return AdminIdentity(method="bearer", email=email)

    async def _lookup_email(self, token: str) -> Optional[str]:
        url = f"{self.settings.identity_url.rstrip('/')}/auth/v1/user"
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    url,
                    headers={
                        "apikey": self.settings.identity_api_key,
                        "Authorization": f"Bearer {token}",
                    },
                )
        except httpx.HTTPError as e:
            logger.error("Identity service request failed: %s", type(e).__name__)
            raise UpstreamError("Identity service unavailable") from e

        if response.status_code in (401, 403):
            raise Unauthorized()
        if response.status_code >= 400:
            logger.error("Identity service returned %s", response.status_code)
            raise UpstreamError(f"Identity service error: {response.status_code}")

        try:
            user = response.json()
        except ValueError as e:
            raise UpstreamError("Identity service returned invalid JSON") from e
        if not isinstance(user, dict) or not user.get("id"):
            raise Unauthorized()
        return user.get("email")
