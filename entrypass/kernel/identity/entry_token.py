"""
Entry pass capability tokens.

A token is an HS256 JWT whose `rh` claim names one participant row. Holding a
valid token lets the bearer view that participant's pass; checking in also
needs the gate PIN. Verification never touches the store.
"""

import base64
import binascii
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from entrypass.config import get_settings
from entrypass.errors import ConfigError, InvalidTokenError

ALGORITHM = "HS256"


class EntryTokenPayload(BaseModel):
    """Decoded entry token claims."""

    rh: str  # participant row_hash
    iat: int
    exp: int
    jti: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_canonical_b64url(segment: str) -> bool:
    """True if `segment` is the one canonical unpadded base64url encoding of its bytes."""
    try:
        raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (binascii.Error, ValueError):
        return False
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") == segment


class EntryTokenCodec:
    """
    Issue and verify entry tokens.

    Handles the signing secret, the 60-day default lifetime and the clock,
    which is injectable so expiry can be tested deterministically.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        settings = get_settings()
        self.secret_key = secret_key if secret_key is not None else settings.entry_jwt_secret
        self.ttl = ttl or timedelta(days=settings.entry_token_ttl_days)
        self.clock = clock

    def ensure_configured(self) -> None:
        if not self.secret_key:
            raise ConfigError("Missing env: ENTRY_JWT_SECRET")

    def issue(self, row_hash: str, *, now: Optional[datetime] = None) -> str:
        """
        Sign a token binding `row_hash`.

        Args:
            row_hash: Participant row identifier (already validated)
            now: Issue time; defaults to the codec clock

        Returns:
            Compact JWT string

        Raises:
            ConfigError: If the signing secret is not configured
        """
        self.ensure_configured()
        issued = now or self.clock()
        iat = int(issued.timestamp())
        payload = {
            "rh": row_hash,
            "iat": iat,
            "exp": iat + int(self.ttl.total_seconds()),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self.secret_key, algorithm=ALGORITHM)

    def verify(self, token: str, *, now: Optional[datetime] = None) -> EntryTokenPayload:
        """
        Check signature and expiry and return the claims.

        Raises:
            InvalidTokenError: Malformed, wrongly signed or expired token
            ConfigError: If the signing secret is not configured
        """
        self.ensure_configured()
        if not isinstance(token, str) or token.count(".") != 2:
            raise InvalidTokenError("Malformed token")
        if not _is_canonical_b64url(token.rsplit(".", 1)[1]):
            raise InvalidTokenError("Malformed token signature")

        try:
            claims = jwt.decode(
                token,
                self.secret_key,
                algorithms=[ALGORITHM],
                # Expiry is checked below against the codec clock
                options={"verify_exp": False, "verify_iat": False, "verify_nbf": False},
            )
        except JWTError as e:
            raise InvalidTokenError("Invalid token signature") from e

        rh = claims.get("rh")
        exp = claims.get("exp")
        iat = claims.get("iat")
        if not isinstance(rh, str) or not rh:
            raise InvalidTokenError("Invalid token payload")
        if not isinstance(exp, int) or isinstance(exp, bool):
            raise InvalidTokenError("Token has no expiry")
        if not isinstance(iat, int) or isinstance(iat, bool):
            raise InvalidTokenError("Token has no issue time")

        current = int((now or self.clock()).timestamp())
        if exp <= current:
            raise InvalidTokenError("Token expired")

        jti = claims.get("jti")
        return EntryTokenPayload(rh=rh, iat=iat, exp=exp, jti=jti if isinstance(jti, str) else None)


_codec: Optional[EntryTokenCodec] = None


def get_token_codec() -> EntryTokenCodec:
    """Get or create the default codec."""
    global _codec
    if _codec is None:
        _codec = EntryTokenCodec()
    return _codec


def reset_token_codec() -> None:
    """Drop the cached codec so the next call picks up fresh settings."""
    global _codec
    _codec = None
