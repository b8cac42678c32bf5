"""
Application configuration using pydantic-settings.
Loads from environment variables with .env file support.
"""

from functools import lru_cache
from typing import List, Literal
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str, lower: bool = False) -> List[str]:
    items = [s.strip() for s in (value or "").split(",")]
    if lower:
        items = [s.lower() for s in items]
    return [s for s in items if s]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./entrypass.db"

    # Entry pass tokens
    entry_jwt_secret: str = ""
    entry_token_ttl_days: int = 60

    # Gate PIN
    entry_admin_pin: str = ""

    # Admin access
    admin_secret: str = ""
    admin_emails: str = ""  # comma-separated allow-list; empty = any identity
    identity_url: str = ""  # e.g. https://<project>.supabase.co
    identity_api_key: str = ""  # anon key sent as `apikey`

    # Links and CORS
    public_app_url: str = ""
    cors_allow_origins: str = ""  # comma-separated

    # Email (Resend)
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com/emails"
    allowed_from: str = ""  # comma-separated sender allow-list
    default_from: str = "no-reply@example.com"

    # Application
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"
    project_name: str = "Entry Pass Service"
    version: str = "1.0.0"

    # Abuse guard
    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 100  # per (IP, action) per window
    pin_max_attempts: int = 5  # per (IP, token prefix) per window
    pin_lockout_seconds: int = 15 * 60
    block_bots: bool = True

    # Request handling
    max_request_bytes: int = 10 * 1024
    http_timeout_seconds: float = 30.0
    bulk_send_concurrency: int = 5
    checkin_policy: Literal["overwrite", "reject"] = "overwrite"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def admin_email_list(self) -> List[str]:
        return _split_csv(self.admin_emails, lower=True)

    @property
    def cors_origin_list(self) -> List[str]:
        return _split_csv(self.cors_allow_origins)

    @property
    def allowed_from_list(self) -> List[str]:
        return _split_csv(self.allowed_from)

    @property
    def public_app_origin(self) -> str:
        """Origin (scheme://host[:port]) of PUBLIC_APP_URL, or "" if unset/unparseable."""
        if not self.public_app_url:
            return ""
        parsed = urlparse(self.public_app_url)
        if not parsed.scheme or not parsed.netloc:
            return ""
        return f"{parsed.scheme}://{parsed.netloc}"

    def missing_required(self) -> List[str]:
        """Names of settings the service cannot do its job without."""
        required = {
            "ENTRY_JWT_SECRET": self.entry_jwt_secret,
            "ENTRY_ADMIN_PIN": self.entry_admin_pin,
            "RESEND_API_KEY": self.resend_api_key,
            "ALLOWED_FROM": self.allowed_from,
        }
        return [name for name, value in required.items() if not value]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
