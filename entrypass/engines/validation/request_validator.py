"""
Request validation - the first gate of every entry pass request.

Purely structural, whitelist-based checks on each inbound field. Runs before
rate limiting, admin authorization, token verification and store access, and
never depends on external state.
"""

import re
from typing import Any, Dict, Type
from urllib.parse import urlparse

from entrypass.errors import ValidationError
from entrypass.schemas.entry_pass import (
    Action,
    BulkSendRequest,
    CheckInRequest,
    EntryPassRequest,
    GenerateLinkRequest,
    ResolveRequest,
    SendEmailRequest,
)

TOKEN_MAX_LENGTH = 2048
EMAIL_MAX_LENGTH = 254  # RFC 5321
MIN_PIN_LENGTH = 4
MAX_PIN_LENGTH = 12
ROW_HASH_MIN_LENGTH = 10
ROW_HASH_MAX_LENGTH = 128

_REQUEST_MODELS: Dict[Action, Type[EntryPassRequest]] = {
    Action.GENERATE_LINK: GenerateLinkRequest,
    Action.RESOLVE: ResolveRequest,
    Action.CHECK_IN: CheckInRequest,
    Action.SEND_EMAIL: SendEmailRequest,
    Action.BULK_SEND: BulkSendRequest,
}

_REQUIRED_FIELDS: Dict[Action, tuple] = {
    Action.GENERATE_LINK: ("row_hash",),
    Action.RESOLVE: ("token",),
    Action.CHECK_IN: ("token", "pin"),
    Action.SEND_EMAIL: ("row_hash",),
    Action.BULK_SEND: (),
}

# Free-text fields: trimmed and capped rather than rejected
_TEXT_LIMITS = {
    "subject": 200,
    "name": 200,
    "from": EMAIL_MAX_LENGTH + 100,  # allows "Display Name <addr>"
    "html": 8000,
    "text": 8000,
    "pdfName": 200,
}


class RequestValidator:
    """
    Field validators for entry pass requests.

    Each validator returns the accepted value or raises ValidationError naming
    the field.
    """

    TOKEN_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
    PIN_PATTERN = re.compile(r"^\d+$")
    ROW_HASH_PATTERN = re.compile(r"^[A-Za-z0-9]+$")
    EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
    BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")

    @staticmethod
    def _require_str(value: Any, field: str) -> str:
        if not isinstance(value, str):
            raise ValidationError(field, "must be a string")
        if not value:
            raise ValidationError(field, "is required")
        return value

    @classmethod
    def validate_action(cls, value: Any) -> Action:
        if value is None or value == "":
            raise ValidationError("action", "is required")
        if not isinstance(value, str):
            raise ValidationError("action", "must be a string")
        try:
            return Action(value)
        except ValueError:
            raise ValidationError("action", "invalid action")

    @classmethod
    def validate_token(cls, value: Any, field: str = "token") -> str:
        token = cls._require_str(value, field)
        if len(token) > TOKEN_MAX_LENGTH:
            raise ValidationError(field, f"must not exceed {TOKEN_MAX_LENGTH} characters")
        parts = token.split(".")
        if len(parts) != 3:
            raise ValidationError(field, "invalid token format")
        if not all(cls.TOKEN_SEGMENT_PATTERN.match(p) for p in parts):
            raise ValidationError(field, "invalid token format")
        return token

    @classmethod
    def validate_pin(cls, value: Any, field: str = "pin") -> str:
        pin = cls._require_str(value, field)
        if len(pin) < MIN_PIN_LENGTH or len(pin) > MAX_PIN_LENGTH:
            raise ValidationError(
                field, f"must be {MIN_PIN_LENGTH}-{MAX_PIN_LENGTH} digits"
            )
        if not cls.PIN_PATTERN.match(pin):
            raise ValidationError(field, "must contain digits only")
        return pin

    @classmethod
    def validate_row_hash(cls, value: Any, field: str = "row_hash") -> str:
        row_hash = cls._require_str(value, field)
        if len(row_hash) < ROW_HASH_MIN_LENGTH or len(row_hash) > ROW_HASH_MAX_LENGTH:
            raise ValidationError(
                field, f"must be {ROW_HASH_MIN_LENGTH}-{ROW_HASH_MAX_LENGTH} characters"
            )
        if not cls.ROW_HASH_PATTERN.match(row_hash):
            raise ValidationError(field, "must be alphanumeric")
        return row_hash

    @classmethod
    def validate_email(cls, value: Any, field: str = "to") -> str:
        email = cls._require_str(value, field).strip()
        if len(email) > EMAIL_MAX_LENGTH:
            raise ValidationError(field, f"must not exceed {EMAIL_MAX_LENGTH} characters")
        if not cls.EMAIL_PATTERN.match(email):
            raise ValidationError(field, "invalid email address")
        return email

    @classmethod
    def is_email(cls, value: Any) -> bool:
        try:
            cls.validate_email(value)
        except ValidationError:
            return False
        return True

    @classmethod
    def validate_url(cls, value: Any, field: str = "baseUrl") -> str:
        url = cls._require_str(value, field).strip()
        try:
            parsed = urlparse(url)
        except ValueError:
            raise ValidationError(field, "invalid URL")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError(field, "must be an http(s) URL")
        return url

    @classmethod
    def validate_base64(cls, value: Any, field: str = "pdfBase64") -> str:
        data = cls._require_str(value, field).strip()
        # Accept data URLs: "data:application/pdf;base64,<payload>"
        payload = data.split(",", 1)[1] if "," in data else data
        if not cls.BASE64_PATTERN.match(payload):
            raise ValidationError(field, "must be base64")
        return payload

    @staticmethod
    def sanitize(value: Any, field: str, max_length: int = 1000) -> str:
        if not isinstance(value, str):
            raise ValidationError(field, "must be a string")
        return value.strip()[:max_length]

    @classmethod
    def validate_request(cls, body: Any) -> EntryPassRequest:
        """
        Validate a decoded JSON body and build the typed request.

        Every known field that is present is checked, whatever the action;
        then the action's required fields are enforced.
        """
        if not isinstance(body, dict):
            raise ValidationError("body", "must be a JSON object")

        action = cls.validate_action(body.get("action"))
        clean: Dict[str, Any] = {"action": action}

        if "token" in body:
            clean["token"] = cls.validate_token(body["token"])
        if "pin" in body:
            clean["pin"] = cls.validate_pin(body["pin"])
        if "row_hash" in body:
            clean["row_hash"] = cls.validate_row_hash(body["row_hash"])

        optional = _present_optional(body)
        if "to" in optional:
            clean["to"] = cls.validate_email(optional["to"], "to")
        for url_field in ("baseUrl", "pdfUrl"):
            if url_field in optional:
                clean[url_field] = cls.validate_url(optional[url_field], url_field)
        if "pdfBase64" in optional:
            clean["pdfBase64"] = cls.validate_base64(optional["pdfBase64"])
        for text_field, limit in _TEXT_LIMITS.items():
            if text_field in optional:
                clean[text_field] = cls.sanitize(optional[text_field], text_field, limit)

        for field in _REQUIRED_FIELDS[action]:
            if field not in clean:
                raise ValidationError(field, "is required")

        return _REQUEST_MODELS[action].model_validate(clean)


def _present_optional(body: Dict[str, Any]) -> Dict[str, Any]:
    """Optional fields that carry a value; null and blank strings count as absent."""
    names = ("to", "baseUrl", "pdfUrl", "pdfBase64", *_TEXT_LIMITS.keys())
    present: Dict[str, Any] = {}
    for name in names:
        value = body.get(name)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        present[name] = value
    return present
