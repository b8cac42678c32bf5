"""
CORS headers and error bodies shared by the router, middleware and exception
handlers.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from entrypass.config import Settings, get_settings
from entrypass.errors import INTERNAL_ERROR_MESSAGE, EntryPassError

ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type, x-admin-secret"
ALLOW_METHODS = "POST, OPTIONS"


def cors_headers(origin: Optional[str], settings: Optional[Settings] = None) -> Dict[str, str]:
    """
    Pick Access-Control-Allow-Origin: the request origin if allow-listed,
    else the PUBLIC_APP_URL origin, else "*".
    """
    settings = settings or get_settings()
    allow_list = settings.cors_origin_list
    if origin and origin in allow_list:
        allow_origin = origin
    else:
        allow_origin = settings.public_app_origin or "*"
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Access-Control-Allow-Methods": ALLOW_METHODS,
    }


def response_headers(request: Request) -> Dict[str, str]:
    headers = cors_headers(request.headers.get("origin"))
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers["X-Request-ID"] = req_id
    return headers


def error_body(message: str, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "ok": False,
        "error": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    body.update(extra)
    return body


def error_response(request: Request, exc: EntryPassError) -> JSONResponse:
    settings = get_settings()
    message = exc.message
    if not exc.expose and settings.is_production:
        message = INTERNAL_ERROR_MESSAGE
    headers = response_headers(request)
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        headers["Retry-After"] = str(max(1, int(round(retry_after))))
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, **exc.extra()),
        headers=headers,
    )
