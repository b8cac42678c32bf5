"""
Transport checks for the entry pass endpoint, run before routing.

- OPTIONS: CORS preflight, 200 "ok"
- anything but POST: 405
- crawler user agents: 403 (BLOCK_BOTS)
- declared Content-Length over the limit: 413

The actual body size is checked again by the route once it is read.
"""

import re
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

from entrypass.config import get_settings
from entrypass.errors import Forbidden, MethodNotAllowed, PayloadTooLarge
from entrypass.logging_config import get_logger, mask_ip
from entrypass.api.deps import get_client_ip, get_user_agent
from entrypass.api.responses import error_response, response_headers

logger = get_logger(__name__)

ENTRY_PASS_PATH = "/entry_pass"
BOT_USER_AGENT = re.compile(r"bot|crawler|spider", re.IGNORECASE)


class RequestGuardMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path.rstrip("/") != ENTRY_PASS_PATH:
            return await call_next(request)

        settings = get_settings()

        if request.method == "OPTIONS":
            return PlainTextResponse("ok", headers=response_headers(request))
        if request.method != "POST":
            return error_response(request, MethodNotAllowed())

        if settings.block_bots and BOT_USER_AGENT.search(get_user_agent(request)):
            logger.warning("Blocked crawler request from %s", mask_ip(get_client_ip(request)))
            return error_response(request, Forbidden())

        content_length = request.headers.get("content-length")
        if content_length:
            try:
                declared = int(content_length)
            except ValueError:
                declared = 0
            if declared > settings.max_request_bytes:
                return error_response(request, PayloadTooLarge())

        return await call_next(request)
