"""
The entry pass endpoint.

One POST route; the `action` field selects the operation. Every request goes
through the same gates in the same order:

1. request validation (no external state)
2. per-(IP, action) rate limit
3. admin gate, for admin actions only
4. the action handler
"""

import json

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from entrypass.api.deps import AdminGateDep, Guard, Service, get_client_ip
from entrypass.api.responses import response_headers
from entrypass.config import get_settings
from entrypass.engines.validation import RequestValidator
from entrypass.errors import PayloadTooLarge, RateLimited, ValidationError
from entrypass.logging_config import get_logger, mask_ip
from entrypass.schemas.entry_pass import ADMIN_ACTIONS, Action, BulkSendResponse

logger = get_logger(__name__)

router = APIRouter()


async def _read_json(request: Request) -> object:
    raw = await request.body()
    if len(raw) > get_settings().max_request_bytes:
        raise PayloadTooLarge()
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError, RecursionError):
        raise ValidationError("body", "invalid JSON")


@router.post("/entry_pass")
async def entry_pass(
    request: Request,
    guard: Guard,
    admin_gate: AdminGateDep,
    service: Service,
):
    """Dispatch an entry pass action."""
    body = await _read_json(request)
    data = RequestValidator.validate_request(body)

    guard.cleanup()
    client_ip = get_client_ip(request)
    decision = guard.check_request(client_ip, data.action.value)
    if not decision.allowed:
        logger.warning("Rate limit exceeded for %s", mask_ip(client_ip))
        raise RateLimited(retry_after=decision.retry_after)

    if data.action in ADMIN_ACTIONS:
        identity = await admin_gate.authorize(request.headers)
        logger.info("Admin action %s via %s", data.action.value, identity.method)

    if data.action == Action.GENERATE_LINK:
        result = await service.generate_link(data)
    elif data.action == Action.RESOLVE:
        result = await service.resolve(data)
    elif data.action == Action.CHECK_IN:
        result = await service.check_in(data, client_ip)
    elif data.action == Action.SEND_EMAIL:
        result = await service.send_email(data)
    else:
        result = await service.bulk_send(data)

    return JSONResponse(
        content=result.model_dump(exclude_none=isinstance(result, BulkSendResponse)),
        headers=response_headers(request),
    )
