"""
Optional PDF attachment for entry pass emails.

Either inline (`pdfBase64` + `pdfName`) or fetched from `pdfUrl`.
"""

import base64
from typing import Optional
from urllib.parse import urlparse

import httpx

from entrypass.config import Settings, get_settings
from entrypass.engines.notifications.mailer import Attachment
from entrypass.errors import UpstreamError, ValidationError
from entrypass.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_PDF_NAME = "event-instructions.pdf"


def _pdf_filename(url: str) -> str:
    name = urlparse(url).path.rsplit("/", 1)[-1] or DEFAULT_PDF_NAME
    return name if name.endswith(".pdf") else f"{name}.pdf"


async def fetch_pdf_attachment(
    pdf_url: str,
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Attachment:
    """Download a PDF and wrap it as a base64 attachment."""
    settings = settings or get_settings()
    try:
        async with httpx.AsyncClient(
            timeout=settings.http_timeout_seconds,
            transport=transport,
            follow_redirects=True,
        ) as client:
            response = await client.get(pdf_url)
    except httpx.HTTPError as e:
        logger.warning("PDF fetch failed: %s", type(e).__name__)
        raise UpstreamError("Failed to fetch PDF attachment") from e

    if response.status_code >= 400:
        raise UpstreamError(f"Failed to fetch PDF attachment: HTTP {response.status_code}")
    content_type = response.headers.get("content-type", "")
    if "application/pdf" not in content_type:
        raise ValidationError("pdfUrl", "does not point to a PDF")

    return Attachment(
        filename=_pdf_filename(pdf_url),
        content=base64.b64encode(response.content).decode("ascii"),
    )


async def resolve_attachment(
    pdf_base64: Optional[str],
    pdf_name: Optional[str],
    pdf_url: Optional[str],
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[Attachment]:
    if pdf_base64 and pdf_name:
        return Attachment(filename=pdf_name, content=pdf_base64)
    if pdf_url:
        return await fetch_pdf_attachment(pdf_url, settings, transport)
    return None
