"""
Notification dispatch to the external mail provider.
"""

from entrypass.engines.notifications.mailer import (
    Attachment,
    Mailer,
    OutboundEmail,
    ResendMailer,
    resolve_allowed_from,
)

__all__ = [
    "Attachment",
    "Mailer",
    "OutboundEmail",
    "ResendMailer",
    "resolve_allowed_from",
]
