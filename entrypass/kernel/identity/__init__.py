"""
Identity core: entry pass tokens and the admin gate.
"""

from entrypass.kernel.identity.entry_token import (
    EntryTokenCodec,
    EntryTokenPayload,
    get_token_codec,
    reset_token_codec,
)
from entrypass.kernel.identity.admin_gate import AdminGate, AdminIdentity

__all__ = [
    "EntryTokenCodec",
    "EntryTokenPayload",
    "get_token_codec",
    "reset_token_codec",
    "AdminGate",
    "AdminIdentity",
]
