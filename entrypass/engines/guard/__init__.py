"""
Abuse guard: per-(IP, action) request limits and per-(IP, token) PIN lockout.
"""

from entrypass.engines.guard.rate_limiter import (
    AbuseGuard,
    FixedWindowLimiter,
    LimitDecision,
    PinAttemptLimiter,
    get_abuse_guard,
    pin_key,
    request_key,
)

__all__ = [
    "AbuseGuard",
    "FixedWindowLimiter",
    "LimitDecision",
    "PinAttemptLimiter",
    "get_abuse_guard",
    "pin_key",
    "request_key",
]
