"""
Abuse guard: request rate limiting and PIN attempt lockout.

Both limiters are fixed-window, in-memory and per process. Windows reset
lazily on the first hit after they elapse. Callers only see `check(key)`, so
a shared backend can replace these classes for multi-instance deployments.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol


@dataclass(frozen=True)
class LimitDecision:
    """Outcome of a limiter check."""

    allowed: bool
    retry_after: Optional[float] = None  # seconds until the key may retry
    locked_until: Optional[int] = None  # epoch milliseconds, PIN lockout only


class Limiter(Protocol):
    def check(self, key: str) -> LimitDecision: ...


@dataclass
class _Window:
    count: int
    started: float
    locked_until: Optional[float] = None


class FixedWindowLimiter:
    """Fixed-window counter. Key -> (count, window_start)."""

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.time,
    ):
        self.limit = max(1, limit)
        self.window_seconds = window_seconds
        self.clock = clock
        self._data: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, key: str) -> LimitDecision:
        """Count a hit for `key`. Denied hits are not counted."""
        now = self.clock()
        with self._lock:
            entry = self._data.get(key)
            if entry is None or now - entry.started >= self.window_seconds:
                self._data[key] = _Window(count=1, started=now)
                return LimitDecision(allowed=True)
            if entry.count >= self.limit:
                return LimitDecision(
                    allowed=False,
                    retry_after=max(0.0, entry.started + self.window_seconds - now),
                )
            entry.count += 1
            return LimitDecision(allowed=True)

    def peek(self, key: str) -> Optional[int]:
        """Current count for `key` without counting a hit."""
        with self._lock:
            entry = self._data.get(key)
            return entry.count if entry else None

    def cleanup_old(self, max_age_seconds: float = 3600) -> int:
        """Remove entries older than max_age_seconds to avoid unbounded growth."""
        now = self.clock()
        with self._lock:
            stale = [k for k, e in self._data.items() if now - e.started > max_age_seconds]
            for k in stale:
                del self._data[k]
        return len(stale)

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._data.clear()
            else:
                self._data.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class PinAttemptLimiter(FixedWindowLimiter):
    """
    Fixed-window attempt counter with lockout.

    The attempt after `limit` inside a window locks the key for
    `lockout_seconds`. While locked every attempt is denied, whatever the
    window says.
    """

    def __init__(
        self,
        limit: int = 5,
        window_seconds: float = 60,
        lockout_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(limit, window_seconds, clock)
        self.lockout_seconds = lockout_seconds

    def check(self, key: str) -> LimitDecision:
        now = self.clock()
        with self._lock:
            entry = self._data.get(key)

            if entry is not None and entry.locked_until is not None and now < entry.locked_until:
                return self._locked(entry.locked_until, now)

            if entry is None or entry.locked_until is not None or now - entry.started >= self.window_seconds:
                self._data[key] = _Window(count=1, started=now)
                return LimitDecision(allowed=True)

            if entry.count >= self.limit:
                entry.locked_until = now + self.lockout_seconds
                return self._locked(entry.locked_until, now)

            entry.count += 1
            return LimitDecision(allowed=True)

    def locked_until(self, key: str) -> Optional[int]:
        """Lockout expiry for `key` in epoch ms, if currently locked."""
        now = self.clock()
        with self._lock:
            entry = self._data.get(key)
            if entry is None or entry.locked_until is None or now >= entry.locked_until:
                return None
            return int(entry.locked_until * 1000)

    def cleanup_old(self, max_age_seconds: float = 3600) -> int:
        now = self.clock()
        with self._lock:
            stale = [
                k for k, e in self._data.items()
                if now - e.started > max_age_seconds
                and (e.locked_until is None or now >= e.locked_until)
            ]
            for k in stale:
                del self._data[k]
        return len(stale)

    @staticmethod
    def _locked(locked_until: float, now: float) -> LimitDecision:
        return LimitDecision(
            allowed=False,
            retry_after=max(0.0, locked_until - now),
            locked_until=int(locked_until * 1000),
        )


def request_key(ip: str, action: str) -> str:
    return f"{ip}:{action}"


def pin_key(ip: str, token: str) -> str:
    return f"{ip}:{token[:16]}"


class AbuseGuard:
    """The two limiters the entry pass endpoint shares across requests."""

    def __init__(self, requests: FixedWindowLimiter, pins: PinAttemptLimiter):
        self.requests = requests
        self.pins = pins

    def check_request(self, ip: str, action: str) -> LimitDecision:
        return self.requests.check(request_key(ip, action))

    def check_pin(self, ip: str, token: str) -> LimitDecision:
        return self.pins.check(pin_key(ip, token))

    def cleanup(self, max_age_seconds: float = 7200) -> None:
        self.requests.cleanup_old(max_age_seconds)
        self.pins.cleanup_old(max_age_seconds)

    def reset(self) -> None:
        self.requests.reset()
        self.pins.reset()

    def snapshot(self) -> Dict[str, int]:
        return {"request_keys": len(self.requests), "pin_keys": len(self.pins)}


# Module-level guard (single process)
_guard: Optional[AbuseGuard] = None


def get_abuse_guard() -> AbuseGuard:
    global _guard
    if _guard is None:
        from entrypass.config import get_settings

        settings = get_settings()
        _guard = AbuseGuard(
            requests=FixedWindowLimiter(
                settings.rate_limit_max_requests,
                settings.rate_limit_window_seconds,
            ),
            pins=PinAttemptLimiter(
                settings.pin_max_attempts,
                settings.rate_limit_window_seconds,
                settings.pin_lockout_seconds,
            ),
        )
    return _guard
