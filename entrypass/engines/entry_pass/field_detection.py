"""
Best-effort detection of recipient email and name in imported sheet rows.

Sheets come with arbitrary, often Japanese, column names. Detectors look for a
header matching one of their patterns and return that cell's value. Results
only address notifications; token and PIN handling never consult them.
"""

import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

EMAIL_VALUE_PATTERN = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)

EMAIL_HEADER_PATTERNS = ("email", "e-mail", "mail", "メール", "メールアドレス")
NAME_HEADER_PATTERNS = ("代表者氏名", "代表者", "氏名", "お名前", "名前", "name", "申込者")


class HeaderPatternDetector:
    """
    Strategy: `(headers, data) -> Optional[str]`.

    Args:
        patterns: Case-insensitive substrings to look for in header names
        accept: Predicate a cell value must satisfy
        scan_all_values: If no header matches, fall back to the first value
            anywhere in the row that satisfies `accept`
    """

    def __init__(
        self,
        patterns: Iterable[str],
        accept: Callable[[Any], bool],
        scan_all_values: bool = False,
    ):
        self.patterns = [p.lower() for p in patterns]
        self.accept = accept
        self.scan_all_values = scan_all_values

    def __call__(
        self,
        headers: Optional[Sequence[Any]],
        data: Optional[Dict[str, Any]],
    ) -> Optional[str]:
        data = data or {}
        for key in _header_names(headers):
            lowered = key.lower()
            if any(p in lowered for p in self.patterns):
                value = data.get(key)
                if self.accept(value):
                    return str(value).strip()
        if self.scan_all_values:
            for value in data.values():
                if self.accept(value):
                    return str(value).strip()
        return None


def _header_names(headers: Optional[Sequence[Any]]) -> List[str]:
    return [str(h) if h is not None else "" for h in (headers or [])]


def _looks_like_email(value: Any) -> bool:
    return isinstance(value, str) and bool(EMAIL_VALUE_PATTERN.search(value))


def _non_empty(value: Any) -> bool:
    if value is None:
        return False
    return bool(str(value).strip())


detect_email = HeaderPatternDetector(EMAIL_HEADER_PATTERNS, _looks_like_email, scan_all_values=True)
detect_name = HeaderPatternDetector(NAME_HEADER_PATTERNS, _non_empty)
