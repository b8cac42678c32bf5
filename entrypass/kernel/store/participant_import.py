"""
Turn a participant table (header row + value rows) into store rows.

row_hash is the sha256 hex digest of the compact JSON `{"rowNumber": n,
"data": {...}}`, so identical rows at different positions stay distinct and a
re-import of the same sheet yields the same hashes.
"""

import hashlib
import json
from typing import Any, Dict, Iterable, List, Sequence

FIRST_DATA_ROW = 2  # sheet row 1 holds the headers


def compute_row_hash(row_number: int, data: Dict[str, Any]) -> str:
    encoded = json.dumps(
        {"rowNumber": row_number, "data": data},
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def map_row(headers: Sequence[str], values: Sequence[Any]) -> Dict[str, Any]:
    """Pair headers with cell values; short rows are padded with empty strings."""
    return {h: (values[i] if i < len(values) else "") for i, h in enumerate(headers)}


def build_participant_rows(
    headers: Sequence[str],
    rows: Iterable[Sequence[Any]],
) -> List[Dict[str, Any]]:
    header_list = [str(h) for h in headers]
    result = []
    for offset, values in enumerate(rows):
        if not any(str(v).strip() for v in values if v is not None):
            continue
        row_number = FIRST_DATA_ROW + offset
        data = map_row(header_list, values)
        result.append({
            "row_hash": compute_row_hash(row_number, data),
            "row_number": row_number,
            "headers": header_list,
            "data": data,
        })
    return result
