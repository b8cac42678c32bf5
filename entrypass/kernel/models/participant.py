"""
Paid participant rows imported from the registration sheet.
"""

from typing import Any, Dict, List

from sqlalchemy import Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from entrypass.kernel.models.base import Base, TimestampMixin


class PaidParticipant(Base, TimestampMixin):
    """
    One paid participant. Written in bulk by the sheet sync; read-only here.

    `headers` keeps the source column order; `data` maps header -> cell value.
    """

    __tablename__ = "paidparticipants"

    row_hash: Mapped[str] = mapped_column(String(128), primary_key=True)
    row_number: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    headers: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    def to_view(self) -> Dict[str, Any]:
        return {
            "row_number": self.row_number,
            "headers": list(self.headers or []),
            "data": dict(self.data or {}),
        }
