"""
Check-in ledger: at most one row per participant.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from entrypass.kernel.models.base import Base


class Checkin(Base):
    """Event-day admission record keyed by the participant's row_hash."""

    __tablename__ = "checkins"

    row_hash: Mapped[str] = mapped_column(String(128), primary_key=True)
    checked_in_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    # Partial requester IP or operator identity
    checked_in_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def to_view(self) -> Dict[str, Any]:
        return {
            "row_hash": self.row_hash,
            "checked_in_at": self.checked_in_at.isoformat() if self.checked_in_at else None,
            "checked_in_by": self.checked_in_by,
        }
