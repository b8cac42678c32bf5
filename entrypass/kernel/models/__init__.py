"""
Participant and check-in tables.
"""

from entrypass.kernel.models.base import Base, TimestampMixin
from entrypass.kernel.models.participant import PaidParticipant
from entrypass.kernel.models.checkin import Checkin

__all__ = [
    "Base",
    "TimestampMixin",
    "PaidParticipant",
    "Checkin",
]
