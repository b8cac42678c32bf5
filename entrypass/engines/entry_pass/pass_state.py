"""
Pass state derivation.

A participant's pass state is never stored; it follows from which records
exist for the row_hash.
"""

from enum import Enum
from typing import Optional

from entrypass.kernel.models import Checkin, PaidParticipant


class PassState(str, Enum):
    """Where a participant stands on event day."""
    NOT_PAID = "not_paid"
    PAID_PENDING = "paid_pending"
    CHECKED_IN = "checked_in"


def derive_pass_state(
    participant: Optional[PaidParticipant],
    checkin: Optional[Checkin],
) -> PassState:
    if participant is None:
        return PassState.NOT_PAID
    if checkin is None or checkin.checked_in_at is None:
        return PassState.PAID_PENDING
    return PassState.CHECKED_IN
