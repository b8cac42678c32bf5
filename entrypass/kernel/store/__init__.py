"""
Participant and check-in persistence.
"""

from entrypass.kernel.store.participant_import import build_participant_rows, compute_row_hash
from entrypass.kernel.store.participant_store import ParticipantStore

__all__ = ["ParticipantStore", "build_participant_rows", "compute_row_hash"]
