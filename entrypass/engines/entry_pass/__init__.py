"""
Entry pass protocol: pass state, recipient detection, mail rendering and the
action handler.
"""

from entrypass.engines.entry_pass.field_detection import (
    HeaderPatternDetector,
    detect_email,
    detect_name,
)
from entrypass.engines.entry_pass.pass_state import PassState, derive_pass_state
from entrypass.engines.entry_pass.service import EntryPassService, build_pass_url

__all__ = [
    "HeaderPatternDetector",
    "detect_email",
    "detect_name",
    "PassState",
    "derive_pass_state",
    "EntryPassService",
    "build_pass_url",
]
