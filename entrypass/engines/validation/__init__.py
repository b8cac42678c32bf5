"""
Validation engine - structural request checks run before any business logic.
"""

from entrypass.engines.validation.request_validator import RequestValidator

__all__ = ["RequestValidator"]
