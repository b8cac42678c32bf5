"""
API v1 routes.
"""

from fastapi import APIRouter

from entrypass.api.v1 import entry_pass, health

router = APIRouter()

router.include_router(entry_pass.router, tags=["Entry Pass"])
router.include_router(health.router, tags=["Health"])
