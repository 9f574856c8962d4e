"""API router for v1 endpoints."""

from fastapi import APIRouter

from app.api import clarity_snapshot

router = APIRouter()

# Selection-based business clarity snapshot
router.include_router(clarity_snapshot.router)
