"""API endpoints for the Clarity Snapshot.

POST /clarity-snapshot
    Selection-based intake -> deterministic classification ->
    recognition-first panes. Request validation happens in the pydantic
    models (FastAPI answers 422 before any scoring runs).

DELETE /clarity-snapshot/cache
    Clear the in-process response cache.
"""

from uuid import uuid4

from fastapi import APIRouter, HTTPException

from app.core.logging import get_logger
from app.core.schemas_snapshot import ClaritySnapshotRequest, ClaritySnapshotResponse
from app.core.snapshot_cache import get_snapshot_cache
from app.core.snapshot_pipeline import run_clarity_snapshot

logger = get_logger(__name__)

router = APIRouter(prefix="/clarity-snapshot", tags=["clarity_snapshot"])


@router.post("", response_model=ClaritySnapshotResponse, response_model_exclude_none=True)
async def create_clarity_snapshot(request: ClaritySnapshotRequest) -> ClaritySnapshotResponse:
    """Classify the selections and return narrative panes."""
    request_id = str(uuid4())
    try:
        return await run_clarity_snapshot(request, request_id=request_id)
    except Exception as e:
        logger.exception(f"Clarity snapshot failed for request {request_id}: {e}")
        raise HTTPException(status_code=500, detail="Clarity Snapshot analysis failed") from e


@router.delete("/cache")
def clear_clarity_snapshot_cache() -> dict:
    """Clear cached snapshot responses."""
    get_snapshot_cache().clear()
    logger.info("Clarity snapshot cache cleared")
    return {"success": True, "message": "Cache cleared"}
