"""
Verification endpoints - progress of automated checks.
"""

from fastapi import APIRouter, HTTPException, status

from sevasetu.services.container import get_container
from sevasetu.services.verification import VerificationRun

router = APIRouter(prefix="/verification", tags=["Verification"])


@router.get("/status")
async def engine_status():
    engine = get_container().verification_engine
    return {
        "concurrency": engine.concurrency,
        "queueCapacity": engine.queue_capacity,
        "queueDepth": engine.queue_depth,
        "inFlight": engine.in_flight,
    }


@router.get("/{complaint_id}", response_model=VerificationRun)
async def get_verification_run(complaint_id: str):
    run = get_container().verification_engine.get_run(complaint_id)
    if run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No verification run recorded for {complaint_id}",
        )
    return run


@router.post("/{complaint_id}/retry", status_code=status.HTTP_202_ACCEPTED)
async def requeue(complaint_id: str):
    """Queue a complaint that is parked in Pending Verification."""
    get_container().verification_engine.enqueue(complaint_id)
    return {"complaintId": complaint_id, "queued": True}
