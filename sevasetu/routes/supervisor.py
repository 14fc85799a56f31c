"""
Supervisor endpoints - review queue and binding decisions.
"""

from typing import List
from fastapi import APIRouter

from sevasetu.models.complaint import Complaint, DecisionRequest
from sevasetu.services.container import get_container

router = APIRouter(prefix="/supervisor", tags=["Supervisor"])


@router.get("/queue", response_model=List[Complaint])
async def review_queue():
    """Complaints in Flagged or Pending Approval."""
    return get_container().supervisor.review_queue()


@router.post("/complaints/{complaint_id}/decision", response_model=Complaint)
async def decide(complaint_id: str, payload: DecisionRequest):
    return get_container().supervisor.decide(
        complaint_id,
        payload.decision,
        payload.notes,
        payload.supervisor_id,
    )
