"""
Complaint endpoints - citizen submission, lookup and dispatcher actions.
"""

from typing import List, Optional
from fastapi import APIRouter, Query, status
import logging

from sevasetu.models.complaint import AssignRequest, Complaint, ComplaintCreate, ComplaintStatus
from sevasetu.services.container import get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/complaints", tags=["Complaints"])


@router.post("", response_model=Complaint, status_code=status.HTTP_201_CREATED)
async def submit_complaint(payload: ComplaintCreate):
    """
    Submit a new citizen complaint.

    The complaint starts in Submitted with a 48h SLA. Coordinates must be
    inside the service area.
    """
    logger.info(f"📝 POST /complaints - {payload.issue_type.value} at {payload.location_name or 'unnamed location'}")
    return get_container().complaints.submit_complaint(payload)


@router.get("", response_model=List[Complaint])
async def list_complaints(
    status_filter: Optional[ComplaintStatus] = Query(None, alias="status", description="Filter by status"),
    officer_id: Optional[str] = Query(None, alias="officerId", description="Filter by assigned officer"),
):
    return get_container().complaints.list_complaints(
        status=status_filter.value if status_filter else None,
        officer_id=officer_id,
    )


@router.get("/{complaint_id}", response_model=Complaint)
async def get_complaint(complaint_id: str):
    return get_container().complaints.get_complaint(complaint_id)


@router.get("/{complaint_id}/transitions")
async def get_allowed_transitions(complaint_id: str):
    """Current status, the lifecycle events legal from it, and SLA state."""
    return get_container().complaints.allowed_events(complaint_id)


@router.post("/{complaint_id}/assign", response_model=Complaint)
async def assign_complaint(complaint_id: str, payload: AssignRequest):
    return get_container().complaints.assign(complaint_id, payload.officer_id)


@router.post("/{complaint_id}/close", response_model=Complaint)
async def close_complaint(complaint_id: str):
    """Administrative closure of verified work."""
    return get_container().complaints.close(complaint_id)
