"""
Field officer endpoints - start work, geofence check, evidence, submission.
"""

from typing import List, Optional
from fastapi import APIRouter, Request, status

from sevasetu.models.complaint import (
    Complaint,
    ComplaintStatus,
    GeofenceCheckResponse,
    LocationCheckRequest,
    Officer,
    WorkSubmission,
)
from sevasetu.services.container import get_container

router = APIRouter(tags=["Officer"])


@router.get("/officers", response_model=List[Officer])
async def list_officers():
    return get_container().roster.list_officers()


@router.get("/officer/{officer_id}/jobs", response_model=List[Complaint])
async def list_officer_jobs(officer_id: str):
    """Jobs the officer still has to act on (Assigned or In Progress)."""
    container = get_container()
    container.roster.lookup(officer_id)
    jobs = container.complaints.list_complaints(officer_id=officer_id)
    return [job for job in jobs if job.status in (ComplaintStatus.ASSIGNED, ComplaintStatus.IN_PROGRESS)]


@router.post("/officer/complaints/{complaint_id}/start", response_model=Complaint)
async def start_work(complaint_id: str):
    return get_container().complaints.start_work(complaint_id)


@router.post("/officer/complaints/{complaint_id}/verify-location", response_model=GeofenceCheckResponse)
async def verify_location(complaint_id: str, payload: Optional[LocationCheckRequest] = None):
    """
    Geofence check. Omit coordinates to use the device position source.

    A 422 GeofenceFailed response is retryable after moving closer.
    """
    observed = payload.coordinates if payload else None
    return get_container().complaints.verify_location(complaint_id, observed)


@router.post(
    "/officer/complaints/{complaint_id}/submit",
    response_model=Complaint,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_work(complaint_id: str, payload: WorkSubmission):
    """Attach before/after evidence and queue automated verification."""
    return get_container().complaints.submit_work(complaint_id, payload.before_photo, payload.after_photo)


@router.post("/evidence", status_code=status.HTTP_201_CREATED)
async def upload_evidence(request: Request):
    """Store raw image bytes (request body) and return an opaque artifact reference."""
    raw = await request.body()
    content_type = request.headers.get("content-type", "application/octet-stream")
    return {"artifactRef": get_container().complaints.store_evidence(raw, content_type)}
