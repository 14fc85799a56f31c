"""
Community endpoints - public view of completed work and voting.
"""

from typing import List
from fastapi import APIRouter

from sevasetu.models.complaint import CommunityVotes, Complaint, VoteRequest
from sevasetu.services.container import get_container

router = APIRouter(prefix="/community", tags=["Community"])


@router.get("/completed", response_model=List[Complaint])
async def completed_work():
    return get_container().feedback.completed_work()


@router.post("/complaints/{complaint_id}/vote", response_model=CommunityVotes)
async def vote(complaint_id: str, payload: VoteRequest):
    """Anonymous up/down vote; only Verified or Closed complaints accept votes."""
    return get_container().feedback.vote(complaint_id, payload.direction)
