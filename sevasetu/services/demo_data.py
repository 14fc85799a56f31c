"""
Demo officers and complaints for local development and demos.

Complaint timestamps are relative to the given "now".
"""

from datetime import datetime, timedelta
from typing import List
import logging

from sevasetu.core.exceptions import Conflict
from sevasetu.models.complaint import (
    AIAnalysis,
    CommunityVotes,
    Complaint,
    ComplaintStatus,
    Coordinates,
    IssueType,
    Officer,
    StatusHistoryEntry,
    Verdict,
)
from sevasetu.services.complaint_store import ComplaintStore

logger = logging.getLogger(__name__)


DEMO_OFFICERS: List[Officer] = [
    Officer(id="OFF-001", name="Rajesh Kumar", avatar="RK", jobs_completed=142, avg_time="3.5h", quality_score=98, citizen_rating=4.8),
    Officer(id="OFF-002", name="Suresh Singh", avatar="SS", jobs_completed=89, avg_time="4.2h", quality_score=92, citizen_rating=4.5),
    Officer(id="OFF-003", name="Anita Desai", avatar="AD", jobs_completed=210, avg_time="2.8h", quality_score=99, citizen_rating=4.9),
    Officer(id="OFF-004", name="Vikram Mehta", avatar="VM", jobs_completed=65, avg_time="5.1h", quality_score=85, citizen_rating=4.0),
    Officer(id="OFF-005", name="Priya Sharma", avatar="PS", jobs_completed=112, avg_time="3.9h", quality_score=94, citizen_rating=4.7),
]


def _photo(n: int) -> str:
    return f"https://picsum.photos/400/300?random={n}"


def demo_complaints(now: datetime) -> List[Complaint]:
    hours = lambda h: timedelta(hours=h)

    def seeded(status: ComplaintStatus, submitted: datetime) -> List[StatusHistoryEntry]:
        return [StatusHistoryEntry(from_status=None, to_status=status, event="seed", changed_by="seed", timestamp=submitted)]

    return [
        Complaint(
            id="SS-2024-1024",
            issue_type=IssueType.POTHOLE,
            description="Deep pothole near the main market entrance, causing traffic slowdown.",
            location_name="MI Road, Jaipur",
            coordinates=Coordinates(lat=26.9124, lng=75.8090),
            citizen_photo=_photo(1),
            submission_time=now - hours(4),
            estimated_sla=now + hours(44),
            status=ComplaintStatus.ASSIGNED,
            assigned_officer_id="OFF-001",
            community_votes=CommunityVotes(up=5, down=0),
            status_history=seeded(ComplaintStatus.ASSIGNED, now - hours(4)),
        ),
        Complaint(
            id="SS-2024-1025",
            issue_type=IssueType.STREET_LIGHT,
            description="Street light flickering constantly near park gate.",
            location_name="Vaishali Nagar",
            coordinates=Coordinates(lat=26.9050, lng=75.7450),
            citizen_photo=_photo(2),
            submission_time=now - hours(24),
            estimated_sla=now + hours(24),
            status=ComplaintStatus.PENDING_VERIFICATION,
            assigned_officer_id="OFF-002",
            officer_coordinates=Coordinates(lat=26.90502, lng=75.74501),
            before_photo=_photo(3),
            after_photo=_photo(4),
            status_history=seeded(ComplaintStatus.PENDING_VERIFICATION, now - hours(24)),
        ),
        Complaint(
            id="SS-2024-1026",
            issue_type=IssueType.WATER_LEAK,
            description="Main pipeline leaking water on the street.",
            location_name="Mansarovar Sector 5",
            coordinates=Coordinates(lat=26.8550, lng=75.7650),
            citizen_photo=_photo(5),
            submission_time=now - hours(50),
            estimated_sla=now - hours(2),
            status=ComplaintStatus.SUBMITTED,
            community_votes=CommunityVotes(up=12, down=1),
            status_history=seeded(ComplaintStatus.SUBMITTED, now - hours(50)),
        ),
        Complaint(
            id="SS-2024-1020",
            issue_type=IssueType.WASTE_MANAGEMENT,
            description="Garbage not collected for 3 days.",
            location_name="Raja Park",
            coordinates=Coordinates(lat=26.8900, lng=75.8200),
            citizen_photo=_photo(6),
            submission_time=now - hours(72),
            estimated_sla=now - hours(24),
            status=ComplaintStatus.VERIFIED,
            assigned_officer_id="OFF-003",
            before_photo=_photo(7),
            after_photo=_photo(8),
            ai_analysis=AIAnalysis(
                gps_match=True,
                timestamp_valid=True,
                change_detected=True,
                quality_check=True,
                confidence_score=96,
                verdict=Verdict.APPROVED,
                notes=["Clear difference detected", "Coordinates match within 3m"],
            ),
            community_votes=CommunityVotes(up=45, down=2),
            status_history=seeded(ComplaintStatus.VERIFIED, now - hours(72)),
        ),
        Complaint(
            id="SS-2024-1030",
            issue_type=IssueType.OTHER,
            description="Broken bench in the public park.",
            location_name="Central Park",
            coordinates=Coordinates(lat=26.9100, lng=75.8000),
            citizen_photo=_photo(9),
            submission_time=now - hours(1),
            estimated_sla=now + hours(47),
            status=ComplaintStatus.PENDING_APPROVAL,
            assigned_officer_id="OFF-004",
            before_photo=_photo(10),
            after_photo=_photo(11),
            ai_analysis=AIAnalysis(
                gps_match=True,
                timestamp_valid=True,
                change_detected=True,
                quality_check=True,
                confidence_score=89,
                verdict=Verdict.APPROVED,
                notes=["Good cleanup visible"],
            ),
            status_history=seeded(ComplaintStatus.PENDING_APPROVAL, now - hours(1)),
        ),
    ]


def seed_demo_complaints(store: ComplaintStore, now: datetime) -> int:
    """Insert the demo complaints that are not already present. Returns the count inserted."""
    inserted = 0
    for complaint in demo_complaints(now):
        try:
            store.create(complaint)
            inserted += 1
        except Conflict:
            logger.info(f"[SEED] {complaint.id} already present, skipping")
    return inserted
