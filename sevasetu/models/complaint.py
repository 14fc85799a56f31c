"""
Pydantic models for complaints and their lifecycle records.

Attribute names are snake_case in Python; the serialized form (API responses,
Firestore documents) uses the camelCase field names shared with the frontend.

DESIGN PRINCIPLE:
- Models reflect data structure, not business logic
- Status changes belong to the lifecycle controller, never to the models
"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional, List
from enum import Enum


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase field names."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class IssueType(str, Enum):
    """Closed set of civic issue categories a citizen can report."""
    POTHOLE = "Pothole"
    STREET_LIGHT = "Street Light"
    WATER_LEAK = "Water Leak"
    WASTE_MANAGEMENT = "Waste Management"
    OTHER = "Other"


class ComplaintStatus(str, Enum):
    """
    Complaint lifecycle states.

    SUBMITTED → ASSIGNED → IN_PROGRESS → PENDING_VERIFICATION
      → FLAGGED | PENDING_APPROVAL → VERIFIED → CLOSED
    """
    SUBMITTED = "Submitted"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    PENDING_VERIFICATION = "Pending Verification"  # Automated verification running
    FLAGGED = "Flagged"                            # Automated verification failed
    PENDING_APPROVAL = "Pending Approval"          # Waiting for supervisor
    VERIFIED = "Verified"                          # Supervisor approved
    CLOSED = "Closed"                              # Terminal


class Verdict(str, Enum):
    APPROVED = "APPROVED"
    FLAGGED = "FLAGGED"


class Coordinates(CamelModel):
    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    lng: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class AIAnalysis(CamelModel):
    """
    Result of one automated verification run.
    Immutable once produced.
    """
    gps_match: bool
    timestamp_valid: bool
    change_detected: bool
    quality_check: bool
    confidence_score: int = Field(..., ge=0, le=100)
    verdict: Verdict
    notes: List[str] = Field(default_factory=list)

    class Config:
        frozen = True


class CommunityVotes(CamelModel):
    up: int = Field(default=0, ge=0)
    down: int = Field(default=0, ge=0)


class StatusHistoryEntry(CamelModel):
    """Status transition audit entry."""
    from_status: Optional[ComplaintStatus] = Field(None, alias="from")
    to_status: ComplaintStatus = Field(..., alias="to")
    event: str
    changed_by: str
    timestamp: datetime
    note: Optional[str] = None


class Officer(CamelModel):
    """Field officer reference record (read-only for the lifecycle engine)."""
    id: str
    name: str
    avatar: str = ""
    jobs_completed: int = 0
    avg_time: str = ""
    quality_score: int = 0
    citizen_rating: float = 0.0


class Complaint(CamelModel):
    """
    Aggregate root of the lifecycle engine.
    Owned exclusively by the complaint store.
    """
    id: str = Field(..., description="SS-<year>-<4 digits>")
    issue_type: IssueType
    description: str = ""
    location_name: str = ""
    coordinates: Coordinates
    citizen_photo: str = Field("", description="Opaque evidence artifact reference")
    submission_time: datetime
    estimated_sla: datetime = Field(..., alias="estimatedSLA")
    status: ComplaintStatus = ComplaintStatus.SUBMITTED

    # Officer workflow
    assigned_officer_id: Optional[str] = None
    work_start_time: Optional[datetime] = None
    before_photo: Optional[str] = None
    after_photo: Optional[str] = None
    officer_coordinates: Optional[Coordinates] = None

    # Verification
    ai_analysis: Optional[AIAnalysis] = None
    analysis_history: List[AIAnalysis] = Field(default_factory=list)
    supervisor_notes: Optional[str] = None

    # Community
    community_votes: CommunityVotes = Field(default_factory=CommunityVotes)

    status_history: List[StatusHistoryEntry] = Field(default_factory=list)

    def is_overdue(self, now: datetime) -> bool:
        """True when the SLA deadline has passed and the work is not yet verified."""
        open_states = {ComplaintStatus.VERIFIED, ComplaintStatus.CLOSED}
        return self.status not in open_states and now > self.estimated_sla


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class ComplaintCreate(CamelModel):
    """What a citizen provides when reporting an issue."""
    issue_type: IssueType
    description: str = Field(..., min_length=5, max_length=1000)
    location_name: str = Field("", max_length=200)
    coordinates: Coordinates
    citizen_photo: str = Field("", description="Artifact reference returned by POST /evidence")

    class Config:
        json_schema_extra = {
            "example": {
                "issueType": "Pothole",
                "description": "Deep pothole near the main market entrance.",
                "locationName": "MI Road, Jaipur",
                "coordinates": {"lat": 26.9124, "lng": 75.8090},
                "citizenPhoto": "evidence://sha256/ab12",
            }
        }


class AssignRequest(CamelModel):
    officer_id: str


class LocationCheckRequest(CamelModel):
    """Observed officer position; omitted means "ask the position source"."""
    coordinates: Optional[Coordinates] = None


class WorkSubmission(CamelModel):
    before_photo: Optional[str] = None
    after_photo: Optional[str] = None


class GeofenceCheckResponse(CamelModel):
    complaint_id: str
    passed: bool
    distance_meters: float
    tolerance_meters: float
    observed: Coordinates


class Decision(str, Enum):
    APPROVE = "Approve"
    REJECT = "Reject"


class DecisionRequest(CamelModel):
    decision: Decision
    notes: str = Field("", max_length=2000)
    supervisor_id: str = "supervisor"


class VoteDirection(str, Enum):
    UP = "Up"
    DOWN = "Down"


class VoteRequest(CamelModel):
    direction: VoteDirection
