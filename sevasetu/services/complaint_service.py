"""
Complaint Service - citizen, dispatcher and field-officer workflows.

DESIGN PRINCIPLES:
- Every status change goes through LifecycleController
- Service-area bounds are checked for citizen and officer positions
- Geofence failures are retryable and write nothing
- A submission is only accepted if a verification slot could be reserved
"""

from datetime import timedelta
from typing import Dict, List, Optional
import logging
import random

from sevasetu.core.exceptions import Conflict, GeofenceFailed, InvalidTransition, OutOfServiceArea
from sevasetu.core.settings import settings
from sevasetu.models.complaint import (
    Complaint,
    ComplaintCreate,
    ComplaintStatus,
    Coordinates,
    GeofenceCheckResponse,
)
from sevasetu.services.collaborators import Clock, EvidenceStore, PositionSource, SystemClock
from sevasetu.services.complaint_store import ComplaintStore, generate_complaint_id
from sevasetu.services.geofence import GeofenceValidator
from sevasetu.services.status_workflow import LifecycleController
from sevasetu.services.verification import VerificationEngine
from sevasetu.utils.geo import ServiceArea

logger = logging.getLogger(__name__)


class ComplaintService:
    """Actor-facing operations over the lifecycle engine."""

    MAX_ID_ATTEMPTS = 50

    def __init__(
        self,
        store: ComplaintStore,
        controller: LifecycleController,
        engine: VerificationEngine,
        geofence: GeofenceValidator,
        position_source: PositionSource,
        evidence_store: EvidenceStore,
        clock: Optional[Clock] = None,
        service_area: Optional[ServiceArea] = None,
        sla_hours: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.controller = controller
        self.engine = engine
        self.geofence = geofence
        self.position_source = position_source
        self.evidence_store = evidence_store
        self.clock = clock or SystemClock()
        self.service_area = service_area or ServiceArea.from_settings()
        self.sla_hours = settings.SLA_HOURS if sla_hours is None else sla_hours
        self.rng = rng or random.Random()

    def _require_in_service_area(self, coordinates: Coordinates, who: str) -> None:
        if not self.service_area.contains(coordinates.lat, coordinates.lng):
            raise OutOfServiceArea(
                f"{who} position ({coordinates.lat}, {coordinates.lng}) is outside the service area {self.service_area}"
            )

    # ------------------------------------------------------------------
    # Citizen
    # ------------------------------------------------------------------

    def submit_complaint(self, data: ComplaintCreate) -> Complaint:
        """
        Create a complaint in Submitted with a 48h SLA.

        Raises:
            OutOfServiceArea: Coordinates outside the service area
        """
        self._require_in_service_area(data.coordinates, "Reported")

        now = self.clock.now()
        for _ in range(self.MAX_ID_ATTEMPTS):
            complaint = Complaint(
                id=generate_complaint_id(now.year, self.rng),
                issue_type=data.issue_type,
                description=data.description,
                location_name=data.location_name,
                coordinates=data.coordinates,
                citizen_photo=data.citizen_photo,
                submission_time=now,
                estimated_sla=now + timedelta(hours=self.sla_hours),
            )
            try:
                created = self.controller.register(complaint)
            except Conflict:
                continue
            logger.info(f"📝 Complaint {created.id} submitted ({created.issue_type.value}, {created.location_name})")
            return created

        raise Conflict(f"Could not allocate a complaint id for {now.year} after {self.MAX_ID_ATTEMPTS} attempts")

    def store_evidence(self, raw: bytes, content_type: str = "image/jpeg") -> str:
        return self.evidence_store.store(raw, content_type)

    def get_complaint(self, complaint_id: str) -> Complaint:
        return self.store.get(complaint_id)

    def list_complaints(self, status: Optional[str] = None, officer_id: Optional[str] = None) -> List[Complaint]:
        return self.store.list(status=status, officer_id=officer_id)

    def allowed_events(self, complaint_id: str) -> Dict:
        complaint = self.store.get(complaint_id)
        return {
            "complaintId": complaint.id,
            "status": complaint.status.value,
            "allowedEvents": self.controller.allowed_events(complaint.status),
            "overdue": complaint.is_overdue(self.clock.now()),
        }

    # ------------------------------------------------------------------
    # Dispatcher / admin
    # ------------------------------------------------------------------

    def assign(self, complaint_id: str, officer_id: str) -> Complaint:
        return self.controller.assign(complaint_id, officer_id)

    def close(self, complaint_id: str, note: Optional[str] = None) -> Complaint:
        return self.controller.close(complaint_id, note=note)

    # ------------------------------------------------------------------
    # Field officer
    # ------------------------------------------------------------------

    def start_work(self, complaint_id: str) -> Complaint:
        return self.controller.start_work(complaint_id, changed_by=self._officer_of(complaint_id))

    def verify_location(self, complaint_id: str, observed: Optional[Coordinates] = None) -> GeofenceCheckResponse:
        """
        Check the officer's position against the complaint location.

        On a pass the position is recorded as officer_coordinates, which
        unlocks work submission. Not a status transition.

        Raises:
            InvalidTransition: Complaint is not In Progress
            OutOfServiceArea: Observed position outside the service area
            GeofenceFailed: Too far away (retryable, nothing written)
        """
        target = self.store.get(complaint_id).coordinates
        if observed is None:
            observed = self.position_source.current_position(near=target)
        self._require_in_service_area(observed, "Officer")

        def _record_position(complaint: Complaint):
            if complaint.status != ComplaintStatus.IN_PROGRESS:
                raise InvalidTransition(
                    f"Location can only be verified for '{ComplaintStatus.IN_PROGRESS.value}' jobs; "
                    f"{complaint_id} is '{complaint.status.value}'"
                )
            result = self.geofence.verify(complaint.coordinates, observed)
            if not result.passed:
                raise GeofenceFailed(result.distance_meters, self.geofence.tolerance_meters)
            return {"officer_coordinates": observed}

        try:
            self.store.transact(complaint_id, _record_position)
        except GeofenceFailed as e:
            logger.warning(f"⚠️ Geofence check failed for {complaint_id}: {e}")
            raise

        result = self.geofence.verify(target, observed)
        logger.info(f"✅ Location verified for {complaint_id} ({result.distance_meters:.1f}m)")
        return GeofenceCheckResponse(
            complaint_id=complaint_id,
            passed=True,
            distance_meters=result.distance_meters,
            tolerance_meters=self.geofence.tolerance_meters,
            observed=observed,
        )

    def submit_work(self, complaint_id: str, before_photo: Optional[str], after_photo: Optional[str]) -> Complaint:
        """
        Attach evidence, move to Pending Verification and queue verification.

        Raises:
            Busy: Verification queue cannot take the job (nothing written)
            InvalidTransition, GeofenceFailed, MissingEvidence
        """
        with self.engine.admission(complaint_id):
            updated = self.controller.submit_work(
                complaint_id,
                before_photo,
                after_photo,
                changed_by=self._officer_of(complaint_id),
            )
        return updated

    def _officer_of(self, complaint_id: str) -> str:
        return self.store.get(complaint_id).assigned_officer_id or "officer"
