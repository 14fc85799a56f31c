"""
Lifecycle Controller - strict complaint state machine.

DESIGN PRINCIPLES:
- The controller is the only writer of `status`
- No skipping states; the only backward edge is supervisor rejection
- Guards run inside the same atomic store operation as the write
- Invalid events are rejected with InvalidTransition, never silently ignored
- All transitions logged in status_history
"""

from enum import Enum
from typing import Callable, Dict, List, Optional, Union
import logging

from sevasetu.core.exceptions import GeofenceFailed, InvalidTransition, MissingEvidence
from sevasetu.models.complaint import (
    AIAnalysis,
    Complaint,
    ComplaintStatus,
    StatusHistoryEntry,
    Verdict,
)
from sevasetu.services.collaborators import Clock, OfficerRoster, SystemClock
from sevasetu.services.complaint_store import ComplaintStore
from sevasetu.services.geofence import GeofenceValidator

logger = logging.getLogger(__name__)


class LifecycleEvent(str, Enum):
    SUBMIT = "submit"
    ASSIGN = "assign"
    START_WORK = "start_work"
    SUBMIT_WORK = "submit_work"
    VERIFICATION_APPROVED = "verification_approved"
    VERIFICATION_FLAGGED = "verification_flagged"
    SUPERVISOR_APPROVE = "supervisor_approve"
    SUPERVISOR_REJECT = "supervisor_reject"
    CLOSE = "close"


ChangeSet = Union[Dict, Callable[[Complaint], Dict], None]
Guard = Callable[[Complaint], None]


class LifecycleController:
    """
    Complaint state machine.

    Submitted → Assigned → In Progress → Pending Verification
      → Pending Approval | Flagged → Verified → Closed
    Pending Approval | Flagged → In Progress on supervisor rejection.
    """

    INITIAL_STATUS = ComplaintStatus.SUBMITTED

    # {from_status: {event: to_status}}
    TRANSITIONS: Dict[ComplaintStatus, Dict[LifecycleEvent, ComplaintStatus]] = {
        ComplaintStatus.SUBMITTED: {
            LifecycleEvent.ASSIGN: ComplaintStatus.ASSIGNED,
        },
        ComplaintStatus.ASSIGNED: {
            LifecycleEvent.START_WORK: ComplaintStatus.IN_PROGRESS,
        },
        ComplaintStatus.IN_PROGRESS: {
            LifecycleEvent.SUBMIT_WORK: ComplaintStatus.PENDING_VERIFICATION,
        },
        ComplaintStatus.PENDING_VERIFICATION: {
            LifecycleEvent.VERIFICATION_APPROVED: ComplaintStatus.PENDING_APPROVAL,
            LifecycleEvent.VERIFICATION_FLAGGED: ComplaintStatus.FLAGGED,
        },
        ComplaintStatus.PENDING_APPROVAL: {
            LifecycleEvent.SUPERVISOR_APPROVE: ComplaintStatus.VERIFIED,
            LifecycleEvent.SUPERVISOR_REJECT: ComplaintStatus.IN_PROGRESS,
        },
        ComplaintStatus.FLAGGED: {
            LifecycleEvent.SUPERVISOR_APPROVE: ComplaintStatus.VERIFIED,
            LifecycleEvent.SUPERVISOR_REJECT: ComplaintStatus.IN_PROGRESS,
        },
        ComplaintStatus.VERIFIED: {
            LifecycleEvent.CLOSE: ComplaintStatus.CLOSED,
        },
        ComplaintStatus.CLOSED: {},  # Terminal state
    }

    def __init__(
        self,
        store: ComplaintStore,
        clock: Optional[Clock] = None,
        geofence: Optional[GeofenceValidator] = None,
        roster: Optional[OfficerRoster] = None,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.geofence = geofence or GeofenceValidator()
        self.roster = roster

    @classmethod
    def allowed_events(cls, current_status: Union[str, ComplaintStatus]) -> List[str]:
        """
        Events that are legal from `current_status`.

        Returns an empty list for unknown statuses.
        """
        try:
            current = ComplaintStatus(current_status)
        except ValueError:
            return []
        return [event.value for event in cls.TRANSITIONS.get(current, {})]

    @classmethod
    def next_status(cls, current_status: Union[str, ComplaintStatus], event: LifecycleEvent) -> ComplaintStatus:
        """
        Resolve the target status of `event`.

        Raises:
            InvalidTransition: If the event is not legal from current_status
        """
        current = ComplaintStatus(current_status)
        target = cls.TRANSITIONS.get(current, {}).get(event)
        if target is None:
            raise InvalidTransition(
                current=current.value,
                event=event.value,
                allowed=cls.allowed_events(current),
            )
        return target

    def create_status_history_entry(
        self,
        from_status: Optional[ComplaintStatus],
        to_status: ComplaintStatus,
        event: LifecycleEvent,
        changed_by: str,
        note: Optional[str] = None,
    ) -> StatusHistoryEntry:
        return StatusHistoryEntry(
            from_status=from_status,
            to_status=to_status,
            event=event.value,
            changed_by=changed_by,
            timestamp=self.clock.now(),
            note=note or "",
        )

    def register(self, complaint: Complaint, changed_by: str = "citizen") -> Complaint:
        """Store a freshly submitted complaint in the initial state."""
        entry = self.create_status_history_entry(None, self.INITIAL_STATUS, LifecycleEvent.SUBMIT, changed_by)
        complaint = complaint.model_copy(update={"status": self.INITIAL_STATUS, "status_history": [entry]})
        self.store.create(complaint)
        return complaint

    def fire(
        self,
        complaint_id: str,
        event: LifecycleEvent,
        changed_by: str,
        note: Optional[str] = None,
        guard: Optional[Guard] = None,
        changes: ChangeSet = None,
    ) -> Complaint:
        """
        Validate and apply one lifecycle event atomically.

        Args:
            complaint_id: Complaint identifier
            event: Lifecycle event to apply
            changed_by: Actor identifier for the audit trail
            note: Optional note stored in the history entry
            guard: Raises to veto the transition (sees the current record)
            changes: Extra field changes, or a callable building them

        Returns:
            The updated complaint

        Raises:
            NotFound, InvalidTransition, or whatever the guard raises
        """

        def _mutate(complaint: Complaint) -> Dict:
            target = self.next_status(complaint.status, event)
            if guard is not None:
                guard(complaint)
            extra = changes(complaint) if callable(changes) else dict(changes or {})
            entry = self.create_status_history_entry(complaint.status, target, event, changed_by, note)
            extra["status"] = target
            extra["status_history"] = list(complaint.status_history) + [entry]
            return extra

        try:
            updated = self.store.transact(complaint_id, _mutate, allow_status=True)
        except InvalidTransition as e:
            logger.warning(f"Rejected {event.value} on {complaint_id}: {e}")
            raise

        previous = updated.status_history[-1].from_status
        logger.info(
            f"✅ {complaint_id}: {previous.value if previous else None} → {updated.status.value} "
            f"({event.value} by {changed_by})"
        )
        return updated

    # ------------------------------------------------------------------
    # Actor-facing events
    # ------------------------------------------------------------------

    def assign(self, complaint_id: str, officer_id: str, changed_by: str = "dispatcher") -> Complaint:
        def _officer_exists(_complaint: Complaint) -> None:
            if self.roster is not None:
                self.roster.lookup(officer_id)

        return self.fire(
            complaint_id,
            LifecycleEvent.ASSIGN,
            changed_by,
            note=f"Assigned to {officer_id}",
            guard=_officer_exists,
            changes={"assigned_officer_id": officer_id},
        )

    def start_work(self, complaint_id: str, changed_by: str = "officer") -> Complaint:
        return self.fire(
            complaint_id,
            LifecycleEvent.START_WORK,
            changed_by,
            changes=lambda _complaint: {"work_start_time": self.clock.now()},
        )

    def submit_work(
        self,
        complaint_id: str,
        before_photo: Optional[str],
        after_photo: Optional[str],
        changed_by: str = "officer",
    ) -> Complaint:
        """
        In Progress → Pending Verification.

        Guard: the stored officer position passes the geofence AND both
        evidence artifacts are present.
        """

        def _ready_for_verification(complaint: Complaint) -> None:
            if complaint.officer_coordinates is None:
                raise GeofenceFailed(message="Location has not been verified for this job yet")
            result = self.geofence.verify(complaint.coordinates, complaint.officer_coordinates)
            if not result.passed:
                raise GeofenceFailed(result.distance_meters, self.geofence.tolerance_meters)

            missing = [
                name for name, ref in (("beforePhoto", before_photo), ("afterPhoto", after_photo))
                if not ref
            ]
            if missing:
                raise MissingEvidence(missing)

        return self.fire(
            complaint_id,
            LifecycleEvent.SUBMIT_WORK,
            changed_by,
            guard=_ready_for_verification,
            changes={"before_photo": before_photo, "after_photo": after_photo},
        )

    def verification_complete(self, complaint_id: str, analysis: AIAnalysis) -> Complaint:
        """
        Pending Verification → Pending Approval | Flagged.

        The analysis and the transition are written together. `ai_analysis`
        keeps the first analysis ever produced; every run is appended to
        `analysis_history`.
        """
        event = (
            LifecycleEvent.VERIFICATION_APPROVED
            if analysis.verdict == Verdict.APPROVED
            else LifecycleEvent.VERIFICATION_FLAGGED
        )

        def _record_analysis(complaint: Complaint) -> Dict:
            changes = {"analysis_history": list(complaint.analysis_history) + [analysis]}
            if complaint.ai_analysis is None:
                changes["ai_analysis"] = analysis
            return changes

        return self.fire(
            complaint_id,
            event,
            "verification-engine",
            note=f"{analysis.verdict.value} (confidence {analysis.confidence_score})",
            changes=_record_analysis,
        )

    def supervisor_approve(self, complaint_id: str, notes: str, supervisor_id: str = "supervisor") -> Complaint:
        return self.fire(
            complaint_id,
            LifecycleEvent.SUPERVISOR_APPROVE,
            supervisor_id,
            note=notes,
            changes={"supervisor_notes": notes},
        )

    def supervisor_reject(self, complaint_id: str, notes: str, supervisor_id: str = "supervisor") -> Complaint:
        # Evidence, officer position and analyses are retained; a re-submission
        # overwrites the photos and appends a new analysis to the history.
        return self.fire(
            complaint_id,
            LifecycleEvent.SUPERVISOR_REJECT,
            supervisor_id,
            note=notes,
            changes={"supervisor_notes": notes},
        )

    def close(self, complaint_id: str, changed_by: str = "admin", note: Optional[str] = None) -> Complaint:
        return self.fire(complaint_id, LifecycleEvent.CLOSE, changed_by, note=note)
