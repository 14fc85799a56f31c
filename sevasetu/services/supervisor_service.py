"""
Supervisor Adjudicator - human decision after automated verification.

DESIGN PRINCIPLES:
- Only Pending Approval and Flagged complaints are eligible
- Approve → Verified, Reject → back to In Progress for rework
- Notes are stored on the complaint and in the status history
"""

from typing import List, Union
import logging

from sevasetu.core.exceptions import InvalidTransition
from sevasetu.models.complaint import Complaint, ComplaintStatus, Decision
from sevasetu.services.complaint_store import ComplaintStore
from sevasetu.services.status_workflow import LifecycleController

logger = logging.getLogger(__name__)


class SupervisorAdjudicator:
    """Applies a supervisor's binding approve/reject decision."""

    REVIEWABLE_STATUSES = (ComplaintStatus.PENDING_APPROVAL, ComplaintStatus.FLAGGED)

    def __init__(self, store: ComplaintStore, controller: LifecycleController):
        self.store = store
        self.controller = controller

    def review_queue(self) -> List[Complaint]:
        """Complaints awaiting a decision, flagged ones first."""
        queue = []
        for status in (ComplaintStatus.FLAGGED, ComplaintStatus.PENDING_APPROVAL):
            queue.extend(self.store.list(status=status.value))
        return queue

    def decide(
        self,
        complaint_id: str,
        decision: Union[Decision, str],
        notes: str = "",
        supervisor_id: str = "supervisor",
    ) -> Complaint:
        """
        Apply a decision to a complaint under review.

        Raises:
            NotFound: Unknown complaint
            InvalidTransition: Complaint is not awaiting review
        """
        decision = Decision(decision)

        if decision == Decision.APPROVE:
            updated = self.controller.supervisor_approve(complaint_id, notes, supervisor_id)
        elif decision == Decision.REJECT:
            updated = self.controller.supervisor_reject(complaint_id, notes, supervisor_id)
        else:
            raise InvalidTransition(f"Unsupported decision: {decision}")

        logger.info(f"Supervisor {supervisor_id} decided {decision.value} on {complaint_id}")
        return updated
