"""
Complaint Store - single source of truth for Complaint records.

DESIGN PRINCIPLES:
- The store exclusively owns Complaint instances; callers get copies
- Every mutation of one complaint id is serialized
- Mutations are all-or-nothing: a failing mutator leaves the record untouched
- `status` is written only through `transact` (used by the lifecycle controller)
- `id`, `coordinates`, `submission_time` and an existing `ai_analysis` never change
- Vote counters never decrease; an assigned officer is never cleared
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional
import logging
import random
import threading

from sevasetu.core.exceptions import Conflict, NotFound
from sevasetu.models.complaint import CommunityVotes, Complaint, ComplaintStatus

logger = logging.getLogger(__name__)

# Mutator: receives a private copy of the current record, returns field changes
Mutator = Callable[[Complaint], Optional[Dict]]

IMMUTABLE_FIELDS = ("id", "coordinates", "submission_time")


def generate_complaint_id(year: int, rng: Optional[random.Random] = None) -> str:
    """Build an identifier of the form SS-<year>-<4 digits>."""
    rng = rng or random.Random()
    return f"SS-{year}-{rng.randint(1000, 9999)}"


def merge_changes(current: Complaint, changes: Dict, allow_status: bool = False) -> Complaint:
    """
    Shallow-merge `changes` (python field names) into `current`.

    Raises:
        ValueError: status change without allow_status, or unknown field
        Conflict: attempt to change an immutable or write-once field,
            lower a vote counter or clear the assigned officer
    """
    if not changes:
        return current

    unknown = [key for key in changes if key not in Complaint.model_fields]
    if unknown:
        raise ValueError(f"Unknown complaint fields: {unknown}")

    if "status" in changes and not allow_status:
        raise ValueError("status is owned by the lifecycle controller; use LifecycleController")

    for field in IMMUTABLE_FIELDS:
        if field in changes and changes[field] != getattr(current, field):
            raise Conflict(f"Complaint field '{field}' is immutable")

    if "ai_analysis" in changes and current.ai_analysis is not None:
        if changes["ai_analysis"] != current.ai_analysis:
            raise Conflict(f"Complaint {current.id} already has an AI analysis; it cannot be overwritten")

    if "community_votes" in changes:
        votes = CommunityVotes.model_validate(changes["community_votes"])
        if votes.up < current.community_votes.up or votes.down < current.community_votes.down:
            raise Conflict(f"Community votes of {current.id} can only grow")

    if "assigned_officer_id" in changes and current.assigned_officer_id and not changes["assigned_officer_id"]:
        raise Conflict(f"Complaint {current.id} is assigned to {current.assigned_officer_id}; the assignment cannot be cleared")

    merged = current.model_dump()
    merged.update(changes)
    return Complaint.model_validate(merged)


class ComplaintStore(ABC):
    """Repository interface with atomic per-identifier update semantics."""

    @abstractmethod
    def create(self, complaint: Complaint) -> str:
        """Insert a new complaint. Raises Conflict if the id is taken."""
        pass

    @abstractmethod
    def get(self, complaint_id: str) -> Complaint:
        """Return a copy of the complaint. Raises NotFound."""
        pass

    @abstractmethod
    def transact(self, complaint_id: str, mutator: Mutator, allow_status: bool = False) -> Complaint:
        """
        Apply `mutator` atomically to one complaint.

        The mutator may raise to abort; nothing is written in that case.
        """
        pass

    @abstractmethod
    def list(self, status: Optional[str] = None, officer_id: Optional[str] = None) -> List[Complaint]:
        pass

    def exists(self, complaint_id: str) -> bool:
        try:
            self.get(complaint_id)
            return True
        except NotFound:
            return False

    def update(self, complaint_id: str, fields: Dict) -> Complaint:
        """Shallow merge of plain fields. Status changes are refused."""
        fields = dict(fields)
        fields.pop("id", None)
        if "status" in fields:
            raise ValueError("status is owned by the lifecycle controller; use LifecycleController")
        return self.transact(complaint_id, lambda _current: fields)


class InMemoryComplaintStore(ComplaintStore):
    """
    Process-local store guarded by one lock per complaint id.

    Operations on different ids never wait on each other.
    """

    def __init__(self):
        self._complaints: Dict[str, Complaint] = {}
        self._registry_lock = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}

    def _lock_for(self, complaint_id: str) -> threading.RLock:
        """Lock of an existing complaint. Unknown ids get no lock."""
        with self._registry_lock:
            lock = self._locks.get(complaint_id)
        if lock is None:
            raise NotFound(f"Complaint {complaint_id} not found")
        return lock

    def create(self, complaint: Complaint) -> str:
        with self._registry_lock:
            lock = self._locks.setdefault(complaint.id, threading.RLock())
        with lock:
            if complaint.id in self._complaints:
                raise Conflict(f"Complaint {complaint.id} already exists")
            self._complaints[complaint.id] = complaint.model_copy(deep=True)
        logger.info(f"Created complaint {complaint.id} ({complaint.issue_type.value})")
        return complaint.id

    def get(self, complaint_id: str) -> Complaint:
        with self._lock_for(complaint_id):
            complaint = self._complaints.get(complaint_id)
            if complaint is None:
                raise NotFound(f"Complaint {complaint_id} not found")
            return complaint.model_copy(deep=True)

    def transact(self, complaint_id: str, mutator: Mutator, allow_status: bool = False) -> Complaint:
        with self._lock_for(complaint_id):
            current = self._complaints.get(complaint_id)
            if current is None:
                raise NotFound(f"Complaint {complaint_id} not found")
            changes = mutator(current.model_copy(deep=True)) or {}
            updated = merge_changes(current, changes, allow_status=allow_status)
            self._complaints[complaint_id] = updated
            return updated.model_copy(deep=True)

    def list(self, status: Optional[str] = None, officer_id: Optional[str] = None) -> List[Complaint]:
        with self._registry_lock:
            ids = list(self._complaints.keys())

        complaints = []
        for complaint_id in ids:
            complaint = self.get(complaint_id)
            if status and complaint.status != ComplaintStatus(status):
                continue
            if officer_id and complaint.assigned_officer_id != officer_id:
                continue
            complaints.append(complaint)

        # Newest first
        complaints.sort(key=lambda c: c.submission_time, reverse=True)
        return complaints


class FirestoreComplaintStore(ComplaintStore):
    """
    Firestore-backed store. Per-id serialization comes from Firestore
    transactions (optimistic concurrency with automatic retry).
    """

    COLLECTION = "complaints"

    def __init__(self, db=None):
        from sevasetu.config.firebase import get_db
        self.db = db or get_db()

    def _ref(self, complaint_id: str):
        return self.db.collection(self.COLLECTION).document(complaint_id)

    @staticmethod
    def _to_document(complaint: Complaint) -> Dict:
        return complaint.model_dump(mode="json", by_alias=True)

    def create(self, complaint: Complaint) -> str:
        from google.api_core.exceptions import AlreadyExists

        try:
            self._ref(complaint.id).create(self._to_document(complaint))
        except AlreadyExists:
            raise Conflict(f"Complaint {complaint.id} already exists")
        logger.info(f"Created complaint {complaint.id} in Firestore")
        return complaint.id

    def get(self, complaint_id: str) -> Complaint:
        snapshot = self._ref(complaint_id).get()
        if not snapshot.exists:
            raise NotFound(f"Complaint {complaint_id} not found")
        return Complaint.model_validate(snapshot.to_dict())

    def transact(self, complaint_id: str, mutator: Mutator, allow_status: bool = False) -> Complaint:
        from firebase_admin import firestore

        ref = self._ref(complaint_id)

        @firestore.transactional
        def _apply(transaction):
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFound(f"Complaint {complaint_id} not found")
            current = Complaint.model_validate(snapshot.to_dict())
            changes = mutator(current.model_copy(deep=True)) or {}
            updated = merge_changes(current, changes, allow_status=allow_status)
            transaction.set(ref, self._to_document(updated))
            return updated

        return _apply(self.db.transaction())

    def list(self, status: Optional[str] = None, officer_id: Optional[str] = None) -> List[Complaint]:
        query = self.db.collection(self.COLLECTION)
        if status:
            query = query.where("status", "==", ComplaintStatus(status).value)
        if officer_id:
            query = query.where("assignedOfficerId", "==", officer_id)

        complaints = []
        for doc in query.stream():
            try:
                complaints.append(Complaint.model_validate(doc.to_dict()))
            except ValueError as e:
                logger.warning(f"Skipping malformed complaint document {doc.id}: {e}")
        complaints.sort(key=lambda c: c.submission_time, reverse=True)
        return complaints
