"""
Service container - wires the lifecycle engine from settings.

Routes fetch services through get_container(); tests install their own
container (fixed clock, seeded random source, no stage delays) with
set_container().
"""

from typing import Optional
import logging
import random

from sevasetu.core.settings import settings
from sevasetu.services.collaborators import (
    Clock,
    EvidenceStore,
    FirebaseStorageEvidenceStore,
    InMemoryEvidenceStore,
    OfficerRoster,
    PositionSource,
    SimulatedPositionSource,
    StaticOfficerRoster,
    SystemClock,
)
from sevasetu.services.complaint_service import ComplaintService
from sevasetu.services.complaint_store import ComplaintStore, FirestoreComplaintStore, InMemoryComplaintStore
from sevasetu.services.demo_data import DEMO_OFFICERS
from sevasetu.services.feedback_service import FeedbackAggregator
from sevasetu.services.geofence import GeofenceValidator
from sevasetu.services.status_workflow import LifecycleController
from sevasetu.services.supervisor_service import SupervisorAdjudicator
from sevasetu.services.verification import (
    SimulatedVerificationProvider,
    VerificationEngine,
    VerificationProvider,
)
from sevasetu.utils.geo import ServiceArea

logger = logging.getLogger(__name__)


def build_store(backend: Optional[str] = None) -> ComplaintStore:
    backend = (backend or settings.STORE_BACKEND).lower()
    if backend == "firestore":
        logger.info("Using Firestore complaint store")
        return FirestoreComplaintStore()
    if backend != "memory":
        raise ValueError(f"Unknown STORE_BACKEND: {backend}")
    logger.info("Using in-memory complaint store")
    return InMemoryComplaintStore()


def build_evidence_store(backend: Optional[str] = None) -> EvidenceStore:
    backend = (backend or settings.EVIDENCE_BACKEND).lower()
    if backend == "firebase":
        return FirebaseStorageEvidenceStore(settings.FIREBASE_STORAGE_BUCKET)
    if backend != "memory":
        raise ValueError(f"Unknown EVIDENCE_BACKEND: {backend}")
    return InMemoryEvidenceStore()


class ServiceContainer:
    """Owns one instance of every lifecycle component."""

    def __init__(
        self,
        store: Optional[ComplaintStore] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        roster: Optional[OfficerRoster] = None,
        position_source: Optional[PositionSource] = None,
        evidence_store: Optional[EvidenceStore] = None,
        provider: Optional[VerificationProvider] = None,
        geofence: Optional[GeofenceValidator] = None,
        service_area: Optional[ServiceArea] = None,
        concurrency: Optional[int] = None,
        queue_capacity: Optional[int] = None,
        stage_budget_seconds: Optional[float] = None,
        total_budget_seconds: Optional[float] = None,
    ):
        self.rng = rng or random.Random()
        self.clock = clock or SystemClock()
        self.store = store or build_store()
        self.roster = roster or StaticOfficerRoster(DEMO_OFFICERS)
        self.position_source = position_source or SimulatedPositionSource(self.rng)
        self.evidence_store = evidence_store or build_evidence_store()
        self.geofence = geofence or GeofenceValidator()
        self.controller = LifecycleController(self.store, self.clock, self.geofence, self.roster)
        self.provider = provider or SimulatedVerificationProvider(rng=self.rng, geofence=self.geofence)
        self.verification_engine = VerificationEngine(
            self.store,
            self.controller,
            self.provider,
            clock=self.clock,
            concurrency=concurrency,
            queue_capacity=queue_capacity,
            stage_budget_seconds=stage_budget_seconds,
            total_budget_seconds=total_budget_seconds,
        )
        self.complaints = ComplaintService(
            self.store,
            self.controller,
            self.verification_engine,
            self.geofence,
            self.position_source,
            self.evidence_store,
            clock=self.clock,
            service_area=service_area,
            rng=self.rng,
        )
        self.supervisor = SupervisorAdjudicator(self.store, self.controller)
        self.feedback = FeedbackAggregator(self.store)


# Global container instance (singleton)
_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Get or create the ServiceContainer singleton."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def set_container(container: Optional[ServiceContainer]) -> None:
    """Install (or clear, with None) the global container."""
    global _container
    _container = container
