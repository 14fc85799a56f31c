"""
Shared fixtures for the test suite.

Provides:
  - ``clock``: a settable clock frozen at 2024-05-01 09:00 UTC
  - ``make_container``: factory for a fully wired in-memory ServiceContainer
  - ``container``: default container (success bias 1.0, no stage delays)
  - ``client``: FastAPI TestClient bound to ``container``
  - ``new_complaint`` / ``drive_to``: helpers that walk the lifecycle
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from sevasetu.models.complaint import (
    Complaint,
    ComplaintCreate,
    ComplaintStatus,
    Coordinates,
    IssueType,
)
from sevasetu.services.collaborators import Clock
from sevasetu.services.complaint_store import InMemoryComplaintStore
from sevasetu.services.container import ServiceContainer, set_container
from sevasetu.services.verification import SimulatedVerificationProvider

TARGET = Coordinates(lat=26.91, lng=75.80)
NEARBY = Coordinates(lat=26.91001, lng=75.80001)


class FixedClock(Clock):
    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture()
def make_container(clock):
    containers = []

    def _factory(*, success_bias: float = 1.0, seed: int = 7, provider=None, **kwargs) -> ServiceContainer:
        rng = random.Random(seed)
        if provider is None:
            provider = SimulatedVerificationProvider(rng=rng, success_bias=success_bias, stage_delay_seconds=0)
        container = ServiceContainer(
            store=InMemoryComplaintStore(),
            clock=clock,
            rng=rng,
            provider=provider,
            **kwargs,
        )
        containers.append(container)
        return container

    yield _factory

    for container in containers:
        container.verification_engine.stop(timeout=1.0)


@pytest.fixture()
def container(make_container) -> ServiceContainer:
    return make_container()


@pytest.fixture()
def client(container):
    from sevasetu.main import app

    set_container(container)
    yield TestClient(app)
    set_container(None)


@pytest.fixture()
def new_complaint(container):
    """Register a Submitted complaint at TARGET and return it."""
    counter = {"n": 2000}

    def _create(complaint_id: str = None, coordinates: Coordinates = TARGET, target_container=None) -> Complaint:
        target_container = target_container or container
        counter["n"] += 1
        now = target_container.clock.now()
        complaint = Complaint(
            id=complaint_id or f"SS-2024-{counter['n']}",
            issue_type=IssueType.POTHOLE,
            description="Deep pothole near the bus stop",
            location_name="MI Road",
            coordinates=coordinates,
            citizen_photo="evidence://citizen",
            submission_time=now,
            estimated_sla=now + timedelta(hours=48),
        )
        return target_container.controller.register(complaint)

    return _create


@pytest.fixture()
def drive_to(container):
    """Walk a complaint forward to the requested status through the real services."""

    def _drive(complaint_id: str, target: ComplaintStatus, target_container=None) -> Complaint:
        c = target_container or container
        order = [
            ComplaintStatus.ASSIGNED,
            ComplaintStatus.IN_PROGRESS,
            ComplaintStatus.PENDING_VERIFICATION,
        ]
        complaint = c.store.get(complaint_id)
        if complaint.status == ComplaintStatus.SUBMITTED:
            complaint = c.complaints.assign(complaint_id, "OFF-001")
        if target == ComplaintStatus.ASSIGNED:
            return complaint
        if complaint.status == ComplaintStatus.ASSIGNED:
            complaint = c.complaints.start_work(complaint_id)
        if target == ComplaintStatus.IN_PROGRESS:
            return complaint
        c.complaints.verify_location(complaint_id, NEARBY)
        complaint = c.complaints.submit_work(complaint_id, "evidence://before", "evidence://after")
        if target in order:
            return complaint
        c.verification_engine.run_pending()
        complaint = c.store.get(complaint_id)
        if target in (ComplaintStatus.PENDING_APPROVAL, ComplaintStatus.FLAGGED):
            assert complaint.status == target
            return complaint
        complaint = c.supervisor.decide(complaint_id, "Approve", "looks good")
        if target == ComplaintStatus.CLOSED:
            complaint = c.complaints.close(complaint_id)
        assert complaint.status == target
        return complaint

    return _drive


@pytest.fixture()
def citizen_payload() -> ComplaintCreate:
    return ComplaintCreate(
        issue_type=IssueType.STREET_LIGHT,
        description="Street light flickering near the park gate",
        location_name="Vaishali Nagar",
        coordinates=Coordinates(lat=26.9050, lng=75.7450),
        citizen_photo="evidence://citizen",
    )
