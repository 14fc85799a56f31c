"""
Tests for the lifecycle state machine.
"""

import pytest

from sevasetu.core.exceptions import GeofenceFailed, InvalidTransition, MissingEvidence, NotFound
from sevasetu.models.complaint import ComplaintStatus, Coordinates
from sevasetu.services.status_workflow import LifecycleController, LifecycleEvent

from tests.conftest import NEARBY

EXPECTED = {
    ComplaintStatus.SUBMITTED: {LifecycleEvent.ASSIGN: ComplaintStatus.ASSIGNED},
    ComplaintStatus.ASSIGNED: {LifecycleEvent.START_WORK: ComplaintStatus.IN_PROGRESS},
    ComplaintStatus.IN_PROGRESS: {LifecycleEvent.SUBMIT_WORK: ComplaintStatus.PENDING_VERIFICATION},
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
    ComplaintStatus.VERIFIED: {LifecycleEvent.CLOSE: ComplaintStatus.CLOSED},
    ComplaintStatus.CLOSED: {},
}


def test_transition_table_matches_lifecycle():
    assert LifecycleController.TRANSITIONS == EXPECTED


def test_closed_is_terminal():
    assert LifecycleController.allowed_events(ComplaintStatus.CLOSED) == []


def test_allowed_events_of_unknown_status_is_empty():
    assert LifecycleController.allowed_events("Archived") == []


@pytest.mark.parametrize("status", list(ComplaintStatus))
@pytest.mark.parametrize("event", list(LifecycleEvent))
def test_only_table_events_fire(container, new_complaint, status, event):
    complaint = new_complaint()
    container.store.transact(complaint.id, lambda _c: {"status": status}, allow_status=True)
    before = container.store.get(complaint.id)

    target = EXPECTED[status].get(event)
    if target is None:
        with pytest.raises(InvalidTransition) as exc_info:
            container.controller.fire(complaint.id, event, "tester")
        assert exc_info.value.current == status.value
        assert exc_info.value.event == event.value
        assert container.store.get(complaint.id) == before
    else:
        updated = container.controller.fire(complaint.id, event, "tester")
        assert updated.status == target
        entry = updated.status_history[-1]
        assert (entry.from_status, entry.to_status, entry.event) == (status, target, event.value)


def test_register_starts_in_submitted_with_history(container, new_complaint):
    complaint = new_complaint()
    stored = container.store.get(complaint.id)
    assert stored.status == ComplaintStatus.SUBMITTED
    assert len(stored.status_history) == 1
    assert stored.status_history[0].from_status is None
    assert stored.status_history[0].event == LifecycleEvent.SUBMIT.value


def test_fire_on_unknown_complaint(container):
    with pytest.raises(NotFound):
        container.controller.fire("SS-2024-0000", LifecycleEvent.ASSIGN, "tester")


def test_assign_unknown_officer_writes_nothing(container, new_complaint):
    complaint = new_complaint()
    with pytest.raises(NotFound):
        container.controller.assign(complaint.id, "OFF-999")
    stored = container.store.get(complaint.id)
    assert stored.status == ComplaintStatus.SUBMITTED
    assert stored.assigned_officer_id is None


def test_start_work_records_start_time(container, new_complaint, clock):
    complaint = new_complaint()
    container.controller.assign(complaint.id, "OFF-001")
    clock.advance(hours=1)
    started = container.controller.start_work(complaint.id, "OFF-001")
    assert started.status == ComplaintStatus.IN_PROGRESS
    assert started.work_start_time == clock.now()


class TestSubmitWorkGuard:
    @pytest.fixture()
    def in_progress(self, new_complaint, drive_to):
        complaint = new_complaint()
        return drive_to(complaint.id, ComplaintStatus.IN_PROGRESS)

    def test_requires_verified_location(self, container, in_progress):
        with pytest.raises(GeofenceFailed):
            container.controller.submit_work(in_progress.id, "evidence://b", "evidence://a")
        assert container.store.get(in_progress.id).status == ComplaintStatus.IN_PROGRESS

    def test_requires_both_photos(self, container, in_progress):
        container.store.update(in_progress.id, {"officer_coordinates": NEARBY})
        with pytest.raises(MissingEvidence) as exc_info:
            container.controller.submit_work(in_progress.id, "evidence://b", None)
        assert exc_info.value.missing == ["afterPhoto"]
        stored = container.store.get(in_progress.id)
        assert stored.status == ComplaintStatus.IN_PROGRESS
        assert stored.before_photo is None

    def test_stored_position_outside_geofence(self, container, in_progress):
        container.store.update(in_progress.id, {"officer_coordinates": Coordinates(lat=26.92, lng=75.80)})
        with pytest.raises(GeofenceFailed) as exc_info:
            container.controller.submit_work(in_progress.id, "evidence://b", "evidence://a")
        assert exc_info.value.distance_meters > 20.0

    def test_passes_with_position_and_evidence(self, container, in_progress):
        container.store.update(in_progress.id, {"officer_coordinates": NEARBY})
        updated = container.controller.submit_work(in_progress.id, "evidence://b", "evidence://a")
        assert updated.status == ComplaintStatus.PENDING_VERIFICATION
        assert (updated.before_photo, updated.after_photo) == ("evidence://b", "evidence://a")
