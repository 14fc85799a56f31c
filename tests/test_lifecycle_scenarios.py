"""
End-to-end lifecycle scenarios driven through the service layer.
"""

import pytest

from sevasetu.core.exceptions import GeofenceFailed, InvalidTransition, NotFound, VotingNotAllowed
from sevasetu.models.complaint import CommunityVotes, ComplaintStatus, Coordinates, Verdict

from tests.conftest import NEARBY, TARGET


def field_work(container, new_complaint):
    """Scenario setup: SS-2024-2001 assigned, started, located and submitted."""
    complaint = new_complaint("SS-2024-2001", coordinates=TARGET, target_container=container)
    assert complaint.status == ComplaintStatus.SUBMITTED

    container.complaints.assign(complaint.id, "OFF-001")
    container.complaints.start_work(complaint.id)

    check = container.complaints.verify_location(complaint.id, NEARBY)
    assert check.passed is True
    assert 1.0 < check.distance_meters < 2.0

    submitted = container.complaints.submit_work(complaint.id, "evidence://before", "evidence://after")
    assert submitted.status == ComplaintStatus.PENDING_VERIFICATION
    return submitted


def test_change_detected_goes_to_pending_approval(make_container, new_complaint):
    container = make_container(success_bias=1.0)
    complaint = field_work(container, new_complaint)

    verified = container.verification_engine.process(complaint.id)

    assert verified.status == ComplaintStatus.PENDING_APPROVAL
    assert verified.ai_analysis.change_detected is True
    assert 85 <= verified.ai_analysis.confidence_score <= 98
    events = [entry.event for entry in verified.status_history]
    assert events == ["submit", "assign", "start_work", "submit_work", "verification_approved"]


def test_no_change_detected_goes_to_flagged(make_container, new_complaint):
    container = make_container(success_bias=0.0)
    complaint = field_work(container, new_complaint)

    verified = container.verification_engine.process(complaint.id)

    assert verified.status == ComplaintStatus.FLAGGED
    assert verified.ai_analysis.change_detected is False
    assert verified.ai_analysis.confidence_score == 45
    assert verified.ai_analysis.verdict == Verdict.FLAGGED


def test_supervisor_reject_returns_flagged_work_to_officer(make_container, new_complaint):
    container = make_container(success_bias=0.0)
    complaint = field_work(container, new_complaint)
    container.verification_engine.run_pending()
    analysis = container.store.get(complaint.id).ai_analysis

    assert [c.id for c in container.supervisor.review_queue()] == [complaint.id]
    rejected = container.supervisor.decide(complaint.id, "Reject", "insufficient repair")

    assert rejected.status == ComplaintStatus.IN_PROGRESS
    assert rejected.supervisor_notes == "insufficient repair"
    assert rejected.ai_analysis == analysis
    assert rejected.before_photo == "evidence://before"
    assert rejected.status_history[-1].note == "insufficient repair"
    assert container.supervisor.review_queue() == []


def test_supervisor_cannot_decide_outside_review(container, new_complaint):
    complaint = new_complaint()
    with pytest.raises(InvalidTransition):
        container.supervisor.decide(complaint.id, "Approve", "early")
    assert container.store.get(complaint.id).status == ComplaintStatus.SUBMITTED


def test_review_queue_lists_flagged_first(make_container, new_complaint, drive_to):
    container = make_container(success_bias=1.0)
    approved = new_complaint(target_container=container)
    drive_to(approved.id, ComplaintStatus.PENDING_APPROVAL, target_container=container)

    container.provider.success_bias = 0.0
    flagged = new_complaint(target_container=container)
    drive_to(flagged.id, ComplaintStatus.FLAGGED, target_container=container)

    assert [c.id for c in container.supervisor.review_queue()] == [flagged.id, approved.id]


def test_upvotes_on_verified_work(container, new_complaint, drive_to):
    complaint = new_complaint()
    verified = drive_to(complaint.id, ComplaintStatus.VERIFIED)
    assert verified.community_votes == CommunityVotes(up=0, down=0)

    container.feedback.vote(complaint.id, "Up")
    votes = container.feedback.vote(complaint.id, "Up")

    assert votes == CommunityVotes(up=2, down=0)
    assert container.feedback.get_votes(complaint.id) == CommunityVotes(up=2, down=0)


def test_votes_accepted_after_close(container, new_complaint, drive_to):
    complaint = new_complaint()
    drive_to(complaint.id, ComplaintStatus.CLOSED)
    assert container.feedback.vote(complaint.id, "Down") == CommunityVotes(up=0, down=1)
    assert [c.id for c in container.feedback.completed_work()] == [complaint.id]


def test_vote_on_open_complaint_is_refused(container, new_complaint):
    complaint = new_complaint()
    with pytest.raises(VotingNotAllowed):
        container.feedback.vote(complaint.id, "Up")
    assert container.store.get(complaint.id).community_votes == CommunityVotes(up=0, down=0)


def test_vote_on_unknown_complaint(container):
    with pytest.raises(NotFound):
        container.feedback.vote("SS-2024-0000", "Up")


def test_failed_geofence_is_retryable(container, new_complaint, drive_to):
    complaint = new_complaint()
    drive_to(complaint.id, ComplaintStatus.IN_PROGRESS)

    with pytest.raises(GeofenceFailed) as exc_info:
        container.complaints.verify_location(complaint.id, Coordinates(lat=26.9105, lng=75.80))
    assert exc_info.value.retryable is True
    assert container.store.get(complaint.id).officer_coordinates is None

    check = container.complaints.verify_location(complaint.id, NEARBY)
    assert check.passed is True
    assert container.store.get(complaint.id).officer_coordinates == NEARBY


def test_position_source_is_used_when_no_position_given(container, new_complaint, drive_to):
    complaint = new_complaint()
    drive_to(complaint.id, ComplaintStatus.IN_PROGRESS)
    check = container.complaints.verify_location(complaint.id)
    assert check.passed is True
    assert check.distance_meters < 20.0


def test_location_check_requires_in_progress(container, new_complaint):
    complaint = new_complaint()
    with pytest.raises(InvalidTransition):
        container.complaints.verify_location(complaint.id, NEARBY)


def test_submit_complaint_sets_sla_and_id(container, citizen_payload, clock):
    complaint = container.complaints.submit_complaint(citizen_payload)
    assert complaint.id.startswith("SS-2024-")
    assert complaint.status == ComplaintStatus.SUBMITTED
    assert (complaint.estimated_sla - complaint.submission_time).total_seconds() == 48 * 3600
    assert complaint.submission_time == clock.now()


def test_overdue_flag(container, new_complaint, clock):
    complaint = new_complaint()
    assert container.complaints.allowed_events(complaint.id)["overdue"] is False
    clock.advance(hours=49)
    state = container.complaints.allowed_events(complaint.id)
    assert state["overdue"] is True
    assert state["allowedEvents"] == ["assign"]
