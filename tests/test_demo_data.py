import logging

from sevasetu.models.complaint import ComplaintStatus
from sevasetu.services.demo_data import DEMO_OFFICERS, demo_complaints, seed_demo_complaints
from sevasetu.utils.logger import configure_logging


def test_seeding_is_idempotent(container, clock):
    assert seed_demo_complaints(container.store, clock.now()) == len(demo_complaints(clock.now()))
    assert seed_demo_complaints(container.store, clock.now()) == 0


def test_demo_officers_are_in_roster(container):
    assert [o.id for o in container.roster.list_officers()] == [o.id for o in DEMO_OFFICERS]


def test_parked_demo_complaint_is_recovered_and_verified(container, clock):
    seed_demo_complaints(container.store, clock.now())
    engine = container.verification_engine

    assert engine.recover_pending() == 1
    assert engine.run_pending() == ["SS-2024-1025"]
    assert container.store.get("SS-2024-1025").status == ComplaintStatus.PENDING_APPROVAL


def test_overdue_demo_complaint(container, clock):
    seed_demo_complaints(container.store, clock.now())
    assert container.complaints.allowed_events("SS-2024-1026")["overdue"] is True
    assert container.complaints.allowed_events("SS-2024-1020")["overdue"] is False


def test_configure_logging_adds_one_handler():
    configure_logging("DEBUG")
    configure_logging("INFO")
    logger = logging.getLogger("sevasetu")
    assert len([h for h in logger.handlers if getattr(h, "_sevasetu", False)]) == 1
    assert logger.level == logging.INFO
