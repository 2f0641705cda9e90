import uuid
from datetime import date

import pytest

from app.core.errors import NotAssigned
from app.models.appointment import Appointment, AppointmentStatus
from app.schemas.appointment import AppointmentUpdate
from app.services import appointments, assignments, evidence, workflow
from app.services.snapshot import load_snapshot

from helpers import stage_photo


@pytest.fixture
def legacy_appointment(db, staff, customer):
    """A row written before multi-worker assignment: one staff_id, no assignment rows."""

    def _make(status="Confirmed"):
        appt = Appointment(
            id=str(uuid.uuid4()),
            customer_id=customer.id,
            staff_id=staff["alice"].id,
            title="Fan repair",
            appointment_date=date(2026, 11, 3),
            start_time="14:00",
            end_time="15:00",
            status=status,
        )
        db.add(appt)
        db.commit()
        return appt

    return _make


def test_snapshot_shows_virtual_worker_without_writing(db, staff, legacy_appointment):
    appt = legacy_appointment("in progress")
    snapshot = load_snapshot(db, appt.id)

    assert snapshot.status == AppointmentStatus.IN_PROGRESS.value
    assert len(snapshot.workers) == 1
    worker = snapshot.workers[0]
    assert worker.worker_id == staff["alice"].id
    assert worker.virtual
    assert worker.worker_name == "Alice"
    assert worker.has_started and not worker.has_completed
    assert assignments.list_by_appointment(db, appt.id) == []


def test_start_materializes_the_row(db, staff, legacy_appointment):
    appt = legacy_appointment()
    row, status = workflow.start_work(db, appt.id, staff["alice"].id)

    assert row.has_started
    assert status == AppointmentStatus.IN_PROGRESS
    assert [r.worker_id for r in assignments.list_by_appointment(db, appt.id)] == [staff["alice"].id]


def test_submit_on_legacy_in_progress_appointment(db, staff, legacy_appointment):
    appt = legacy_appointment("In Progress")
    stage_photo(appt.id, staff["alice"].id)

    row, status = workflow.submit_for_review(db, appt.id, staff["alice"].id)

    assert row.has_started and row.has_completed
    assert status == AppointmentStatus.PENDING_REVIEW
    assert len(evidence.list_by_appointment(db, appt.id)) == 1


def test_other_workers_cannot_act_on_legacy_appointment(db, staff, legacy_appointment):
    appt = legacy_appointment()
    with pytest.raises(NotAssigned):
        workflow.start_work(db, appt.id, staff["bob"].id)
    assert assignments.list_by_appointment(db, appt.id) == []


def test_adding_a_worker_keeps_legacy_progress(db, staff, legacy_appointment):
    appt = legacy_appointment("Pending Review")

    appointments.update_appointment(
        db, appt.id, AppointmentUpdate(worker_ids=[staff["bob"].id]), staff["dispatcher"]
    )

    rows = assignments.list_by_appointment(db, appt.id)
    assert [r.worker_id for r in rows] == [staff["alice"].id, staff["bob"].id]
    assert rows[0].has_completed and not rows[1].has_started
    # the new unstarted worker pulls the appointment back from review
    assert load_snapshot(db, appt.id).status == AppointmentStatus.IN_PROGRESS.value


def test_status_filter_matches_legacy_spellings(db, staff, legacy_appointment, make_appointment):
    started = legacy_appointment("in_progress")
    scheduled = legacy_appointment("Scheduled")
    fresh = make_appointment("alice")

    in_progress = appointments.list_appointments(db, status=AppointmentStatus.IN_PROGRESS)
    assert [a.id for a in in_progress] == [started.id]

    confirmed = appointments.list_appointments(db, status=AppointmentStatus.CONFIRMED)
    assert {a.id for a in confirmed} == {scheduled.id, fresh.id}
