"""
Worker and administrator actions on an appointment.

Worker actions write their own assignment row, then re-derive the overall
status from a fresh read. Submitting for review commits evidence before the
completion flag, so a failure in between leaves photos recorded against a
worker who is not yet complete, never a completion without photos.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.errors import AppointmentClosed, InvalidTransition
from app.models.appointment import TERMINAL_STATUSES, Appointment, AppointmentStatus
from app.models.assignment import Assignment
from app.models.user import User
from app.services import activity, assignments, evidence, notes, realtime
from app.services.appointments import get_appointment
from app.services.completion import can_submit
from app.services.status import refresh_status

logger = logging.getLogger(__name__)


def _open_appointment(db: Session, appointment_id: str) -> Appointment:
    appointment = get_appointment(db, appointment_id)
    if appointment.current_status in TERMINAL_STATUSES:
        raise AppointmentClosed(f"This appointment is {appointment.current_status.value.lower()}")
    return appointment


def start_work(
    db: Session, appointment_id: str, worker_id: str, now: Optional[datetime] = None
) -> tuple[Assignment, AppointmentStatus]:
    appointment = _open_appointment(db, appointment_id)
    assignments.ensure_for_worker(db, appointment, worker_id)
    row = assignments.start(db, appointment_id, worker_id, now)
    return row, refresh_status(db, appointment_id, worker_id)


def submit_for_review(
    db: Session,
    appointment_id: str,
    worker_id: str,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> tuple[Assignment, AppointmentStatus]:
    appointment = _open_appointment(db, appointment_id)
    staged = evidence.staging.pending(appointment_id, worker_id)

    decision = can_submit(db, appointment_id, worker_id, len(staged))
    if not decision.allowed:
        logger.warning(
            "Submit rejected for worker %s on appointment %s: %s", worker_id, appointment_id, decision.reason
        )
        raise decision.error

    assignments.ensure_for_worker(db, appointment, worker_id)
    # a retry, or a second submit racing this one, finds its photos already in the ledger
    evidence.commit(db, appointment_id, staged, worker_id)
    if note and note.strip():
        notes.upsert_note(db, appointment_id, worker_id, note)

    # only the submit that flips the flag succeeds; the other gets AlreadyCompleted
    row = assignments.complete(db, appointment_id, worker_id, now, exclusive=True)
    evidence.staging.clear(appointment_id, worker_id)
    return row, refresh_status(db, appointment_id, worker_id)


# Administrative targets and the states each may be reached from.
_OVERRIDES = {
    AppointmentStatus.COMPLETED: {AppointmentStatus.PENDING_REVIEW},
    AppointmentStatus.CANCELLED: {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.PENDING_REVIEW,
    },
}


def override_status(
    db: Session, appointment_id: str, target: AppointmentStatus, admin: User, reason: Optional[str] = None
) -> Appointment:
    """Set a terminal status directly. Derivation never moves an appointment out of one."""
    appointment = get_appointment(db, appointment_id)
    current = appointment.current_status
    allowed_from = _OVERRIDES.get(target)
    if allowed_from is None:
        raise InvalidTransition(f"{target.value} is set by the workers' progress, not directly")
    if current not in allowed_from:
        raise InvalidTransition(f"Cannot change status from {current.value} to {target.value}")

    # compare-and-set against the status we validated
    result = db.execute(
        update(Appointment)
        .where(Appointment.id == appointment_id, Appointment.status == appointment.status)
        .values(status=target.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise InvalidTransition("Status changed meanwhile, reload and try again")

    realtime.mark_changed(db, appointment_id)
    message = f"Status {current.value} -> {target.value}" + (f" | {reason.strip()}" if reason else "")
    activity.log_event(db, appointment_id, "STATUS_CHANGED", message, admin.id)
    db.commit()
    db.expire_all()
    logger.info("Admin %s set appointment %s to %s", admin.id, appointment_id, target.value)
    return get_appointment(db, appointment_id)
