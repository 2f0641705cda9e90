"""
Overall appointment status, derived from the workers' own progress.

``derive_status`` is pure. ``refresh_status`` is the only place that writes
a derived value back, and it always works from a fresh read of every
assignment so that whichever worker's write lands last sees the settled set.
"""
import logging
from typing import Iterable, Protocol

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.models.appointment import TERMINAL_STATUSES, Appointment, AppointmentStatus
from app.services import activity, assignments, realtime

logger = logging.getLogger(__name__)


class Progress(Protocol):
    has_started: bool
    has_completed: bool


def derive_status(current, progress: Iterable[Progress]) -> AppointmentStatus:
    current = AppointmentStatus.coerce(current)
    progress = list(progress)

    if not progress:
        return current
    if current in TERMINAL_STATUSES:
        return current
    if all(p.has_completed for p in progress):
        return AppointmentStatus.PENDING_REVIEW
    if any(p.has_started for p in progress):
        return AppointmentStatus.IN_PROGRESS
    return AppointmentStatus.CONFIRMED


def refresh_status(db: Session, appointment_id: str, actor_user_id: str | None = None) -> AppointmentStatus:
    """Re-derive from a fresh snapshot and persist it if it moved.

    The write is conditional on the row not being terminal, so an
    administrative Completed/Cancelled landing concurrently is never
    overwritten.
    """
    db.expire_all()
    appointment = db.get(Appointment, appointment_id)
    if appointment is None:
        return AppointmentStatus.CONFIRMED

    rows = assignments.effective_assignments(db, appointment)
    current = appointment.current_status
    derived = derive_status(current, rows)
    if derived == current and appointment.status == current.value:
        return current

    result = db.execute(
        update(Appointment)
        .where(
            Appointment.id == appointment_id,
            Appointment.status.notin_([s.value for s in TERMINAL_STATUSES]),
        )
        .values(status=derived.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        db.expire_all()
        fresh = db.get(Appointment, appointment_id)
        return fresh.current_status if fresh else current

    realtime.mark_changed(db, appointment_id)
    if derived != current:
        activity.log_event(db, appointment_id, "STATUS_CHANGED", f"Status {current.value} -> {derived.value}", actor_user_id)
        logger.info("Appointment %s status %s -> %s", appointment_id, current.value, derived.value)
    db.commit()
    return derived
