"""
Full appointment state for viewers.

Change signals carry nothing, so this is what every viewer calls after one.
The read also re-derives the status from the assignments it just loaded and
repairs a stored value a racing derivation left behind.
"""
import logging

from sqlalchemy.orm import Session

from app.models.appointment import Appointment, AppointmentStatus
from app.schemas.appointment import (
    AppointmentSnapshot,
    AssignmentOut,
    EvidencePhotoOut,
    RatingOut,
)
from app.services import assignments, directory, evidence, notes
from app.services.appointments import get_appointment
from app.services.ratings import get_rating
from app.services.status import derive_status, refresh_status

logger = logging.getLogger(__name__)


def _repair_if_stale(db: Session, appointment: Appointment, rows: list) -> Appointment:
    if not rows or getattr(rows[0], "virtual", False):
        return appointment
    current = appointment.current_status
    if current.is_terminal or derive_status(current, rows) == current:
        return appointment
    logger.info("Repairing stale status on appointment %s", appointment.id)
    refresh_status(db, appointment.id)
    return get_appointment(db, appointment.id)


def load_snapshot(db: Session, appointment_id: str, repair: bool = True) -> AppointmentSnapshot:
    db.expire_all()
    appointment = get_appointment(db, appointment_id)
    rows = assignments.effective_assignments(db, appointment)
    if repair:
        appointment = _repair_if_stale(db, appointment, rows)
        rows = assignments.effective_assignments(db, appointment)

    status = derive_status(appointment.status, rows)
    names = {u.id: u.name for u in directory.list_assigned_workers(db, appointment)}
    notes_by_worker = notes.notes_by_worker(db, appointment.id)
    customer = directory.get_customer_by_id(db, appointment.customer_id)
    rating = get_rating(db, appointment.id)

    workers = [
        AssignmentOut(
            worker_id=r.worker_id,
            worker_name=names.get(r.worker_id),
            has_started=bool(r.has_started),
            started_at=r.started_at,
            has_completed=bool(r.has_completed),
            completed_at=r.completed_at,
            note=notes_by_worker.get(r.worker_id),
            virtual=getattr(r, "virtual", False),
        )
        for r in rows
    ]

    return AppointmentSnapshot(
        id=appointment.id,
        title=appointment.title,
        description=appointment.description,
        appointment_date=appointment.appointment_date,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        location=appointment.location,
        notes=appointment.notes,
        customer_name=customer.name if customer else None,
        customer_unit=customer.unit_number if customer else None,
        status=status.value,
        workers=workers,
        photos=[EvidencePhotoOut.model_validate(p) for p in evidence.list_by_appointment(db, appointment.id)],
        rating=RatingOut.model_validate(rating) if rating else None,
        can_rate=status == AppointmentStatus.COMPLETED and rating is None,
    )
