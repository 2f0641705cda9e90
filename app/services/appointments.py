"""
Scheduling: creating, editing, listing and deleting appointments.
"""
import logging
import uuid
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFound
from app.models.appointment import Appointment, AppointmentStatus
from app.models.assignment import Assignment
from app.models.user import User
from app.schemas.appointment import AppointmentCreate, AppointmentUpdate
from app.services import activity, assignments, directory, evidence
from app.services.storage import remove_appointment_files
from app.services.status import refresh_status

logger = logging.getLogger(__name__)


def get_appointment(db: Session, appointment_id: str) -> Appointment:
    appointment = db.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFound("Appointment not found")
    return appointment


def public_link(appointment: Appointment) -> str:
    return f"{settings.PUBLIC_BASE_URL}/a/{appointment.id}"


def _validated_workers(db: Session, worker_ids: list[str]) -> list[str]:
    unique: list[str] = []
    for worker_id in worker_ids:
        if worker_id in unique:
            continue
        if directory.get_worker_by_id(db, worker_id) is None:
            raise HTTPException(status_code=400, detail=f"Worker {worker_id} not found")
        unique.append(worker_id)
    return unique


def create_appointment(db: Session, payload: AppointmentCreate, actor: User) -> Appointment:
    if directory.get_customer_by_id(db, payload.customer_id) is None:
        raise HTTPException(status_code=400, detail="Customer not found")
    worker_ids = _validated_workers(db, payload.worker_ids)

    appointment = Appointment(
        id=str(uuid.uuid4()),
        customer_id=payload.customer_id,
        # kept for readers that only know the single-worker field
        staff_id=worker_ids[0] if worker_ids else None,
        title=payload.title.strip(),
        description=payload.description,
        appointment_date=payload.appointment_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        location=payload.location,
        notes=payload.notes,
        status=AppointmentStatus.CONFIRMED.value,
    )
    db.add(appointment)
    activity.log_event(db, appointment.id, "CREATED", f"Appointment created: {appointment.title}", actor.id)
    db.flush()

    for worker_id in worker_ids:
        assignments.assign(db, appointment.id, worker_id, actor.id, commit=False)

    db.commit()
    db.refresh(appointment)
    logger.info("Created appointment %s with %d worker(s)", appointment.id, len(worker_ids))
    return appointment


def update_appointment(db: Session, appointment_id: str, payload: AppointmentUpdate, actor: User) -> Appointment:
    appointment = get_appointment(db, appointment_id)

    fields = payload.model_dump(exclude_unset=True, exclude={"worker_ids"})
    for name, value in fields.items():
        if name == "title" and value is not None:
            value = value.strip()
        if name in ("title", "appointment_date", "start_time", "end_time") and value is None:
            continue
        setattr(appointment, name, value)
    if appointment.end_time <= appointment.start_time:
        raise HTTPException(status_code=400, detail="end_time must be after start_time")

    existing = {r.worker_id for r in assignments.list_by_appointment(db, appointment.id)}
    added = [w for w in _validated_workers(db, payload.worker_ids) if w not in existing]
    if added and not existing:
        # first real rows replace the legacy virtual record, so carry it over with its progress
        legacy = assignments.materialize_legacy(db, appointment)
        if legacy is not None:
            added = [w for w in added if w != legacy.worker_id]
    for worker_id in added:
        assignments.assign(db, appointment.id, worker_id, actor.id, commit=False)
    if appointment.staff_id is None and added:
        appointment.staff_id = added[0]

    db.commit()
    db.refresh(appointment)
    if added:
        # a new unstarted worker can pull Pending Review back to In Progress
        refresh_status(db, appointment.id, actor.id)
        db.refresh(appointment)
    logger.info("Updated appointment %s (+%d worker(s))", appointment.id, len(added))
    return appointment


def delete_appointment(db: Session, appointment_id: str, actor: User) -> None:
    appointment = get_appointment(db, appointment_id)
    db.delete(appointment)
    db.commit()
    evidence.staging.drop_appointment(appointment_id)
    remove_appointment_files(appointment_id)
    logger.info("Appointment %s deleted by %s", appointment_id, actor.id)


def list_appointments(
    db: Session,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    status: Optional[AppointmentStatus] = None,
    worker_id: Optional[str] = None,
) -> list[Appointment]:
    q = db.query(Appointment)
    if date_from:
        q = q.filter(Appointment.appointment_date >= date_from)
    if date_to:
        q = q.filter(Appointment.appointment_date <= date_to)
    if worker_id:
        assigned = db.query(Assignment.appointment_id).filter(Assignment.worker_id == worker_id)
        q = q.filter((Appointment.id.in_(assigned)) | (Appointment.staff_id == worker_id))
    rows = q.order_by(Appointment.appointment_date.asc(), Appointment.start_time.asc()).all()
    if status:
        # stored spellings vary on older rows; match on the coerced value
        rows = [a for a in rows if a.current_status == status]
    return rows
