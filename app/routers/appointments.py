from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.auth import admins_only, get_current_user, schedulers
from app.core.db import get_db
from app.models.appointment import Appointment, AppointmentStatus
from app.models.user import StaffRole, User
from app.schemas.appointment import (
    AppointmentCreate,
    AppointmentOut,
    AppointmentSnapshot,
    AppointmentUpdate,
    EventOut,
    StatusOverride,
)
from app.services import activity, appointments, assignments, workflow
from app.services.snapshot import load_snapshot

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _out(appointment: Appointment) -> AppointmentOut:
    out = AppointmentOut.model_validate(appointment)
    out.public_url = appointments.public_link(appointment)
    return out


def _assert_appointment_access(db: Session, user: User, appointment: Appointment):
    if user.role in (StaffRole.DISPATCHER, StaffRole.ADMIN):
        return
    worker_ids = {r.worker_id for r in assignments.effective_assignments(db, appointment)}
    if user.role == StaffRole.WORKER and user.id in worker_ids:
        return
    raise HTTPException(status_code=403, detail="Not your appointment")


@router.post("", response_model=AppointmentOut)
def create_appointment(
    payload: AppointmentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(schedulers),
):
    return _out(appointments.create_appointment(db, payload, user))


@router.get("", response_model=list[AppointmentOut])
def list_appointments(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    status_filter: Optional[AppointmentStatus] = None,
    worker_id: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if user.role == StaffRole.WORKER:
        worker_id = user.id
    rows = appointments.list_appointments(db, date_from, date_to, status_filter, worker_id)
    return [_out(a) for a in rows]


@router.get("/{appointment_id}", response_model=AppointmentSnapshot)
def get_appointment(
    appointment_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _assert_appointment_access(db, user, appointments.get_appointment(db, appointment_id))
    return load_snapshot(db, appointment_id)


@router.patch("/{appointment_id}", response_model=AppointmentOut)
def update_appointment(
    appointment_id: str,
    payload: AppointmentUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(schedulers),
):
    return _out(appointments.update_appointment(db, appointment_id, payload, user))


@router.delete("/{appointment_id}")
def delete_appointment(
    appointment_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(schedulers),
):
    appointments.delete_appointment(db, appointment_id, user)
    return {"ok": True}


@router.post("/{appointment_id}/status", response_model=AppointmentOut)
def override_status(
    appointment_id: str,
    payload: StatusOverride,
    db: Session = Depends(get_db),
    admin: User = Depends(admins_only),
):
    return _out(workflow.override_status(db, appointment_id, payload.status, admin, payload.reason))


@router.get("/{appointment_id}/events", response_model=list[EventOut])
def get_appointment_events(
    appointment_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    _assert_appointment_access(db, user, appointments.get_appointment(db, appointment_id))
    return activity.list_events(db, appointment_id)
