"""
Assignment store: which workers are on an appointment and how far each got.

Each mutation touches exactly one row with a conditional UPDATE, so two
workers progressing the same appointment never contend for a lock.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import AlreadyCompleted, DuplicateAssignment, NotAssigned, NotStarted
from app.models.appointment import Appointment, AppointmentStatus
from app.models.assignment import Assignment
from app.services import activity, realtime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VirtualAssignment:
    """Read-only stand-in for appointments that predate multi-worker assignment."""

    appointment_id: str
    worker_id: str
    has_started: bool
    has_completed: bool
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    position: int = 0
    virtual: bool = True


_STARTED = {AppointmentStatus.IN_PROGRESS, AppointmentStatus.PENDING_REVIEW, AppointmentStatus.COMPLETED}
_FINISHED = {AppointmentStatus.PENDING_REVIEW, AppointmentStatus.COMPLETED}


def legacy_assignment(appointment: Appointment) -> Optional[VirtualAssignment]:
    if not appointment.staff_id:
        return None
    status = appointment.current_status
    return VirtualAssignment(
        appointment_id=appointment.id,
        worker_id=appointment.staff_id,
        has_started=status in _STARTED,
        has_completed=status in _FINISHED,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get(db: Session, appointment_id: str, worker_id: str) -> Optional[Assignment]:
    return (
        db.query(Assignment)
        .filter(Assignment.appointment_id == appointment_id, Assignment.worker_id == worker_id)
        .first()
    )


def list_by_appointment(db: Session, appointment_id: str) -> list[Assignment]:
    return (
        db.query(Assignment)
        .filter(Assignment.appointment_id == appointment_id)
        .order_by(Assignment.position.asc(), Assignment.created_at.asc())
        .all()
    )


def effective_assignments(db: Session, appointment: Appointment) -> list:
    """Stored rows, or the synthesized legacy record when there are none."""
    rows = list_by_appointment(db, appointment.id)
    if rows:
        return rows
    virtual = legacy_assignment(appointment)
    return [virtual] if virtual else []


def assign(
    db: Session, appointment_id: str, worker_id: str, actor_user_id: str | None = None, commit: bool = True
) -> Assignment:
    next_position = (
        db.query(func.coalesce(func.max(Assignment.position) + 1, 0))
        .filter(Assignment.appointment_id == appointment_id)
        .scalar()
    )
    row = Assignment(
        id=str(uuid.uuid4()),
        appointment_id=appointment_id,
        worker_id=worker_id,
        position=next_position,
        has_started=False,
        has_completed=False,
    )
    db.add(row)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise DuplicateAssignment()

    activity.log_event(db, appointment_id, "ASSIGNED", f"Assigned worker {worker_id}", actor_user_id)
    if commit:
        db.commit()
    logger.info("Assigned worker %s to appointment %s", worker_id, appointment_id)
    return row


def ensure_for_worker(db: Session, appointment: Appointment, worker_id: str) -> Assignment:
    """Return the worker's stored row.

    A legacy appointment gets its virtual record written out the first time its
    worker acts on it; reads never write.
    """
    row = get(db, appointment.id, worker_id)
    if row is not None:
        return row

    virtual = legacy_assignment(appointment)
    if virtual is None or virtual.worker_id != worker_id or list_by_appointment(db, appointment.id):
        raise NotAssigned()

    row = materialize_legacy(db, appointment)
    db.commit()
    return row


def materialize_legacy(db: Session, appointment: Appointment) -> Optional[Assignment]:
    """Write the virtual record out as a real row, keeping the progress it implies. Caller commits."""
    virtual = legacy_assignment(appointment)
    if virtual is None:
        return None
    row = assign(db, appointment.id, virtual.worker_id, commit=False)
    now = _utcnow()
    if virtual.has_started:
        row.has_started, row.started_at = True, now
    if virtual.has_completed:
        row.has_completed, row.completed_at = True, now
    logger.info("Materialized legacy assignment for appointment %s", appointment.id)
    return row


def start(db: Session, appointment_id: str, worker_id: str, now: datetime | None = None) -> Assignment:
    """Mark the worker as started. Repeating the call is a no-op."""
    now = now or _utcnow()
    result = db.execute(
        update(Assignment)
        .where(
            Assignment.appointment_id == appointment_id,
            Assignment.worker_id == worker_id,
            Assignment.has_started.is_(False),
        )
        .values(has_started=True, started_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        realtime.mark_changed(db, appointment_id)
        activity.log_event(db, appointment_id, "WORKER_STARTED", "Worker started", worker_id)
        db.commit()
        logger.info("Worker %s started appointment %s", worker_id, appointment_id)

    db.expire_all()
    row = get(db, appointment_id, worker_id)
    if row is None:
        raise NotAssigned()
    return row


def complete(
    db: Session, appointment_id: str, worker_id: str, now: datetime | None = None, exclusive: bool = False
) -> Assignment:
    """Mark the worker's part done. Requires a start.

    Repeating the call is a no-op, unless ``exclusive`` is set: then only the
    call whose UPDATE matched the row succeeds and any other gets
    ``AlreadyCompleted``.
    """
    now = now or _utcnow()
    result = db.execute(
        update(Assignment)
        .where(
            Assignment.appointment_id == appointment_id,
            Assignment.worker_id == worker_id,
            Assignment.has_started.is_(True),
            Assignment.has_completed.is_(False),
        )
        .values(has_completed=True, completed_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        realtime.mark_changed(db, appointment_id)
        activity.log_event(db, appointment_id, "WORKER_COMPLETED", "Worker submitted work for review", worker_id)
        db.commit()
        logger.info("Worker %s completed appointment %s", worker_id, appointment_id)

    db.expire_all()
    row = get(db, appointment_id, worker_id)
    if row is None:
        raise NotAssigned()
    if not row.has_started:
        raise NotStarted()
    if exclusive and not result.rowcount:
        db.rollback()
        raise AlreadyCompleted()
    return row
