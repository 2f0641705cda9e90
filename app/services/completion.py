from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import AlreadyCompleted, LifecycleError, NoEvidence, NotAssigned, NotFound, NotStarted
from app.models.appointment import Appointment
from app.services import assignments


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    error: Optional[LifecycleError] = None

    @property
    def reason(self) -> Optional[str]:
        return self.error.code if self.error else None


ALLOW = GateDecision(allowed=True)


def can_submit(db: Session, appointment_id: str, worker_id: str, pending_photo_count: int) -> GateDecision:
    """Decide whether a worker may submit their part for review. Reads only."""
    if pending_photo_count <= 0:
        return GateDecision(False, NoEvidence())

    appointment = db.get(Appointment, appointment_id)
    if appointment is None:
        return GateDecision(False, NotFound("Appointment not found"))

    record = next(
        (r for r in assignments.effective_assignments(db, appointment) if r.worker_id == worker_id),
        None,
    )
    if record is None:
        return GateDecision(False, NotAssigned())
    if not record.has_started:
        return GateDecision(False, NotStarted())
    if record.has_completed:
        return GateDecision(False, AlreadyCompleted())
    return ALLOW
