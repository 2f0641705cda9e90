import logging
import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AlreadyRated, InvalidRating, NotCompleted
from app.models.appointment import AppointmentStatus
from app.models.rating import Rating
from app.services import activity, assignments
from app.services.appointments import get_appointment
from app.services.status import derive_status

logger = logging.getLogger(__name__)


def get_rating(db: Session, appointment_id: str) -> Optional[Rating]:
    return db.query(Rating).filter(Rating.appointment_id == appointment_id).first()


def submit_rating(db: Session, appointment_id: str, rating: int, comment: Optional[str] = None) -> Rating:
    """Record the customer's one and only rating for a completed appointment."""
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise InvalidRating()
    comment = (comment or "").strip() or None
    if comment and len(comment) > settings.RATING_COMMENT_MAX:
        raise InvalidRating(f"Comment must be at most {settings.RATING_COMMENT_MAX} characters")

    appointment = get_appointment(db, appointment_id)
    status = derive_status(appointment.status, assignments.effective_assignments(db, appointment))
    if status != AppointmentStatus.COMPLETED:
        raise NotCompleted()
    if get_rating(db, appointment_id) is not None:
        raise AlreadyRated()

    row = Rating(id=str(uuid.uuid4()), appointment_id=appointment_id, rating=rating, comment=comment)
    db.add(row)
    activity.log_event(db, appointment_id, "RATED", f"Customer rated {rating}/5")
    try:
        db.commit()
    except IntegrityError:
        # lost the race to a concurrent submission; the unique index decided
        db.rollback()
        logger.warning("Duplicate rating rejected for appointment %s", appointment_id)
        raise AlreadyRated()

    db.refresh(row)
    logger.info("Appointment %s rated %d", appointment_id, rating)
    return row
