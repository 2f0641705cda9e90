from sqlalchemy.orm import Session

from app.models.event import AppointmentEvent


def log_event(
    db: Session,
    appointment_id: str,
    event_type: str,
    message: str | None = None,
    actor_user_id: str | None = None,
) -> AppointmentEvent:
    """Stage an activity row in the caller's transaction. The caller commits."""
    ev = AppointmentEvent(
        appointment_id=appointment_id,
        actor_user_id=actor_user_id,
        event_type=event_type,
        message=message,
    )
    db.add(ev)
    return ev


def list_events(db: Session, appointment_id: str) -> list[AppointmentEvent]:
    return (
        db.query(AppointmentEvent)
        .filter(AppointmentEvent.appointment_id == appointment_id)
        .order_by(AppointmentEvent.id.asc())
        .all()
    )
