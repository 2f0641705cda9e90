from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text
from sqlalchemy.sql import func

from app.core.db import Base


class AppointmentEvent(Base):
    __tablename__ = "appointment_events"

    # autoincrement so rows written in one transaction keep their order
    id = Column(Integer, primary_key=True, autoincrement=True)
    appointment_id = Column(
        String, ForeignKey("appointments.id", ondelete="CASCADE"), index=True, nullable=False
    )
    # staff user for dashboard actions, worker id for public-link actions, neither for the customer
    actor_user_id = Column(String, ForeignKey("users.id"), index=True, nullable=True)

    # CREATED, ASSIGNED, WORKER_STARTED, EVIDENCE_COMMITTED, WORKER_COMPLETED, STATUS_CHANGED, RATED
    event_type = Column(String, nullable=False)
    message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
