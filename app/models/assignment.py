from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from app.core.db import Base


class Assignment(Base):
    """One worker's share of an appointment and their progress on it."""

    __tablename__ = "appointment_assignments"
    __table_args__ = (UniqueConstraint("appointment_id", "worker_id", name="uq_assignment_appointment_worker"),)

    id = Column(String, primary_key=True)  # uuid
    appointment_id = Column(
        String, ForeignKey("appointments.id", ondelete="CASCADE"), index=True, nullable=False
    )
    worker_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    # assignment order within the appointment
    position = Column(Integer, nullable=False, default=0)

    # has_completed implies has_started; both only ever go False -> True
    has_started = Column(Boolean, default=False, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=True)
    has_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
