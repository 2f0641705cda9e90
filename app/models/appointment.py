import enum
from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.db import Base


class AppointmentStatus(str, enum.Enum):
    CONFIRMED = "Confirmed"
    IN_PROGRESS = "In Progress"
    PENDING_REVIEW = "Pending Review"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @classmethod
    def coerce(cls, value) -> "AppointmentStatus":
        """Read a stored status, tolerating legacy spellings ("in progress", "in_progress")."""
        if isinstance(value, cls):
            return value
        if not value:
            return cls.CONFIRMED
        key = str(value).strip().replace("_", " ").lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        return cls.CONFIRMED


TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String, primary_key=True)  # uuid string

    customer_id = Column(String, ForeignKey("customers.id"), index=True, nullable=False)
    # Legacy single-worker field. Appointments without assignment rows are
    # read through a virtual assignment built from (staff_id, status).
    staff_id = Column(String, ForeignKey("users.id"), index=True, nullable=True)

    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    appointment_date = Column(Date, index=True, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)
    location = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # Free text so that rows written by older clients still load; see AppointmentStatus.coerce
    status = Column(String(32), default=AppointmentStatus.CONFIRMED.value, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    assignments = relationship(
        "Assignment",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Assignment.position",
    )
    photos = relationship("EvidencePhoto", cascade="all, delete-orphan", passive_deletes=True)
    worker_notes = relationship("WorkerNote", cascade="all, delete-orphan", passive_deletes=True)
    rating = relationship("Rating", cascade="all, delete-orphan", passive_deletes=True, uselist=False)
    events = relationship("AppointmentEvent", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def current_status(self) -> AppointmentStatus:
        return AppointmentStatus.coerce(self.status)
