from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from app.core.db import Base


class WorkerNote(Base):
    __tablename__ = "worker_notes"
    __table_args__ = (UniqueConstraint("appointment_id", "worker_id", name="uq_worker_note"),)

    id = Column(String, primary_key=True)  # uuid
    appointment_id = Column(
        String, ForeignKey("appointments.id", ondelete="CASCADE"), index=True, nullable=False
    )
    worker_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    body = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
