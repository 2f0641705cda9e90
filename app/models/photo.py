from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from app.core.db import Base


class EvidencePhoto(Base):
    """Committed work evidence. Rows are only ever appended; id order is commit order."""

    __tablename__ = "evidence_photos"
    # a ref lands in an appointment's ledger at most once, even when two submits race
    __table_args__ = (UniqueConstraint("appointment_id", "url", name="uq_evidence_appointment_url"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    appointment_id = Column(
        String, ForeignKey("appointments.id", ondelete="CASCADE"), index=True, nullable=False
    )
    uploaded_by_worker_id = Column(String, ForeignKey("users.id"), index=True, nullable=True)

    url = Column(String, nullable=False)
    content_type = Column(String, nullable=True)  # image/jpeg, etc
    size_bytes = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
