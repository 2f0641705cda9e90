from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from app.core.db import Base


class Rating(Base):
    __tablename__ = "appointment_ratings"
    __table_args__ = (CheckConstraint("rating BETWEEN 1 AND 5", name="ck_rating_range"),)

    id = Column(String, primary_key=True)  # uuid
    # one rating per appointment; the unique index is what rejects concurrent double-submits
    appointment_id = Column(
        String, ForeignKey("appointments.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
