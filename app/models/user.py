import enum
from sqlalchemy import Column, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func

from app.core.db import Base


class StaffRole(str, enum.Enum):
    ADMIN = "ADMIN"
    DISPATCHER = "DISPATCHER"
    WORKER = "WORKER"


class User(Base):
    """Staff account. Workers are users with role WORKER."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)  # uuid string
    name = Column(String, nullable=False)
    phone = Column(String, unique=True, index=True, nullable=False)
    role = Column(Enum(StaffRole), nullable=False)
    password_hash = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
