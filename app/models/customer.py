from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.sql import func

from app.core.db import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String, primary_key=True)  # uuid string
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    unit_number = Column(String, nullable=True)
    address = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
