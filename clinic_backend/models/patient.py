"""Patient model definitions."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from clinic_backend.database import Base


class Patient(Base):
    """Booking-relevant patient state; profile data lives elsewhere."""
    __tablename__ = 'patients'

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    consecutive_no_show_count = Column(Integer, nullable=False, default=0)
    is_blocked = Column(Boolean, nullable=False, default=False)
    blocked_at = Column(DateTime, nullable=True)
