"""Blackout model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, Time
from clinic_backend.database import Base


class Blackout(Base):
    """A one-off range on a given date during which a provider takes no bookings."""
    __tablename__ = 'blackouts'
    __table_args__ = (
        Index('idx_blackouts_provider_date', 'provider_id', 'blackout_date'),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey('providers.id', ondelete='CASCADE'), nullable=False)
    blackout_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    def covers(self, slot_time) -> bool:
        return self.start_time <= slot_time < self.end_time
