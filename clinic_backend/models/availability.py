"""Availability model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, Integer, Time
from clinic_backend.database import Base


class AvailabilityRule(Base):
    """Recurring weekly open hours for a provider (day_of_week 0 = Sunday)."""
    __tablename__ = 'availability_rules'
    __table_args__ = (
        CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_availability_rules_day_of_week'),
        CheckConstraint('end_time > start_time', name='ck_availability_rules_window'),
        CheckConstraint('slot_duration_minutes > 0', name='ck_availability_rules_duration'),
        Index('idx_availability_rules_provider_day', 'provider_id', 'day_of_week'),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey('providers.id', ondelete='CASCADE'), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    slot_duration_minutes = Column(Integer, nullable=False, default=30)
    is_active = Column(Boolean, nullable=False, default=True)
