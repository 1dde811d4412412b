"""Appointment model definitions."""

import enum
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Index, Integer, String, Text, Time, text
from clinic_backend.database import ACTIVE_SLOT_CONDITION, ACTIVE_SLOT_INDEX_NAME, Base


class AppointmentStatus(str, enum.Enum):
    scheduled = 'scheduled'
    rescheduled = 'rescheduled'
    realized = 'realized'
    cancelled = 'cancelled'
    no_show = 'no_show'


# Statuses that still occupy a provider's slot.
ACTIVE_STATUSES = (AppointmentStatus.scheduled, AppointmentStatus.rescheduled)


class PayerType(str, enum.Enum):
    self_pay = 'self_pay'
    insurance = 'insurance'


class Appointment(Base):
    """A booking of one provider slot by one patient. Rows are never deleted."""
    __tablename__ = 'appointments'
    __table_args__ = (
        Index(
            ACTIVE_SLOT_INDEX_NAME,
            'provider_id',
            'appointment_date',
            'appointment_time',
            unique=True,
            postgresql_where=text(ACTIVE_SLOT_CONDITION),
            sqlite_where=text(ACTIVE_SLOT_CONDITION),
        ),
        Index('idx_appointments_patient_status', 'patient_id', 'status'),
    )

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey('patients.id'), nullable=False)
    provider_id = Column(Integer, ForeignKey('providers.id'), nullable=False)
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(Time, nullable=False)
    status = Column(
        Enum(AppointmentStatus, name='appointment_status'),
        nullable=False,
        default=AppointmentStatus.scheduled,
    )
    payer_type = Column(Enum(PayerType, name='payer_type'), nullable=False, default=PayerType.self_pay)
    insurance_plan_id = Column(Integer, ForeignKey('insurance_plans.id'), nullable=True)
    cancellation_reason = Column(String(500), nullable=True)
    clinical_note = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.now)

    @property
    def scheduled_for(self) -> datetime:
        return datetime.combine(self.appointment_date, self.appointment_time)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
