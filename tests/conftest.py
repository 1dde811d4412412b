import os
from datetime import date, datetime, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from clinic_backend.database import Base  # noqa: E402
from clinic_backend.models.appointment import Appointment, AppointmentStatus  # noqa: E402
from clinic_backend.models.availability import AvailabilityRule  # noqa: E402
from clinic_backend.models.blackout import Blackout  # noqa: E402,F401
from clinic_backend.models.insurance_plan import InsurancePlan  # noqa: E402,F401
from clinic_backend.models.patient import Patient  # noqa: E402
from clinic_backend.models.provider import Provider  # noqa: E402

# Monday 2026-03-02 07:00; MONDAY is the following Monday.
NOW = datetime(2026, 3, 2, 7, 0)
MONDAY = date(2026, 3, 9)
TUESDAY = date(2026, 3, 10)


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def make_provider(db, name: str = 'Dr. Ana Souza', is_active: bool = True) -> Provider:
    provider = Provider(name=name, is_active=is_active)
    db.add(provider)
    db.commit()
    db.refresh(provider)
    return provider


def make_patient(db, name: str = 'Carlos Lima', is_active: bool = True, **fields) -> Patient:
    patient = Patient(
        name=name,
        is_active=is_active,
        consecutive_no_show_count=fields.pop('consecutive_no_show_count', 0),
        is_blocked=fields.pop('is_blocked', False),
        **fields,
    )
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient


def make_rule(
    db,
    provider: Provider,
    day_of_week: int = 1,
    start: time = time(8, 0),
    end: time = time(10, 0),
    duration: int = 30,
    is_active: bool = True,
) -> AvailabilityRule:
    rule = AvailabilityRule(
        provider_id=provider.id,
        day_of_week=day_of_week,
        start_time=start,
        end_time=end,
        slot_duration_minutes=duration,
        is_active=is_active,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def make_appointment(
    db,
    patient: Patient,
    provider: Provider,
    day: date = MONDAY,
    slot_time: time = time(8, 0),
    status: AppointmentStatus = AppointmentStatus.scheduled,
) -> Appointment:
    appointment = Appointment(
        patient_id=patient.id,
        provider_id=provider.id,
        appointment_date=day,
        appointment_time=slot_time,
        status=status,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


@pytest.fixture
def provider(db) -> Provider:
    return make_provider(db)


@pytest.fixture
def patient(db) -> Patient:
    return make_patient(db)


@pytest.fixture
def monday_rule(db, provider) -> AvailabilityRule:
    return make_rule(db, provider)
