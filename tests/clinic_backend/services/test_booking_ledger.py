from datetime import date, datetime, time

import pytest

from conftest import MONDAY, NOW, TUESDAY, make_appointment, make_patient, make_provider
from clinic_backend.core import errors
from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.services.booking_ledger import AppointmentQuery, AppointmentScope, BookingLedger


def test_get_unknown_appointment(db) -> None:
    with pytest.raises(errors.NotFoundError):
        BookingLedger(db).get(123)


def test_add_reports_duplicate_active_slot_as_conflict(db, provider, patient) -> None:
    make_appointment(db, patient, provider, slot_time=time(8, 0))
    duplicate = Appointment(
        patient_id=make_patient(db, name='Other').id,
        provider_id=provider.id,
        appointment_date=MONDAY,
        appointment_time=time(8, 0),
        status=AppointmentStatus.scheduled,
    )

    with pytest.raises(errors.ConflictError):
        BookingLedger(db).add(duplicate)


def test_inactive_rows_do_not_hold_the_slot(db, provider, patient) -> None:
    make_appointment(db, patient, provider, slot_time=time(8, 0), status=AppointmentStatus.cancelled)
    make_appointment(db, patient, provider, slot_time=time(8, 0), status=AppointmentStatus.no_show)
    ledger = BookingLedger(db)

    assert not ledger.is_slot_taken(provider.id, MONDAY, time(8, 0))
    ledger.add(Appointment(
        patient_id=patient.id,
        provider_id=provider.id,
        appointment_date=MONDAY,
        appointment_time=time(8, 0),
        status=AppointmentStatus.scheduled,
    ))
    db.commit()

    assert ledger.occupied_times(provider.id, MONDAY) == {time(8, 0)}


def test_is_slot_taken_can_exclude_an_appointment(db, provider, patient) -> None:
    appointment = make_appointment(db, patient, provider, slot_time=time(8, 0))
    ledger = BookingLedger(db)

    assert ledger.is_slot_taken(provider.id, MONDAY, time(8, 0))
    assert not ledger.is_slot_taken(provider.id, MONDAY, time(8, 0), exclude_id=appointment.id)


def test_count_active_future_is_strictly_after_now(db, provider, patient) -> None:
    make_appointment(db, patient, provider, day=NOW.date(), slot_time=time(7, 0))
    make_appointment(db, patient, provider, day=NOW.date(), slot_time=time(7, 30))
    make_appointment(db, patient, provider, slot_time=time(8, 0), status=AppointmentStatus.rescheduled)

    assert BookingLedger(db).count_active_future(patient.id, NOW) == 2


def test_active_in_window_is_half_open(db, provider, patient) -> None:
    make_appointment(db, patient, provider, slot_time=time(8, 0))
    inside = make_appointment(db, patient, provider, slot_time=time(8, 30))
    make_appointment(db, patient, provider, slot_time=time(9, 0))

    found = BookingLedger(db).active_in_window(provider.id, MONDAY, time(8, 15), time(9, 0))

    assert [appointment.id for appointment in found] == [inside.id]


def test_search_by_patient_scope(db, provider, patient) -> None:
    past = make_appointment(db, patient, provider, day=date(2026, 2, 23), slot_time=time(8, 0))
    cancelled = make_appointment(db, patient, provider, slot_time=time(8, 0), status=AppointmentStatus.cancelled)
    upcoming_early = make_appointment(db, patient, provider, slot_time=time(9, 0))
    upcoming_late = make_appointment(db, patient, provider, day=TUESDAY, slot_time=time(8, 0))
    make_appointment(db, make_patient(db, name='Other'), provider, slot_time=time(9, 30))
    ledger = BookingLedger(db)

    upcoming = ledger.search(AppointmentQuery(patient_id=patient.id, scope=AppointmentScope.upcoming), now=NOW)
    history = ledger.search(
        AppointmentQuery(patient_id=patient.id, scope=AppointmentScope.past, newest_first=True), now=NOW,
    )

    assert [appointment.id for appointment in upcoming] == [upcoming_early.id, upcoming_late.id]
    assert [appointment.id for appointment in history] == [cancelled.id, past.id]


def test_search_by_provider_date_range_and_status(db, provider, patient) -> None:
    other_provider = make_provider(db, name='Dr. Other')
    monday = make_appointment(db, patient, provider, slot_time=time(8, 0))
    tuesday = make_appointment(db, patient, provider, day=TUESDAY, slot_time=time(8, 0))
    realized = make_appointment(db, patient, provider, slot_time=time(9, 0), status=AppointmentStatus.realized)
    make_appointment(db, patient, other_provider, slot_time=time(8, 0))
    ledger = BookingLedger(db)

    on_monday = ledger.search(AppointmentQuery(provider_id=provider.id, on_date=MONDAY), now=NOW)
    in_range = ledger.search(
        AppointmentQuery(provider_id=provider.id, start_date=TUESDAY, end_date=TUESDAY), now=NOW,
    )
    realized_only = ledger.search(
        AppointmentQuery(provider_id=provider.id, statuses=(AppointmentStatus.realized,)), now=NOW,
    )

    assert [appointment.id for appointment in on_monday] == [monday.id, realized.id]
    assert [appointment.id for appointment in in_range] == [tuesday.id]
    assert [appointment.id for appointment in realized_only] == [realized.id]


def test_search_upcoming_includes_appointment_starting_now(db, provider, patient) -> None:
    starting = make_appointment(db, patient, provider, day=MONDAY, slot_time=time(8, 0))

    found = BookingLedger(db).search(
        AppointmentQuery(patient_id=patient.id, scope=AppointmentScope.upcoming), now=datetime(2026, 3, 9, 8, 0),
    )

    assert [appointment.id for appointment in found] == [starting.id]
