from datetime import date, time

import pytest

from conftest import MONDAY, NOW, TUESDAY, make_appointment, make_provider
from clinic_backend.core import errors
from clinic_backend.models.appointment import AppointmentStatus
from clinic_backend.services.blackout_store import BlackoutStore


def test_add_blackout_trims_reason(db, provider) -> None:
    blackout = BlackoutStore(db).add_blackout(provider.id, MONDAY, time(12, 0), time(13, 0), '  Lunch  ', now=NOW)

    assert blackout.id is not None
    assert blackout.reason == 'Lunch'


def test_add_blackout_rejects_past_date(db, provider) -> None:
    with pytest.raises(errors.ValidationError):
        BlackoutStore(db).add_blackout(provider.id, date(2026, 3, 1), time(12, 0), time(13, 0), now=NOW)


def test_add_blackout_rejects_inverted_range(db, provider) -> None:
    with pytest.raises(errors.ValidationError):
        BlackoutStore(db).add_blackout(provider.id, MONDAY, time(13, 0), time(12, 0), now=NOW)


def test_add_blackout_over_active_booking_is_conflict(db, provider, patient) -> None:
    booked = make_appointment(db, patient, provider, slot_time=time(9, 0))

    with pytest.raises(errors.ConflictError) as exc_info:
        BlackoutStore(db).add_blackout(provider.id, MONDAY, time(8, 30), time(9, 30), now=NOW)

    assert exc_info.value.details == {'appointment_ids': [booked.id]}
    assert BlackoutStore(db).for_date(provider.id, MONDAY) == []


def test_add_blackout_ignores_cancelled_bookings_and_end_boundary(db, provider, patient) -> None:
    make_appointment(db, patient, provider, slot_time=time(9, 0), status=AppointmentStatus.cancelled)
    make_appointment(db, patient, provider, slot_time=time(10, 0))

    blackout = BlackoutStore(db).add_blackout(provider.id, MONDAY, time(9, 0), time(10, 0), now=NOW)

    assert blackout.covers(time(9, 30))
    assert not blackout.covers(time(10, 0))


def test_list_blackouts_defaults_to_upcoming(db, provider) -> None:
    store = BlackoutStore(db)
    store.add_blackout(provider.id, TUESDAY, time(8, 0), time(9, 0), now=NOW)
    store.add_blackout(provider.id, MONDAY, time(8, 0), time(9, 0), now=NOW)

    upcoming = store.list_blackouts(provider.id, today=TUESDAY)
    everything = store.list_blackouts(provider.id, today=NOW.date())

    assert [blackout.blackout_date for blackout in upcoming] == [TUESDAY]
    assert [blackout.blackout_date for blackout in everything] == [MONDAY, TUESDAY]


def test_list_blackouts_by_range(db, provider) -> None:
    store = BlackoutStore(db)
    store.add_blackout(provider.id, MONDAY, time(8, 0), time(9, 0), now=NOW)
    store.add_blackout(provider.id, TUESDAY, time(8, 0), time(9, 0), now=NOW)

    assert len(store.list_blackouts(provider.id, MONDAY, MONDAY)) == 1
    with pytest.raises(errors.ValidationError):
        store.list_blackouts(provider.id, TUESDAY, MONDAY)


def test_delete_blackout_is_scoped_to_provider(db, provider) -> None:
    other = make_provider(db, name='Dr. Other')
    store = BlackoutStore(db)
    blackout = store.add_blackout(provider.id, MONDAY, time(8, 0), time(9, 0), now=NOW)

    with pytest.raises(errors.NotFoundError):
        store.delete_blackout(other.id, blackout.id)

    store.delete_blackout(provider.id, blackout.id)
    assert store.for_date(provider.id, MONDAY) == []
