import enum
from dataclasses import dataclass
from datetime import date, datetime, time

from sqlalchemy import and_, or_
from sqlalchemy.orm import Query, Session

from clinic_backend.core import errors
from clinic_backend.models.appointment import ACTIVE_STATUSES, Appointment, AppointmentStatus
from clinic_backend.services.transaction import flush_or_conflict


SLOT_TAKEN_MESSAGE = 'This time is no longer available. Please choose another slot.'


class AppointmentScope(str, enum.Enum):
    upcoming = 'upcoming'
    past = 'past'
    all = 'all'


@dataclass(frozen=True)
class AppointmentQuery:
    """Typed filter set for appointment listings."""

    patient_id: int | None = None
    provider_id: int | None = None
    on_date: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    statuses: tuple[AppointmentStatus, ...] | None = None
    scope: AppointmentScope = AppointmentScope.all
    newest_first: bool = False


def starts_after(moment: datetime):
    """SQL condition: appointment date/time is strictly later than ``moment``."""
    return or_(
        Appointment.appointment_date > moment.date(),
        and_(
            Appointment.appointment_date == moment.date(),
            Appointment.appointment_time > moment.time(),
        ),
    )


def starts_at_or_after(moment: datetime):
    return or_(
        Appointment.appointment_date > moment.date(),
        and_(
            Appointment.appointment_date == moment.date(),
            Appointment.appointment_time >= moment.time(),
        ),
    )


class BookingLedger:
    """The appointment table: the only record of occupied provider time."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, appointment_id: int, for_update: bool = False) -> Appointment:
        query = self.db.query(Appointment).filter(Appointment.id == appointment_id)
        if for_update:
            query = query.with_for_update()
        appointment = query.first()
        if appointment is None:
            raise errors.NotFoundError('Appointment not found.', {'appointment_id': appointment_id})
        return appointment

    def active_on(self, provider_id: int, day: date) -> list[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.provider_id == provider_id,
            Appointment.appointment_date == day,
            Appointment.status.in_(ACTIVE_STATUSES),
        ).order_by(Appointment.appointment_time.asc()).all()

    def occupied_times(self, provider_id: int, day: date) -> set[time]:
        return {appointment.appointment_time for appointment in self.active_on(provider_id, day)}

    def active_in_window(self, provider_id: int, day: date, start_time: time, end_time: time) -> list[Appointment]:
        """Active appointments for the provider that start inside ``[start_time, end_time)``."""
        return self.db.query(Appointment).filter(
            Appointment.provider_id == provider_id,
            Appointment.appointment_date == day,
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.appointment_time >= start_time,
            Appointment.appointment_time < end_time,
        ).order_by(Appointment.appointment_time.asc()).all()

    def is_slot_taken(self, provider_id: int, day: date, slot_time: time, exclude_id: int | None = None) -> bool:
        query = self.db.query(Appointment.id).filter(
            Appointment.provider_id == provider_id,
            Appointment.appointment_date == day,
            Appointment.appointment_time == slot_time,
            Appointment.status.in_(ACTIVE_STATUSES),
        )
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)
        return query.first() is not None

    def count_active_future(self, patient_id: int, now: datetime) -> int:
        return self.db.query(Appointment).filter(
            Appointment.patient_id == patient_id,
            Appointment.status.in_(ACTIVE_STATUSES),
            starts_after(now),
        ).count()

    def add(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        flush_or_conflict(self.db, SLOT_TAKEN_MESSAGE, self._slot_details(appointment))
        return appointment

    def move(self, appointment: Appointment, new_day: date, new_time: time) -> Appointment:
        appointment.appointment_date = new_day
        appointment.appointment_time = new_time
        appointment.status = AppointmentStatus.rescheduled
        flush_or_conflict(self.db, SLOT_TAKEN_MESSAGE, self._slot_details(appointment))
        return appointment

    def search(self, criteria: AppointmentQuery, now: datetime | None = None) -> list[Appointment]:
        return self._build_query(criteria, now or datetime.now()).all()

    def _build_query(self, criteria: AppointmentQuery, now: datetime) -> Query:
        query = self.db.query(Appointment)

        if criteria.patient_id is not None:
            query = query.filter(Appointment.patient_id == criteria.patient_id)
        if criteria.provider_id is not None:
            query = query.filter(Appointment.provider_id == criteria.provider_id)
        if criteria.on_date is not None:
            query = query.filter(Appointment.appointment_date == criteria.on_date)
        if criteria.start_date is not None:
            query = query.filter(Appointment.appointment_date >= criteria.start_date)
        if criteria.end_date is not None:
            query = query.filter(Appointment.appointment_date <= criteria.end_date)
        if criteria.statuses:
            query = query.filter(Appointment.status.in_(criteria.statuses))

        if criteria.scope is AppointmentScope.upcoming:
            query = query.filter(starts_at_or_after(now), Appointment.status.in_(ACTIVE_STATUSES))
        elif criteria.scope is AppointmentScope.past:
            query = query.filter(or_(~starts_at_or_after(now), ~Appointment.status.in_(ACTIVE_STATUSES)))

        if criteria.newest_first:
            return query.order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
        return query.order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())

    @staticmethod
    def _slot_details(appointment: Appointment) -> dict:
        return {
            'provider_id': appointment.provider_id,
            'date': appointment.appointment_date.isoformat(),
            'time': appointment.appointment_time.strftime('%H:%M'),
        }
