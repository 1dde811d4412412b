"""Appointment lifecycle.

``scheduled`` is the initial state. ``rescheduled`` may be entered from either
active state any number of times. ``cancelled``, ``realized`` and ``no_show``
are terminal. Each public operation runs in one transaction: the appointment
status, the patient's no-show counter and the slot uniqueness check are
committed together or not at all.
"""

import logging
from datetime import date, datetime, time

from sqlalchemy.orm import Session

from clinic_backend.core import config, errors
from clinic_backend.core.actors import Actor, ActorRole
from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.services.booking_ledger import SLOT_TAKEN_MESSAGE, BookingLedger
from clinic_backend.services.payers import SELF_PAY, Payer, ensure_provider_accepts
from clinic_backend.services.policy_engine import PolicyEngine
from clinic_backend.services.slot_generator import SlotGenerator, truncate_to_minute
from clinic_backend.services.transaction import commit_or_rollback, lock_patient, lock_provider


logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.scheduled: frozenset({
        AppointmentStatus.rescheduled,
        AppointmentStatus.cancelled,
        AppointmentStatus.realized,
        AppointmentStatus.no_show,
    }),
    AppointmentStatus.rescheduled: frozenset({
        AppointmentStatus.rescheduled,
        AppointmentStatus.cancelled,
        AppointmentStatus.realized,
        AppointmentStatus.no_show,
    }),
    AppointmentStatus.realized: frozenset(),
    AppointmentStatus.cancelled: frozenset(),
    AppointmentStatus.no_show: frozenset(),
}

DEFAULT_CANCELLATION_REASONS = {
    ActorRole.patient: 'Cancelled by the patient',
    ActorRole.provider: 'Cancelled by the provider',
    ActorRole.admin: 'Cancelled by the clinic',
}

TRANSITION_LABELS = {
    AppointmentStatus.rescheduled: 'rescheduled',
    AppointmentStatus.cancelled: 'cancelled',
    AppointmentStatus.realized: 'marked as realized',
    AppointmentStatus.no_show: 'marked as a no-show',
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class BookingStateMachine:
    def __init__(
        self,
        db: Session,
        policy: PolicyEngine | None = None,
        slots: SlotGenerator | None = None,
    ) -> None:
        self.db = db
        self.policy = policy or PolicyEngine()
        self.slots = slots or SlotGenerator(db)
        self.ledger = BookingLedger(db)

    def create(
        self,
        patient_id: int,
        provider_id: int,
        day: date,
        slot_time: time,
        payer: Payer = SELF_PAY,
        now: datetime | None = None,
    ) -> Appointment:
        now = truncate_to_minute(now or datetime.now())

        patient = lock_patient(self.db, patient_id, require_active=True)
        provider = lock_provider(self.db, provider_id, require_active=True)

        self.policy.ensure_patient_can_book(patient, self.ledger.count_active_future(patient.id, now))
        self.policy.ensure_future(day, slot_time, now)
        ensure_provider_accepts(self.db, provider, payer)
        self._ensure_slot_free(provider.id, day, slot_time, now)

        appointment = Appointment(
            patient_id=patient.id,
            provider_id=provider.id,
            appointment_date=day,
            appointment_time=slot_time,
            status=AppointmentStatus.scheduled,
            payer_type=payer.payer_type,
            insurance_plan_id=payer.insurance_plan_id,
        )
        self.ledger.add(appointment)
        commit_or_rollback(self.db, SLOT_TAKEN_MESSAGE)
        self.db.refresh(appointment)

        logger.info(
            'Appointment %s booked: patient=%s provider=%s at %s %s',
            appointment.id, patient.id, provider.id, day, slot_time,
        )
        return appointment

    def cancel(
        self,
        appointment_id: int,
        actor: Actor,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> Appointment:
        now = truncate_to_minute(now or datetime.now())
        appointment = self._load_in_scope(appointment_id, actor)

        self._ensure_transition(appointment, AppointmentStatus.cancelled)
        self.policy.ensure_within_change_window(appointment, now, action='cancelled')

        normalized_reason = (reason or '').strip()[:config.MAX_CANCELLATION_REASON_LENGTH]
        appointment.status = AppointmentStatus.cancelled
        appointment.cancellation_reason = normalized_reason or DEFAULT_CANCELLATION_REASONS[actor.role]
        commit_or_rollback(self.db)
        self.db.refresh(appointment)

        logger.info('Appointment %s cancelled by %s %s', appointment.id, actor.role.value, actor.id)
        return appointment

    def reschedule(
        self,
        appointment_id: int,
        actor: Actor,
        new_day: date,
        new_time: time,
        now: datetime | None = None,
    ) -> Appointment:
        now = truncate_to_minute(now or datetime.now())
        appointment = self._load_in_scope(appointment_id, actor)

        self._ensure_transition(appointment, AppointmentStatus.rescheduled)
        self.policy.ensure_within_change_window(appointment, now, action='rescheduled')
        self.policy.ensure_future(new_day, new_time, now)

        lock_provider(self.db, appointment.provider_id)
        self._ensure_slot_free(appointment.provider_id, new_day, new_time, now)

        previous = appointment.scheduled_for
        self.ledger.move(appointment, new_day, new_time)
        commit_or_rollback(self.db, SLOT_TAKEN_MESSAGE)
        self.db.refresh(appointment)

        logger.info('Appointment %s moved from %s to %s', appointment.id, previous, appointment.scheduled_for)
        return appointment

    def mark_realized(self, appointment_id: int, actor: Actor) -> Appointment:
        self._ensure_provider_action(actor, 'mark appointments as realized')
        appointment = self._load_in_scope(appointment_id, actor)
        self._realize(appointment)
        commit_or_rollback(self.db)
        self.db.refresh(appointment)

        logger.info('Appointment %s realized', appointment.id)
        return appointment

    def mark_no_show(self, appointment_id: int, actor: Actor, now: datetime | None = None) -> Appointment:
        now = truncate_to_minute(now or datetime.now())
        self._ensure_provider_action(actor, 'record no-shows')
        appointment = self._load_in_scope(appointment_id, actor)
        self._ensure_transition(appointment, AppointmentStatus.no_show)

        patient = lock_patient(self.db, appointment.patient_id)
        appointment.status = AppointmentStatus.no_show
        newly_blocked = self.policy.record_no_show(patient, now)
        commit_or_rollback(self.db)
        self.db.refresh(appointment)

        logger.info(
            'Appointment %s marked as no-show; patient %s has %s consecutive no-shows',
            appointment.id, patient.id, patient.consecutive_no_show_count,
        )
        if newly_blocked:
            logger.warning(
                'Patient %s blocked automatically after %s consecutive no-shows',
                patient.id, patient.consecutive_no_show_count,
            )
        return appointment

    def record_clinical_note(
        self,
        appointment_id: int,
        actor: Actor,
        note: str | None,
        now: datetime | None = None,
    ) -> Appointment:
        """Store the provider's note; an appointment still active is realized at the same time."""
        now = truncate_to_minute(now or datetime.now())
        self._ensure_provider_action(actor, 'record clinical notes')
        appointment = self._load_in_scope(appointment_id, actor)

        if appointment.appointment_date > now.date():
            raise errors.ValidationError('Clinical notes can only be recorded for today or past appointments.')

        if appointment.status is not AppointmentStatus.realized:
            self._realize(appointment)

        appointment.clinical_note = (note or '').strip()[:config.MAX_CLINICAL_NOTE_LENGTH] or None
        commit_or_rollback(self.db)
        self.db.refresh(appointment)
        return appointment

    def _realize(self, appointment: Appointment) -> None:
        self._ensure_transition(appointment, AppointmentStatus.realized)
        patient = lock_patient(self.db, appointment.patient_id)
        appointment.status = AppointmentStatus.realized
        self.policy.record_realized(patient)

    def get(self, appointment_id: int, actor: Actor) -> Appointment:
        """Read one appointment, hiding those outside the actor's scope."""
        return self._load_in_scope(appointment_id, actor, for_update=False)

    def _load_in_scope(self, appointment_id: int, actor: Actor, for_update: bool = True) -> Appointment:
        appointment = self.ledger.get(appointment_id, for_update=for_update)

        if actor.is_patient and appointment.patient_id != actor.id:
            raise errors.NotFoundError('Appointment not found.', {'appointment_id': appointment_id})
        if actor.is_provider and appointment.provider_id != actor.id:
            raise errors.NotFoundError('Appointment not found.', {'appointment_id': appointment_id})

        return appointment

    def _ensure_transition(self, appointment: Appointment, target: AppointmentStatus) -> None:
        if not can_transition(appointment.status, target):
            raise errors.PolicyViolation(
                f'A {appointment.status.value} appointment cannot be {TRANSITION_LABELS[target]}.',
                {'appointment_id': appointment.id, 'status': appointment.status.value},
            )

    def _ensure_provider_action(self, actor: Actor, action: str) -> None:
        if actor.is_patient:
            raise errors.PolicyViolation(f'Only the provider can {action}.')

    def _ensure_slot_free(self, provider_id: int, day: date, slot_time: time, now: datetime) -> None:
        listing = self.slots.list_slots(provider_id, day, now)
        if slot_time in listing.slots:
            return

        details = {'provider_id': provider_id, 'date': day.isoformat(), 'time': slot_time.strftime('%H:%M')}
        if self.ledger.is_slot_taken(provider_id, day, slot_time):
            raise errors.ConflictError(SLOT_TAKEN_MESSAGE, details)
        raise errors.ValidationError('The requested time is not an open slot for this provider.', details)
