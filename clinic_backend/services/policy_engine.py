import logging
from datetime import date, datetime, time

from sqlalchemy.orm import Session

from clinic_backend.core import config, errors
from clinic_backend.models.appointment import Appointment
from clinic_backend.models.patient import Patient
from clinic_backend.services.slot_generator import truncate_to_minute
from clinic_backend.services.transaction import commit_or_rollback, lock_patient


logger = logging.getLogger(__name__)


def hours_until(moment: datetime, now: datetime) -> float:
    return (moment - truncate_to_minute(now)).total_seconds() / 3600


class PolicyEngine:
    """Cross-cutting booking rules: future-booking limit, change window, no-show auto-block.

    The engine holds only thresholds. Counters live on the patient row and are
    changed in the caller's transaction.
    """

    def __init__(
        self,
        max_active_future: int | None = None,
        change_window_hours: int | None = None,
        no_show_block_threshold: int | None = None,
    ) -> None:
        if max_active_future is None:
            max_active_future = config.MAX_ACTIVE_FUTURE_APPOINTMENTS
        if change_window_hours is None:
            change_window_hours = config.CANCELLATION_WINDOW_HOURS
        if no_show_block_threshold is None:
            no_show_block_threshold = config.NO_SHOW_BLOCK_THRESHOLD

        self.max_active_future = max_active_future
        self.change_window_hours = change_window_hours
        self.no_show_block_threshold = no_show_block_threshold

    def ensure_patient_can_book(self, patient: Patient, active_future_count: int) -> None:
        if patient.is_blocked:
            raise errors.PolicyViolation(
                'This account is blocked after repeated missed appointments. Contact the clinic administration.',
                {'patient_id': patient.id},
            )

        if active_future_count >= self.max_active_future:
            raise errors.PolicyViolation(
                f'You already have {self.max_active_future} upcoming appointments. '
                'Cancel one before booking another.',
                {'patient_id': patient.id, 'active_future_count': active_future_count},
            )

    def ensure_future(self, day: date, slot_time: time, now: datetime) -> None:
        if datetime.combine(day, slot_time) <= truncate_to_minute(now):
            raise errors.ValidationError(
                'Appointments must be scheduled for a future date and time.',
                {'date': day.isoformat(), 'time': slot_time.strftime('%H:%M')},
            )

    def ensure_within_change_window(self, appointment: Appointment, now: datetime, action: str = 'cancelled') -> None:
        remaining = hours_until(appointment.scheduled_for, now)
        if remaining < self.change_window_hours:
            raise errors.PolicyViolation(
                f'Appointments can only be {action} at least {self.change_window_hours} hours in advance.',
                {'appointment_id': appointment.id, 'hours_remaining': round(remaining, 2)},
            )

    def record_realized(self, patient: Patient) -> None:
        patient.consecutive_no_show_count = 0

    def record_no_show(self, patient: Patient, now: datetime) -> bool:
        """Count a missed appointment; return True when this call blocked the patient."""
        patient.consecutive_no_show_count = (patient.consecutive_no_show_count or 0) + 1

        if patient.is_blocked or patient.consecutive_no_show_count < self.no_show_block_threshold:
            return False

        patient.is_blocked = True
        patient.blocked_at = now
        return True

    def block(self, patient: Patient, now: datetime) -> None:
        if patient.is_blocked:
            raise errors.PolicyViolation('This patient is already blocked.', {'patient_id': patient.id})

        patient.is_blocked = True
        patient.blocked_at = now

    def unblock(self, patient: Patient) -> None:
        if not patient.is_blocked:
            raise errors.PolicyViolation('This patient is not blocked.', {'patient_id': patient.id})

        patient.is_blocked = False
        patient.blocked_at = None
        patient.consecutive_no_show_count = 0


def block_patient(
    db: Session,
    patient_id: int,
    now: datetime | None = None,
    policy: PolicyEngine | None = None,
) -> Patient:
    patient = lock_patient(db, patient_id)
    (policy or PolicyEngine()).block(patient, truncate_to_minute(now or datetime.now()))
    commit_or_rollback(db)
    db.refresh(patient)

    logger.warning('Patient %s blocked by administrator', patient_id)
    return patient


def unblock_patient(db: Session, patient_id: int, policy: PolicyEngine | None = None) -> Patient:
    patient = lock_patient(db, patient_id)
    (policy or PolicyEngine()).unblock(patient)
    commit_or_rollback(db)
    db.refresh(patient)

    logger.warning('Patient %s unblocked by administrator', patient_id)
    return patient


def list_blocked_patients(db: Session) -> list[Patient]:
    return db.query(Patient).filter(Patient.is_blocked.is_(True)).order_by(
        Patient.blocked_at.desc(),
        Patient.id.asc(),
    ).all()
