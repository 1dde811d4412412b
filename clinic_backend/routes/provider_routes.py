from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import require_provider
from clinic_backend.core import config
from clinic_backend.core.actors import Actor
from clinic_backend.database import get_db
from clinic_backend.models.appointment import AppointmentStatus
from clinic_backend.models.patient import Patient
from clinic_backend.routes.appointment_routes import AppointmentResponse, CancelAppointmentRequest
from clinic_backend.services.booking_ledger import AppointmentQuery, BookingLedger
from clinic_backend.services.booking_state_machine import BookingStateMachine

router = APIRouter(tags=['provider'])


class ClinicalNoteRequest(BaseModel):
    note: str | None = None

    @field_validator('note')
    @classmethod
    def validate_note(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > config.MAX_CLINICAL_NOTE_LENGTH:
            raise ValueError(f'Notes must be {config.MAX_CLINICAL_NOTE_LENGTH} characters or fewer.')

        return normalized


class NoShowResponse(BaseModel):
    appointment: AppointmentResponse
    patient_blocked: bool
    consecutive_no_show_count: int


@router.get('/appointments', response_model=list[AppointmentResponse])
def list_provider_appointments(
    on_date: date | None = Query(default=None, alias='date'),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    appointment_status: AppointmentStatus | None = Query(default=None, alias='status'),
    actor: Actor = Depends(require_provider),
    db: Session = Depends(get_db),
):
    criteria = AppointmentQuery(
        provider_id=actor.id,
        on_date=on_date,
        start_date=start_date,
        end_date=end_date,
        statuses=(appointment_status,) if appointment_status else None,
    )
    return BookingLedger(db).search(criteria)


@router.get('/appointments/{appointment_id}', response_model=AppointmentResponse)
def get_provider_appointment(appointment_id: int, actor: Actor = Depends(require_provider), db: Session = Depends(get_db)):
    return BookingStateMachine(db).get(appointment_id, actor)


@router.post('/appointments/{appointment_id}/realize', response_model=AppointmentResponse)
def realize_appointment(appointment_id: int, actor: Actor = Depends(require_provider), db: Session = Depends(get_db)):
    return BookingStateMachine(db).mark_realized(appointment_id, actor)


@router.post('/appointments/{appointment_id}/no-show', response_model=NoShowResponse)
def record_no_show(appointment_id: int, actor: Actor = Depends(require_provider), db: Session = Depends(get_db)):
    appointment = BookingStateMachine(db).mark_no_show(appointment_id, actor)
    patient = db.query(Patient).filter(Patient.id == appointment.patient_id).first()

    return NoShowResponse(
        appointment=AppointmentResponse.model_validate(appointment),
        patient_blocked=patient.is_blocked,
        consecutive_no_show_count=patient.consecutive_no_show_count,
    )


@router.post('/appointments/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    data: CancelAppointmentRequest,
    actor: Actor = Depends(require_provider),
    db: Session = Depends(get_db),
):
    return BookingStateMachine(db).cancel(appointment_id, actor, data.reason)


@router.put('/appointments/{appointment_id}/clinical-note', response_model=AppointmentResponse)
def record_clinical_note(
    appointment_id: int,
    data: ClinicalNoteRequest,
    actor: Actor = Depends(require_provider),
    db: Session = Depends(get_db),
):
    return BookingStateMachine(db).record_clinical_note(appointment_id, actor, data.note)
