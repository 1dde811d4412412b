from datetime import date, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import require_patient
from clinic_backend.core import config
from clinic_backend.core.actors import Actor
from clinic_backend.database import get_db
from clinic_backend.models.appointment import AppointmentStatus, PayerType
from clinic_backend.routes.availability_routes import validate_whole_minute
from clinic_backend.services.booking_ledger import AppointmentQuery, AppointmentScope, BookingLedger
from clinic_backend.services.booking_state_machine import BookingStateMachine
from clinic_backend.services.payers import Payer

router = APIRouter(tags=['appointments'])


class CreateAppointmentRequest(BaseModel):
    provider_id: int
    date: date
    time: time
    insurance_plan_id: int | None = None

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: time) -> time:
        return validate_whole_minute(value)


class RescheduleAppointmentRequest(BaseModel):
    date: date
    time: time

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: time) -> time:
        return validate_whole_minute(value)


class CancelAppointmentRequest(BaseModel):
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > config.MAX_CANCELLATION_REASON_LENGTH:
            raise ValueError(f'Reason must be {config.MAX_CANCELLATION_REASON_LENGTH} characters or fewer.')

        return normalized


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    provider_id: int
    appointment_date: date
    appointment_time: time
    status: AppointmentStatus
    payer_type: PayerType
    insurance_plan_id: int | None = None
    cancellation_reason: str | None = None
    clinical_note: str | None = None

    class Config:
        from_attributes = True


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    actor: Actor = Depends(require_patient),
    db: Session = Depends(get_db),
):
    return BookingStateMachine(db).create(
        patient_id=actor.id,
        provider_id=data.provider_id,
        day=data.date,
        slot_time=data.time,
        payer=Payer(insurance_plan_id=data.insurance_plan_id),
    )


@router.get('/mine', response_model=list[AppointmentResponse])
def list_my_appointments(
    scope: AppointmentScope = Query(default=AppointmentScope.upcoming),
    actor: Actor = Depends(require_patient),
    db: Session = Depends(get_db),
):
    return BookingLedger(db).search(AppointmentQuery(patient_id=actor.id, scope=scope, newest_first=True))


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_my_appointment(
    appointment_id: int,
    data: CancelAppointmentRequest,
    actor: Actor = Depends(require_patient),
    db: Session = Depends(get_db),
):
    return BookingStateMachine(db).cancel(appointment_id, actor, data.reason)


@router.post('/{appointment_id}/reschedule', response_model=AppointmentResponse)
def reschedule_my_appointment(
    appointment_id: int,
    data: RescheduleAppointmentRequest,
    actor: Actor = Depends(require_patient),
    db: Session = Depends(get_db),
):
    return BookingStateMachine(db).reschedule(appointment_id, actor, data.date, data.time)
