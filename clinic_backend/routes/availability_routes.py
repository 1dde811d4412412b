from datetime import date, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import get_current_actor, require_provider
from clinic_backend.core import config
from clinic_backend.core.actors import Actor
from clinic_backend.database import get_db
from clinic_backend.services.availability_store import AvailabilityStore
from clinic_backend.services.blackout_store import BlackoutStore
from clinic_backend.services.payers import providers_accepting
from clinic_backend.services.slot_generator import SlotGenerator

router = APIRouter(tags=['availability'])


def validate_whole_minute(value: time) -> time:
    if value.second or value.microsecond:
        raise ValueError('Times must be whole minutes (HH:MM).')
    return value


class AvailabilityRuleRequest(BaseModel):
    day_of_week: int
    start_time: time
    end_time: time
    slot_duration_minutes: int | None = None

    @field_validator('day_of_week')
    @classmethod
    def validate_day_of_week(cls, value: int) -> int:
        if not 0 <= value <= 6:
            raise ValueError('Day of week must be between 0 (Sunday) and 6 (Saturday).')
        return value

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_times(cls, value: time) -> time:
        return validate_whole_minute(value)

    @field_validator('slot_duration_minutes')
    @classmethod
    def validate_duration(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError('Slot duration must be a positive number of minutes.')
        return value


class AvailabilityRuleUpdateRequest(BaseModel):
    start_time: time
    end_time: time
    slot_duration_minutes: int | None = None
    is_active: bool = True

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_times(cls, value: time) -> time:
        return validate_whole_minute(value)


class AvailabilityRuleResponse(BaseModel):
    id: int
    day_of_week: int
    start_time: time
    end_time: time
    slot_duration_minutes: int
    is_active: bool

    class Config:
        from_attributes = True


class CreateBlackoutRequest(BaseModel):
    date: date
    start_time: time
    end_time: time
    reason: str | None = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_times(cls, value: time) -> time:
        return validate_whole_minute(value)

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > config.MAX_BLACKOUT_REASON_LENGTH:
            raise ValueError(f'Reason must be {config.MAX_BLACKOUT_REASON_LENGTH} characters or fewer.')

        return normalized


class BlackoutResponse(BaseModel):
    id: int
    blackout_date: date
    start_time: time
    end_time: time
    reason: str | None = None

    class Config:
        from_attributes = True


class SlotListResponse(BaseModel):
    provider_id: int
    date: date
    slots: list[time]
    reason: str | None = None


class ProviderSummaryResponse(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


@router.get('/providers', response_model=list[ProviderSummaryResponse])
def list_providers(
    insurance_plan_id: int | None = Query(default=None),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    return providers_accepting(db, insurance_plan_id)


@router.get('/providers/{provider_id}/slots', response_model=SlotListResponse)
def list_provider_slots(
    provider_id: int,
    slot_date: date = Query(..., alias='date'),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    listing = SlotGenerator(db).list_slots(provider_id, slot_date)
    return SlotListResponse(
        provider_id=listing.provider_id,
        date=listing.day,
        slots=list(listing.slots),
        reason=listing.reason,
    )


@router.get('/rules', response_model=list[AvailabilityRuleResponse])
def list_rules(actor: Actor = Depends(require_provider), db: Session = Depends(get_db)):
    return AvailabilityStore(db).list_rules(actor.id)


@router.post('/rules', response_model=AvailabilityRuleResponse, status_code=status.HTTP_201_CREATED)
def create_rule(
    data: AvailabilityRuleRequest,
    actor: Actor = Depends(require_provider),
    db: Session = Depends(get_db),
):
    return AvailabilityStore(db).add_rule(
        actor.id,
        data.day_of_week,
        data.start_time,
        data.end_time,
        data.slot_duration_minutes,
    )


@router.put('/rules/{rule_id}', response_model=AvailabilityRuleResponse)
def update_rule(
    rule_id: int,
    data: AvailabilityRuleUpdateRequest,
    actor: Actor = Depends(require_provider),
    db: Session = Depends(get_db),
):
    return AvailabilityStore(db).update_rule(
        actor.id,
        rule_id,
        data.start_time,
        data.end_time,
        data.slot_duration_minutes,
        data.is_active,
    )


@router.delete('/rules/{rule_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_rule(rule_id: int, actor: Actor = Depends(require_provider), db: Session = Depends(get_db)):
    AvailabilityStore(db).delete_rule(actor.id, rule_id)


@router.get('/blackouts', response_model=list[BlackoutResponse])
def list_blackouts(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    actor: Actor = Depends(require_provider),
    db: Session = Depends(get_db),
):
    return BlackoutStore(db).list_blackouts(actor.id, start_date, end_date)


@router.post('/blackouts', response_model=BlackoutResponse, status_code=status.HTTP_201_CREATED)
def create_blackout(
    data: CreateBlackoutRequest,
    actor: Actor = Depends(require_provider),
    db: Session = Depends(get_db),
):
    return BlackoutStore(db).add_blackout(actor.id, data.date, data.start_time, data.end_time, data.reason)


@router.delete('/blackouts/{blackout_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_blackout(blackout_id: int, actor: Actor = Depends(require_provider), db: Session = Depends(get_db)):
    BlackoutStore(db).delete_blackout(actor.id, blackout_id)
