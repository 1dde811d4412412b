from datetime import date, time, timedelta

import pytest
from pydantic import ValidationError

from conftest import make_provider, make_rule
from clinic_backend.core.actors import Actor, ActorRole
from clinic_backend.models.insurance_plan import InsurancePlan
from clinic_backend.routes.availability_routes import (
    AvailabilityRuleRequest,
    CreateBlackoutRequest,
    create_blackout,
    create_rule,
    list_provider_slots,
    list_providers,
    list_rules,
    validate_whole_minute,
)
from clinic_backend.services.availability_store import day_of_week
from clinic_backend.services.slot_generator import NO_RULES_REASON


def test_validate_whole_minute() -> None:
    assert validate_whole_minute(time(9, 15)) == time(9, 15)
    with pytest.raises(ValueError):
        validate_whole_minute(time(9, 15, 1))


@pytest.mark.parametrize(
    'fields',
    [
        {'day_of_week': 7, 'start_time': time(8, 0), 'end_time': time(12, 0)},
        {'day_of_week': 0, 'start_time': time(8, 0, 30), 'end_time': time(12, 0)},
        {'day_of_week': 0, 'start_time': time(8, 0), 'end_time': time(12, 0), 'slot_duration_minutes': 0},
    ],
)
def test_availability_rule_request_rejects_bad_input(fields: dict) -> None:
    with pytest.raises(ValidationError):
        AvailabilityRuleRequest(**fields)


def test_create_blackout_request_normalizes_reason() -> None:
    request = CreateBlackoutRequest(date=date(2026, 3, 9), start_time=time(12, 0), end_time=time(13, 0), reason=' ')

    assert request.reason is None
    with pytest.raises(ValidationError):
        CreateBlackoutRequest(date=date(2026, 3, 9), start_time=time(12, 0), end_time=time(13, 0), reason='x' * 256)


def test_provider_manages_own_rules(db, provider) -> None:
    actor = Actor(ActorRole.provider, provider.id)

    created = create_rule(
        AvailabilityRuleRequest(day_of_week=0, start_time=time(8, 0), end_time=time(12, 0), slot_duration_minutes=20),
        actor=actor,
        db=db,
    )

    assert [rule.id for rule in list_rules(actor=actor, db=db)] == [created.id]
    assert created.slot_duration_minutes == 20


def test_list_provider_slots_response(db, provider) -> None:
    day = date.today() + timedelta(days=7)
    make_rule(db, provider, day_of_week=day_of_week(day), start=time(14, 0), end=time(15, 0), duration=20)
    actor = Actor(ActorRole.patient, 1)

    response = list_provider_slots(provider.id, slot_date=day, actor=actor, db=db)
    closed = list_provider_slots(provider.id, slot_date=day + timedelta(days=1), actor=actor, db=db)

    assert response.slots == [time(14, 0), time(14, 20), time(14, 40)]
    assert response.reason is None
    assert closed.slots == []
    assert closed.reason == NO_RULES_REASON


def test_create_blackout_route_removes_slots(db, provider) -> None:
    day = date.today() + timedelta(days=7)
    make_rule(db, provider, day_of_week=day_of_week(day), start=time(14, 0), end=time(16, 0))
    actor = Actor(ActorRole.provider, provider.id)

    create_blackout(
        CreateBlackoutRequest(date=day, start_time=time(15, 0), end_time=time(16, 0), reason='Training'),
        actor=actor,
        db=db,
    )

    response = list_provider_slots(provider.id, slot_date=day, actor=actor, db=db)
    assert response.slots == [time(14, 0), time(14, 30)]


def test_list_providers_filters_by_plan(db, provider) -> None:
    other = make_provider(db, name='Dr. Zeta')
    plan = InsurancePlan(name='Regional Health', accepted_by_all=False, is_active=True)
    db.add(plan)
    db.commit()
    other.insurance_plans.append(plan)
    db.commit()
    actor = Actor(ActorRole.patient, 1)

    everyone = list_providers(insurance_plan_id=None, actor=actor, db=db)
    accepting = list_providers(insurance_plan_id=plan.id, actor=actor, db=db)

    assert [entry.id for entry in everyone] == [provider.id, other.id]
    assert [entry.id for entry in accepting] == [other.id]
