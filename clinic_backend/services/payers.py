from dataclasses import dataclass

from sqlalchemy.orm import Session

from clinic_backend.core import errors
from clinic_backend.models.appointment import PayerType
from clinic_backend.models.insurance_plan import InsurancePlan
from clinic_backend.models.provider import Provider


@dataclass(frozen=True)
class Payer:
    """Who pays for a booking: the patient (no plan) or an insurance plan."""

    insurance_plan_id: int | None = None

    @property
    def is_self_pay(self) -> bool:
        return self.insurance_plan_id is None

    @property
    def payer_type(self) -> PayerType:
        return PayerType.self_pay if self.is_self_pay else PayerType.insurance


SELF_PAY = Payer()


def get_active_plan(db: Session, insurance_plan_id: int) -> InsurancePlan:
    plan = db.query(InsurancePlan).filter(
        InsurancePlan.id == insurance_plan_id,
        InsurancePlan.is_active.is_(True),
    ).first()
    if plan is None:
        raise errors.NotFoundError('Insurance plan not found.', {'insurance_plan_id': insurance_plan_id})
    return plan


def ensure_provider_accepts(db: Session, provider: Provider, payer: Payer) -> None:
    if payer.is_self_pay:
        return

    plan = get_active_plan(db, payer.insurance_plan_id)
    if not provider.accepts_plan(plan):
        raise errors.PolicyViolation(
            'This provider does not accept the selected insurance plan.',
            {'provider_id': provider.id, 'insurance_plan_id': plan.id},
        )


def providers_accepting(db: Session, insurance_plan_id: int | None = None) -> list[Provider]:
    providers = db.query(Provider).filter(Provider.is_active.is_(True)).order_by(Provider.name.asc()).all()

    if insurance_plan_id is None:
        return providers

    plan = get_active_plan(db, insurance_plan_id)
    return [provider for provider in providers if provider.accepts_plan(plan)]
