"""Provider model definitions."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship

from clinic_backend.database import Base
from clinic_backend.models.insurance_plan import InsurancePlan


provider_insurance_plans = Table(
    'provider_insurance_plans',
    Base.metadata,
    Column('provider_id', Integer, ForeignKey('providers.id', ondelete='CASCADE'), primary_key=True),
    Column('insurance_plan_id', Integer, ForeignKey('insurance_plans.id', ondelete='CASCADE'), primary_key=True),
)


class Provider(Base):
    """A clinician whose weekly template and blackouts define bookable time."""
    __tablename__ = 'providers'

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    insurance_plans = relationship(InsurancePlan, secondary=provider_insurance_plans, lazy='selectin')

    def accepts_plan(self, plan: InsurancePlan) -> bool:
        return plan.accepted_by_all or any(accepted.id == plan.id for accepted in self.insurance_plans)
