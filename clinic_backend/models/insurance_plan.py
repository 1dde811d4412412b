"""Insurance plan model definitions."""

from sqlalchemy import Boolean, Column, Integer, String
from clinic_backend.database import Base


class InsurancePlan(Base):
    """A payer plan patients may book under instead of paying themselves."""
    __tablename__ = 'insurance_plans'

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    # Plans every provider takes without being listed in provider_insurance_plans.
    accepted_by_all = Column(Boolean, nullable=False, default=False)
