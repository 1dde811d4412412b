from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import require_admin
from clinic_backend.core.actors import Actor
from clinic_backend.database import get_db
from clinic_backend.services.policy_engine import block_patient, list_blocked_patients, unblock_patient

router = APIRouter(tags=['admin'])


class PatientBookingStatusResponse(BaseModel):
    id: int
    name: str
    is_blocked: bool
    blocked_at: datetime | None = None
    consecutive_no_show_count: int

    class Config:
        from_attributes = True


@router.get('/patients/blocked', response_model=list[PatientBookingStatusResponse])
def list_blocked(actor: Actor = Depends(require_admin), db: Session = Depends(get_db)):
    return list_blocked_patients(db)


@router.post('/patients/{patient_id}/block', response_model=PatientBookingStatusResponse)
def block(patient_id: int, actor: Actor = Depends(require_admin), db: Session = Depends(get_db)):
    return block_patient(db, patient_id)


@router.post('/patients/{patient_id}/unblock', response_model=PatientBookingStatusResponse)
def unblock(patient_id: int, actor: Actor = Depends(require_admin), db: Session = Depends(get_db)):
    return unblock_patient(db, patient_id)
