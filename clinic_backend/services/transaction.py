import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core import errors
from clinic_backend.models.patient import Patient
from clinic_backend.models.provider import Provider


logger = logging.getLogger(__name__)

STORE_FAILURE_MESSAGE = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def flush_or_conflict(db: Session, conflict_message: str, details: dict | None = None) -> None:
    """Flush pending writes, reporting a unique-index violation as a ConflictError."""
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        logger.info('Write rejected by integrity constraint: %s', exc.orig)
        raise errors.ConflictError(conflict_message, details) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Flush failed')
        raise errors.InternalError(STORE_FAILURE_MESSAGE) from exc


def commit_or_rollback(db: Session, conflict_message: str = 'The request conflicts with existing data.') -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info('Commit rejected by integrity constraint: %s', exc.orig)
        raise errors.ConflictError(conflict_message) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Commit failed')
        raise errors.InternalError(STORE_FAILURE_MESSAGE) from exc


def lock_provider(db: Session, provider_id: int, require_active: bool = False) -> Provider:
    """Load the provider row with ``FOR UPDATE`` so writers for one provider run one at a time."""
    provider = db.query(Provider).filter(Provider.id == provider_id).with_for_update().first()
    if provider is None or (require_active and not provider.is_active):
        raise errors.NotFoundError('Provider not found.', {'provider_id': provider_id})
    return provider


def lock_patient(db: Session, patient_id: int, require_active: bool = False) -> Patient:
    patient = db.query(Patient).filter(Patient.id == patient_id).with_for_update().first()
    if patient is None or (require_active and not patient.is_active):
        raise errors.NotFoundError('Patient not found.', {'patient_id': patient_id})
    return patient
