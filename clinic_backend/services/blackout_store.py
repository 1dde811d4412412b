import logging
from datetime import date, datetime, time

from sqlalchemy.orm import Session

from clinic_backend.core import config, errors
from clinic_backend.models.blackout import Blackout
from clinic_backend.services.booking_ledger import BookingLedger
from clinic_backend.services.transaction import commit_or_rollback, lock_provider


logger = logging.getLogger(__name__)


class BlackoutStore:
    """One-off blocked ranges per provider and date."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def for_date(self, provider_id: int, day: date) -> list[Blackout]:
        return self.db.query(Blackout).filter(
            Blackout.provider_id == provider_id,
            Blackout.blackout_date == day,
        ).order_by(Blackout.start_time.asc()).all()

    def list_blackouts(
        self,
        provider_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
        today: date | None = None,
    ) -> list[Blackout]:
        query = self.db.query(Blackout).filter(Blackout.provider_id == provider_id)

        if start_date is not None and end_date is not None:
            if end_date < start_date:
                raise errors.ValidationError('End date must not be before start date.')
            query = query.filter(Blackout.blackout_date >= start_date, Blackout.blackout_date <= end_date)
        else:
            query = query.filter(Blackout.blackout_date >= (today or date.today()))

        return query.order_by(Blackout.blackout_date.asc(), Blackout.start_time.asc()).all()

    def add_blackout(
        self,
        provider_id: int,
        day: date,
        start_time: time,
        end_time: time,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> Blackout:
        now = now or datetime.now()

        if day < now.date():
            raise errors.ValidationError('Past dates cannot be blocked.')

        if end_time <= start_time:
            raise errors.ValidationError('End time must be later than start time.')

        # The recheck below must see every booking committed before this lock was granted.
        lock_provider(self.db, provider_id)

        conflicting = BookingLedger(self.db).active_in_window(provider_id, day, start_time, end_time)
        if conflicting:
            raise errors.ConflictError(
                'There are active appointments in this period. Cancel them before blocking it.',
                {'appointment_ids': [appointment.id for appointment in conflicting]},
            )

        normalized_reason = (reason or '').strip()[:config.MAX_BLACKOUT_REASON_LENGTH] or None
        blackout = Blackout(
            provider_id=provider_id,
            blackout_date=day,
            start_time=start_time,
            end_time=end_time,
            reason=normalized_reason,
        )
        self.db.add(blackout)
        commit_or_rollback(self.db)
        self.db.refresh(blackout)

        logger.info('Provider %s blocked %s %s-%s', provider_id, day, start_time, end_time)
        return blackout

    def delete_blackout(self, provider_id: int, blackout_id: int) -> None:
        blackout = self.db.query(Blackout).filter(
            Blackout.id == blackout_id,
            Blackout.provider_id == provider_id,
        ).first()

        if blackout is None:
            raise errors.NotFoundError('Blackout not found.', {'blackout_id': blackout_id})

        self.db.delete(blackout)
        commit_or_rollback(self.db)
        logger.info('Provider %s removed blackout %s', provider_id, blackout_id)
