import logging
from datetime import date, time

from sqlalchemy.orm import Session

from clinic_backend.core import config, errors
from clinic_backend.models.availability import AvailabilityRule
from clinic_backend.services.transaction import commit_or_rollback, lock_provider


logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ('Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday')


def day_of_week(day: date) -> int:
    """Rule weekday number for ``day``: 0 is Sunday, 6 is Saturday."""
    return (day.weekday() + 1) % 7


def minutes_between(start: time, end: time) -> int:
    return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)


def validate_rule_window(day_of_week: int, start_time: time, end_time: time, slot_duration_minutes: int) -> None:
    if not 0 <= day_of_week <= 6:
        raise errors.ValidationError('Day of week must be between 0 (Sunday) and 6 (Saturday).')

    if start_time.second or end_time.second:
        raise errors.ValidationError('Availability times must be whole minutes.')

    if end_time <= start_time:
        raise errors.ValidationError('End time must be later than start time.')

    if slot_duration_minutes <= 0:
        raise errors.ValidationError('Slot duration must be a positive number of minutes.')

    if slot_duration_minutes > minutes_between(start_time, end_time):
        raise errors.ValidationError('Slot duration does not fit inside the availability window.')


class AvailabilityStore:
    """Weekly recurring open hours per provider."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def active_rules_for(self, provider_id: int, day_of_week: int) -> list[AvailabilityRule]:
        return self.db.query(AvailabilityRule).filter(
            AvailabilityRule.provider_id == provider_id,
            AvailabilityRule.day_of_week == day_of_week,
            AvailabilityRule.is_active.is_(True),
        ).order_by(AvailabilityRule.start_time.asc()).all()

    def list_rules(self, provider_id: int) -> list[AvailabilityRule]:
        return self.db.query(AvailabilityRule).filter(
            AvailabilityRule.provider_id == provider_id,
        ).order_by(AvailabilityRule.day_of_week.asc(), AvailabilityRule.start_time.asc()).all()

    def get_rule(self, provider_id: int, rule_id: int) -> AvailabilityRule:
        rule = self.db.query(AvailabilityRule).filter(
            AvailabilityRule.id == rule_id,
            AvailabilityRule.provider_id == provider_id,
        ).first()
        if rule is None:
            raise errors.NotFoundError('Availability rule not found.', {'rule_id': rule_id})
        return rule

    def find_overlapping_rule(
        self,
        provider_id: int,
        day_of_week: int,
        start_time: time,
        end_time: time,
        exclude_rule_id: int | None = None,
    ) -> AvailabilityRule | None:
        query = self.db.query(AvailabilityRule).filter(
            AvailabilityRule.provider_id == provider_id,
            AvailabilityRule.day_of_week == day_of_week,
            AvailabilityRule.is_active.is_(True),
            AvailabilityRule.start_time < end_time,
            AvailabilityRule.end_time > start_time,
        )
        if exclude_rule_id is not None:
            query = query.filter(AvailabilityRule.id != exclude_rule_id)
        return query.first()

    def add_rule(
        self,
        provider_id: int,
        day_of_week: int,
        start_time: time,
        end_time: time,
        slot_duration_minutes: int | None = None,
    ) -> AvailabilityRule:
        duration = config.DEFAULT_SLOT_DURATION_MINUTES if slot_duration_minutes is None else slot_duration_minutes
        validate_rule_window(day_of_week, start_time, end_time, duration)

        lock_provider(self.db, provider_id)
        self._ensure_no_overlap(provider_id, day_of_week, start_time, end_time)

        rule = AvailabilityRule(
            provider_id=provider_id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            slot_duration_minutes=duration,
            is_active=True,
        )
        self.db.add(rule)
        commit_or_rollback(self.db)
        self.db.refresh(rule)

        logger.info(
            'Provider %s opened %s %s-%s in %s-minute slots',
            provider_id, WEEKDAY_NAMES[day_of_week], start_time, end_time, duration,
        )
        return rule

    def update_rule(
        self,
        provider_id: int,
        rule_id: int,
        start_time: time,
        end_time: time,
        slot_duration_minutes: int | None = None,
        is_active: bool = True,
    ) -> AvailabilityRule:
        lock_provider(self.db, provider_id)
        rule = self.get_rule(provider_id, rule_id)

        duration = config.DEFAULT_SLOT_DURATION_MINUTES if slot_duration_minutes is None else slot_duration_minutes
        validate_rule_window(rule.day_of_week, start_time, end_time, duration)

        if is_active:
            self._ensure_no_overlap(provider_id, rule.day_of_week, start_time, end_time, exclude_rule_id=rule.id)

        rule.start_time = start_time
        rule.end_time = end_time
        rule.slot_duration_minutes = duration
        rule.is_active = is_active
        commit_or_rollback(self.db)
        self.db.refresh(rule)
        return rule

    def delete_rule(self, provider_id: int, rule_id: int) -> None:
        rule = self.get_rule(provider_id, rule_id)
        self.db.delete(rule)
        commit_or_rollback(self.db)
        logger.info('Provider %s removed availability rule %s', provider_id, rule_id)

    def _ensure_no_overlap(
        self,
        provider_id: int,
        day_of_week: int,
        start_time: time,
        end_time: time,
        exclude_rule_id: int | None = None,
    ) -> None:
        overlapping = self.find_overlapping_rule(provider_id, day_of_week, start_time, end_time, exclude_rule_id)
        if overlapping is not None:
            raise errors.ConflictError(
                'Another active availability rule already covers part of this period.',
                {'rule_id': overlapping.id},
            )
