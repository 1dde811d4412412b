"""Free-slot derivation.

A provider's free slots for a date are the start times produced by the
weekly template for that weekday, minus starts inside a blackout, minus starts
already held by an active appointment, minus (for today) starts that are not
in the future. The result is recomputed from the stores on every call.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time

from sqlalchemy.orm import Session

from clinic_backend.core import errors
from clinic_backend.models.availability import AvailabilityRule
from clinic_backend.models.blackout import Blackout
from clinic_backend.models.provider import Provider
from clinic_backend.services.availability_store import AvailabilityStore, day_of_week
from clinic_backend.services.blackout_store import BlackoutStore
from clinic_backend.services.booking_ledger import BookingLedger


NO_RULES_REASON = 'The provider does not see patients on this day of the week.'
INACTIVE_PROVIDER_REASON = 'The provider is not currently accepting appointments.'
FULLY_BOOKED_REASON = 'No free slots remain on this date.'


@dataclass(frozen=True)
class SlotListing:
    provider_id: int
    day: date
    slots: tuple[time, ...] = field(default_factory=tuple)
    reason: str | None = None


def truncate_to_minute(moment: datetime) -> datetime:
    return moment.replace(second=0, microsecond=0)


def _to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def iterate_rule_starts(start_time: time, end_time: time, duration_minutes: int) -> list[time]:
    """Start times from ``start_time`` in ``duration_minutes`` steps that still end by ``end_time``."""
    starts: list[time] = []
    current = _to_minutes(start_time)
    last_end = _to_minutes(end_time)

    while current + duration_minutes <= last_end:
        starts.append(_from_minutes(current))
        current += duration_minutes

    return starts


def is_blacked_out(candidate: time, blackouts: list[Blackout]) -> bool:
    return any(blackout.covers(candidate) for blackout in blackouts)


def compute_free_slots(
    rules: list[AvailabilityRule],
    blackouts: list[Blackout],
    occupied: set[time],
    not_after: time | None = None,
) -> tuple[time, ...]:
    """Combine the template, blackouts and bookings for one date.

    ``not_after`` drops every candidate at or before that time; it is set only
    when the date is today.
    """
    candidates: set[time] = set()

    for rule in rules:
        for candidate in iterate_rule_starts(rule.start_time, rule.end_time, rule.slot_duration_minutes):
            if is_blacked_out(candidate, blackouts):
                continue
            if candidate in occupied:
                continue
            if not_after is not None and candidate <= not_after:
                continue
            candidates.add(candidate)

    return tuple(sorted(candidates))


class SlotGenerator:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.availability = AvailabilityStore(db)
        self.blackouts = BlackoutStore(db)
        self.ledger = BookingLedger(db)

    def list_slots(self, provider_id: int, day: date, now: datetime | None = None) -> SlotListing:
        now = truncate_to_minute(now or datetime.now())

        provider = self.db.query(Provider).filter(Provider.id == provider_id).first()
        if provider is None:
            raise errors.NotFoundError('Provider not found.', {'provider_id': provider_id})

        if day < now.date():
            raise errors.ValidationError('Slots cannot be listed for past dates.', {'date': day.isoformat()})

        if not provider.is_active:
            return SlotListing(provider_id=provider_id, day=day, reason=INACTIVE_PROVIDER_REASON)

        rules = self.availability.active_rules_for(provider_id, day_of_week(day))
        if not rules:
            return SlotListing(provider_id=provider_id, day=day, reason=NO_RULES_REASON)

        slots = compute_free_slots(
            rules,
            self.blackouts.for_date(provider_id, day),
            self.ledger.occupied_times(provider_id, day),
            not_after=now.time() if day == now.date() else None,
        )

        return SlotListing(
            provider_id=provider_id,
            day=day,
            slots=slots,
            reason=None if slots else FULLY_BOOKED_REASON,
        )
