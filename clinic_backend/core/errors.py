"""Error taxonomy shared by the scheduling services and the HTTP layer.

Every error carries a stable machine-readable ``kind`` and a human message.
``InternalError`` is the only kind whose message is replaced by a generic one
before it reaches the caller.
"""

from typing import Any


class SchedulingError(Exception):
    kind = 'internal_error'
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {'kind': self.kind, 'message': self.message}
        if self.details:
            payload['details'] = self.details
        return {'error': payload}


class ValidationError(SchedulingError):
    """Malformed or out-of-range input, such as a date in the past."""

    kind = 'validation_error'
    status_code = 400


class NotFoundError(SchedulingError):
    kind = 'not_found'
    status_code = 404


class ConflictError(SchedulingError):
    """The requested time is taken, or a blackout would cover a booking.

    Callers are expected to re-fetch free slots and resubmit.
    """

    kind = 'conflict'
    status_code = 409


class PolicyViolation(SchedulingError):
    """A business rule forbids the request; retrying will not help."""

    kind = 'policy_violation'
    status_code = 422


class InternalError(SchedulingError):
    kind = 'internal_error'
    status_code = 500

    GENERIC_MESSAGE = 'An unexpected error occurred. Please try again later.'

    def to_payload(self) -> dict[str, Any]:
        return {'error': {'kind': self.kind, 'message': self.GENERIC_MESSAGE}}
