"""Error taxonomy for queue operations.

Every error carries a machine-readable ``kind`` and the HTTP status the
API answers with; the app factory renders them as JSON.
"""


class RotationError(Exception):
    """Base exception for turn queue operations."""

    kind = 'error'
    status_code = 500
    default_message = 'Queue operation failed'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotYourTurn(RotationError):
    kind = 'not_your_turn'
    status_code = 409
    default_message = 'Wait for your turn to mark names'


class TurnExpired(RotationError):
    kind = 'turn_expired'
    status_code = 409
    default_message = 'Your turn time is over'


class QuotaExceeded(RotationError):
    kind = 'quota_exceeded'
    status_code = 409
    default_message = 'You already marked the maximum names for this turn'


class InvalidInput(RotationError):
    kind = 'invalid_input'
    status_code = 400
    default_message = 'Invalid input'


class NotFound(RotationError):
    kind = 'not_found'
    status_code = 404
    default_message = 'Not found'


class Unauthorized(RotationError):
    kind = 'unauthorized'
    status_code = 403
    default_message = 'You are not allowed to do that'


class ConflictRetry(RotationError):
    """Lost a conditional update; re-fetch state and retry once."""
    kind = 'conflict_retry'
    status_code = 409
    default_message = 'Queue state changed, refresh and try again'


class StoreUnavailable(RotationError):
    kind = 'store_unavailable'
    status_code = 503
    default_message = 'Queue storage is temporarily unavailable'
