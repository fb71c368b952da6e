"""Typed error taxonomy shared by the query layer and the booking engine.

Every error carries a stable ``code`` so UI collaborators can map a
failure to a message without parsing exception text.
"""

from typing import Optional


class CareCoordError(Exception):
    """Base class for all carecoord errors."""

    code = "CareCoordError"


class InvalidQueryError(CareCoordError):
    """A query descriptor cannot be executed against the store."""

    code = "InvalidQuery"


class FetchError(CareCoordError):
    """A store read, write, or subscription failed."""

    code = "FetchError"

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class MalformedScheduleError(CareCoordError):
    """A date or time is not in the expected YYYY-MM-DD / HH:MM form."""

    code = "MalformedSchedule"


class InvalidDurationError(CareCoordError):
    code = "InvalidDuration"


class InvalidTransitionError(CareCoordError):
    """Raised when a status change has no edge in the booking lifecycle."""

    code = "InvalidTransition"


class UnsupportedOperationError(CareCoordError):
    code = "UnsupportedOperation"


class UnauthorizedError(CareCoordError):
    """The acting party may not perform the requested transition."""

    code = "Unauthorized"


class BookingValidationError(CareCoordError):
    """Booking input is missing required fields or has unknown values."""

    code = "BookingValidation"


class ProviderUnavailableError(BookingValidationError):
    """The selected provider does not match the requested window or area."""

    code = "ProviderUnavailable"


class BookingNotFoundError(CareCoordError):
    code = "BookingNotFound"
