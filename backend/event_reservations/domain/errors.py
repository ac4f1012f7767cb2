class ReservationDomainError(Exception):
    """Base class for business-rule failures surfaced to the API layer.

    ``code`` is a stable identifier clients can branch on instead of parsing
    the message.
    """

    code = "reservation_error"


class NotFoundError(ReservationDomainError):
    code = "not_found"


class EventNotFoundError(NotFoundError):
    code = "event_not_found"


class ReservationNotFoundError(NotFoundError):
    code = "reservation_not_found"


class EventNotOpenError(ReservationDomainError):
    """Event is not in a state that accepts reservations."""

    code = "event_not_published"


class DuplicateReservationError(ReservationDomainError):
    code = "already_reserved"


class CapacityExceededError(ReservationDomainError):
    code = "event_full"


class ForbiddenError(ReservationDomainError):
    code = "forbidden"
