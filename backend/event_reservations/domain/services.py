from dataclasses import dataclass

from ..models import EventStatus, ReservationStatus
from .errors import CapacityExceededError, DuplicateReservationError, EventNotOpenError

ACTIVE_STATUSES: tuple[ReservationStatus, ...] = (
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
)


@dataclass(frozen=True)
class EventSnapshot:
    status: EventStatus
    capacity: int
    active_reservations: int
    user_has_active_reservation: bool


@dataclass(frozen=True)
class StatusTransition:
    status_from: ReservationStatus
    status_to: ReservationStatus
    seat_delta: int


def validate_reservation(snapshot: EventSnapshot) -> None:
    """
    Pure admission check: event is published, the user holds no active
    reservation, and active reservations are below capacity. Raises domain errors otherwise.
    """
    if snapshot.status != EventStatus.PUBLISHED:
        raise EventNotOpenError("cannot reserve unpublished or canceled event")
    if snapshot.user_has_active_reservation:
        raise DuplicateReservationError("user already has an active reservation for this event")
    if snapshot.active_reservations >= snapshot.capacity:
        raise CapacityExceededError("event is full")


def compute_seat_delta(old_status: ReservationStatus, new_status: ReservationStatus) -> int:
    """Seat adjustment for a transition: only crossing the CONFIRMED boundary moves seats."""
    if old_status == ReservationStatus.CONFIRMED and new_status != ReservationStatus.CONFIRMED:
        return 1
    if old_status != ReservationStatus.CONFIRMED and new_status == ReservationStatus.CONFIRMED:
        return -1
    return 0


def plan_transition(old_status: ReservationStatus, new_status: ReservationStatus) -> StatusTransition:
    return StatusTransition(
        status_from=old_status,
        status_to=new_status,
        seat_delta=compute_seat_delta(old_status, new_status),
    )
