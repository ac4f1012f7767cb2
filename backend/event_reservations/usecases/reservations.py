import logging

from ..domain.errors import EventNotFoundError, ForbiddenError, ReservationNotFoundError
from ..domain.policy import Actor, can_remove, can_transition
from ..domain.repositories import EventRepository, ReservationRepository, ReservationRow
from ..domain.services import EventSnapshot, StatusTransition, plan_transition, validate_reservation
from ..models import Event, Reservation, ReservationStatus
from ..utils.time import utc_now_naive

logger = logging.getLogger(__name__)


async def create_reservation(
    event_repo: EventRepository,
    res_repo: ReservationRepository,
    *,
    event_id: int,
    user_id: int,
) -> tuple[Reservation, Event]:
    # Row lock on the event serializes check-then-insert per event.
    event = await event_repo.get_for_update(event_id)
    if event is None:
        raise EventNotFoundError("event not found")

    existing = await res_repo.find_active_for_user(event_id, user_id)
    active = await res_repo.count_active(event_id)

    snapshot = EventSnapshot(
        status=event.status,
        capacity=event.capacity,
        active_reservations=active,
        user_has_active_reservation=existing is not None,
    )
    validate_reservation(snapshot)

    reservation = await res_repo.create(
        event_id=event.id,
        user_id=user_id,
        status=ReservationStatus.PENDING,
    )
    return reservation, event


async def change_status(
    event_repo: EventRepository,
    res_repo: ReservationRepository,
    *,
    reservation_id: int,
    new_status: ReservationStatus,
    actor: Actor,
) -> tuple[Reservation, Event, StatusTransition]:
    """
    Move a reservation to ``new_status`` and keep the event's seat counter in step.

    Any status may follow any other; the only gate is the access policy. The
    caller is expected to run this inside a single transaction so the seat
    adjustment and the status write commit together.
    """
    row = await res_repo.get_for_update(reservation_id)
    if row is None:
        raise ReservationNotFoundError("reservation not found")
    reservation, event = row

    owns = actor.owns(reservation.user_id)
    if not can_transition(actor_is_admin=actor.is_admin, actor_owns_reservation=owns, requested=new_status):
        if not owns:
            raise ForbiddenError("you can only manage your own reservations")
        raise ForbiddenError("participants can only cancel reservations")

    transition = plan_transition(reservation.status, new_status)
    if transition.seat_delta != 0:
        adjusted = await event_repo.adjust_available_seats(reservation.event_id, transition.seat_delta)
        if not adjusted:
            raise EventNotFoundError("event not found")
        logger.info(
            "available seats adjusted by %+d for event %s (reservation %s: %s -> %s)",
            transition.seat_delta,
            reservation.event_id,
            reservation.id,
            transition.status_from,
            transition.status_to,
        )

    reservation.status = new_status
    reservation.updated_at = utc_now_naive()
    updated = await res_repo.save(reservation)
    return updated, event, transition


async def remove_reservation(
    res_repo: ReservationRepository,
    *,
    reservation_id: int,
    actor: Actor,
) -> Reservation:
    """Delete a reservation record. Seat counters are left untouched."""
    row = await res_repo.get_for_update(reservation_id)
    if row is None:
        raise ReservationNotFoundError("reservation not found")
    reservation, _ = row
    if not can_remove(actor_is_admin=actor.is_admin, actor_owns_reservation=actor.owns(reservation.user_id)):
        raise ForbiddenError("you can only delete your own reservations")
    await res_repo.delete(reservation)
    return reservation


async def find_one(
    res_repo: ReservationRepository,
    *,
    reservation_id: int,
) -> ReservationRow:
    row = await res_repo.get(reservation_id)
    if row is None:
        raise ReservationNotFoundError("reservation not found")
    return row


async def find_all(
    res_repo: ReservationRepository,
    *,
    actor: Actor,
) -> list[ReservationRow]:
    if actor.is_admin:
        return await res_repo.list_all()
    return await res_repo.list_all(user_id=actor.user_id)


async def find_by_event(
    event_repo: EventRepository,
    res_repo: ReservationRepository,
    *,
    event_id: int,
    actor_is_admin: bool,
) -> list[ReservationRow]:
    if await event_repo.get(event_id) is None:
        raise EventNotFoundError("event not found")
    # Participants only see the confirmed attendee list.
    status = None if actor_is_admin else ReservationStatus.CONFIRMED
    return await res_repo.list_by_event(event_id, status=status)


async def find_by_user(
    res_repo: ReservationRepository,
    *,
    user_id: int,
) -> list[ReservationRow]:
    return await res_repo.list_by_user(user_id)


async def get_stats(res_repo: ReservationRepository) -> dict[str, int]:
    counts = await res_repo.count_by_status()
    stats = {status.value.lower(): counts.get(status, 0) for status in ReservationStatus}
    return {"total": sum(stats.values()), **stats}
