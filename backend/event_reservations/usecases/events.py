from dataclasses import dataclass

from ..domain.errors import EventNotFoundError
from ..domain.repositories import EventRepository, ReservationRepository
from ..models import Event


@dataclass(frozen=True)
class EventAdmission:
    event: Event
    active_reservations: int
    remaining: int


async def get_event_admission(
    event_repo: EventRepository,
    res_repo: ReservationRepository,
    *,
    event_id: int,
) -> EventAdmission:
    event = await event_repo.get(event_id)
    if event is None:
        raise EventNotFoundError("event not found")
    active = await res_repo.count_active(event_id)
    return EventAdmission(
        event=event,
        active_reservations=active,
        remaining=max(event.capacity - active, 0),
    )
