from __future__ import annotations

from typing import Protocol

from ..models import Event, Reservation, ReservationStatus, User

ReservationRow = tuple[Reservation, Event, User]


class EventRepository(Protocol):
    async def get(self, event_id: int) -> Event | None: ...

    async def get_for_update(self, event_id: int) -> Event | None: ...

    async def adjust_available_seats(self, event_id: int, delta: int) -> bool:
        """Atomically add ``delta`` to the event's available seats. False if no event row matched."""
        ...


class ReservationRepository(Protocol):
    async def find_active_for_user(self, event_id: int, user_id: int) -> Reservation | None: ...

    async def count_active(self, event_id: int) -> int: ...

    async def create(
        self,
        *,
        event_id: int,
        user_id: int,
        status: ReservationStatus,
    ) -> Reservation: ...

    async def get(self, reservation_id: int) -> ReservationRow | None: ...

    async def get_for_update(self, reservation_id: int) -> tuple[Reservation, Event] | None: ...

    async def save(self, reservation: Reservation) -> Reservation: ...

    async def delete(self, reservation: Reservation) -> None: ...

    async def list_all(self, user_id: int | None = None) -> list[ReservationRow]: ...

    async def list_by_event(
        self,
        event_id: int,
        status: ReservationStatus | None = None,
    ) -> list[ReservationRow]: ...

    async def list_by_user(self, user_id: int) -> list[ReservationRow]: ...

    async def count_by_status(self) -> dict[ReservationStatus, int]: ...
