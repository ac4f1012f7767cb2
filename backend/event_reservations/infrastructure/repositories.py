from __future__ import annotations

from typing import Any, List, Optional, Tuple, cast

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.repositories import EventRepository, ReservationRepository
from ..domain.services import ACTIVE_STATUSES
from ..models import Event, Reservation, ReservationStatus, User
from ..utils.time import utc_now_naive


class SqlAlchemyEventRepository(EventRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, event_id: int) -> Event | None:
        result = await self.session.scalar(select(Event).where(Event.id == event_id))
        return result if isinstance(result, Event) else None

    async def get_for_update(self, event_id: int) -> Event | None:
        result = await self.session.scalar(select(Event).where(Event.id == event_id).with_for_update())
        return result if isinstance(result, Event) else None

    async def adjust_available_seats(self, event_id: int, delta: int) -> bool:
        # Single UPDATE ... SET col = col + delta; never read-modify-write.
        stmt = (
            update(Event)
            .where(Event.id == event_id)
            .values(
                available_seats=Event.available_seats + delta,
                updated_at=utc_now_naive(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return cast(Any, result).rowcount == 1


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _with_event(self) -> Select[Tuple[Reservation, Event]]:
        return select(Reservation, Event).join(Event, Reservation.event_id == Event.id)

    def _with_event_and_user(self) -> Select[Tuple[Reservation, Event, User]]:
        return (
            select(Reservation, Event, User)
            .join(Event, Reservation.event_id == Event.id)
            .join(User, Reservation.user_id == User.id)
        )

    async def find_active_for_user(self, event_id: int, user_id: int) -> Reservation | None:
        stmt = select(Reservation).where(
            Reservation.event_id == event_id,
            Reservation.user_id == user_id,
            Reservation.status.in_(ACTIVE_STATUSES),
        )
        result = await self.session.scalar(stmt.limit(1))
        return result if isinstance(result, Reservation) else None

    async def count_active(self, event_id: int) -> int:
        stmt = select(func.count(Reservation.id)).where(
            Reservation.event_id == event_id,
            Reservation.status.in_(ACTIVE_STATUSES),
        )
        return int(await self.session.scalar(stmt) or 0)

    async def create(
        self,
        *,
        event_id: int,
        user_id: int,
        status: ReservationStatus,
    ) -> Reservation:
        now = utc_now_naive()
        reservation = Reservation(
            event_id=event_id,
            user_id=user_id,
            status=status,
            created_at=now,
            updated_at=now,
        )
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def get(self, reservation_id: int) -> Optional[Tuple[Reservation, Event, User]]:
        stmt = self._with_event_and_user().where(Reservation.id == reservation_id)
        row = (await self.session.execute(stmt)).first()
        return cast(Optional[Tuple[Reservation, Event, User]], row)

    async def get_for_update(self, reservation_id: int) -> Optional[Tuple[Reservation, Event]]:
        stmt = self._with_event().where(Reservation.id == reservation_id).with_for_update(of=Reservation)
        row = (await self.session.execute(stmt)).first()
        return cast(Optional[Tuple[Reservation, Event]], row)

    async def save(self, reservation: Reservation) -> Reservation:
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def delete(self, reservation: Reservation) -> None:
        await self.session.delete(reservation)
        await self.session.flush()

    async def list_all(self, user_id: int | None = None) -> List[Tuple[Reservation, Event, User]]:
        stmt = self._with_event_and_user()
        if user_id is not None:
            stmt = stmt.where(Reservation.user_id == user_id)
        return await self._rows(stmt)

    async def list_by_event(
        self,
        event_id: int,
        status: ReservationStatus | None = None,
    ) -> List[Tuple[Reservation, Event, User]]:
        stmt = self._with_event_and_user().where(Reservation.event_id == event_id)
        if status is not None:
            stmt = stmt.where(Reservation.status == status)
        return await self._rows(stmt)

    async def list_by_user(self, user_id: int) -> List[Tuple[Reservation, Event, User]]:
        return await self._rows(self._with_event_and_user().where(Reservation.user_id == user_id))

    async def count_by_status(self) -> dict[ReservationStatus, int]:
        stmt = select(Reservation.status, func.count(Reservation.id)).group_by(Reservation.status)
        rows = await self.session.execute(stmt)
        return {ReservationStatus(status): int(count) for status, count in rows.all()}

    async def _rows(
        self,
        stmt: Select[Tuple[Reservation, Event, User]],
    ) -> List[Tuple[Reservation, Event, User]]:
        stmt = stmt.order_by(Reservation.created_at.desc(), Reservation.id.desc())
        rows = await self.session.execute(stmt)
        return cast(List[Tuple[Reservation, Event, User]], list(rows.all()))
