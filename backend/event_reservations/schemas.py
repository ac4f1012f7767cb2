from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

from .models import Event, EventStatus, Reservation, ReservationStatus, User
from .usecases.events import EventAdmission
from .utils.time import utc_naive_to_aware


class ReservationCreate(BaseModel):
    event_id: int = Field(ge=1)


class ReservationStatusChange(BaseModel):
    status: ReservationStatus


class EventSummary(BaseModel):
    event_id: int
    title: str
    starts_at: datetime
    location: str
    status: EventStatus
    capacity: int

    @field_serializer("starts_at")
    def _ser_datetime(self, dt: datetime) -> str:
        return utc_naive_to_aware(dt).isoformat()

    @classmethod
    def from_db(cls, *, event: Event) -> "EventSummary":
        return cls(
            event_id=event.id,
            title=event.title,
            starts_at=event.starts_at,
            location=event.location,
            status=event.status,
            capacity=event.capacity,
        )


class UserSummary(BaseModel):
    user_id: int
    full_name: str
    email: str

    @classmethod
    def from_db(cls, *, user: User) -> "UserSummary":
        return cls(user_id=user.id, full_name=user.full_name, email=user.email)


class ReservationRead(BaseModel):
    reservation_id: int
    event_id: int
    user_id: int
    status: ReservationStatus
    created_at: datetime
    updated_at: datetime
    event: Optional[EventSummary] = None
    user: Optional[UserSummary] = None

    @field_serializer("created_at", "updated_at")
    def _ser_datetime(self, dt: datetime) -> str:
        return utc_naive_to_aware(dt).isoformat()

    @classmethod
    def from_db(
        cls,
        *,
        reservation: Reservation,
        event: Optional[Event] = None,
        user: Optional[User] = None,
    ) -> "ReservationRead":
        return cls(
            reservation_id=reservation.id,
            event_id=reservation.event_id,
            user_id=reservation.user_id,
            status=reservation.status,
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
            event=EventSummary.from_db(event=event) if event is not None else None,
            user=UserSummary.from_db(user=user) if user is not None else None,
        )


class ReservationStats(BaseModel):
    total: int
    pending: int
    confirmed: int
    refused: int
    canceled: int


class EventAvailability(BaseModel):
    event_id: int
    status: EventStatus
    capacity: int
    available_seats: int
    active_reservations: int
    remaining: int

    @classmethod
    def from_admission(cls, admission: EventAdmission) -> "EventAvailability":
        event = admission.event
        return cls(
            event_id=event.id,
            status=event.status,
            capacity=event.capacity,
            available_seats=event.available_seats,
            active_reservations=admission.active_reservations,
            remaining=admission.remaining,
        )
