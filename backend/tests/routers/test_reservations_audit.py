from datetime import datetime, timedelta, timezone
from typing import Any, cast

import pytest
from event_reservations.domain.policy import Actor
from event_reservations.domain.services import StatusTransition
from event_reservations.models import Event, EventStatus, Reservation, ReservationStatus
from event_reservations.routers import reservations as router
from event_reservations.schemas import ReservationCreate, ReservationRead, ReservationStatusChange
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession


class DummySession:
    async def __aenter__(self) -> "DummySession":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> bool:
        return False

    def begin(self) -> "DummySession":
        return self


def _event(event_id: int = 1) -> Event:
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return Event(
        id=event_id,
        title="Concert",
        description=None,
        starts_at=now + timedelta(days=1),
        location="Arena",
        capacity=4,
        available_seats=4,
        status=EventStatus.PUBLISHED,
        created_by=1,
        created_at=now,
        updated_at=now,
    )


def _reservation(event_id: int = 1, status: ReservationStatus = ReservationStatus.PENDING) -> Reservation:
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return Reservation(
        id=100,
        event_id=event_id,
        user_id=200,
        status=status,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def patched_repos(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(router, "SqlAlchemyEventRepository", lambda s: s)  # type: ignore[assignment]
    monkeypatch.setattr(router, "SqlAlchemyReservationRepository", lambda s: s)  # type: ignore[assignment]


@pytest.mark.asyncio
async def test_create_reservation_emits_audit(monkeypatch: pytest.MonkeyPatch, patched_repos: None) -> None:
    session = DummySession()
    event = _event()
    reservation = _reservation()

    async def fake_create_reservation(*args: object, **kwargs: object) -> tuple[Reservation, Event]:
        assert kwargs["event_id"] == event.id
        assert kwargs["user_id"] == reservation.user_id
        return reservation, event

    calls: list[dict[str, Any]] = []

    def fake_emit(**kwargs: Any) -> None:
        calls.append(kwargs)

    monkeypatch.setattr(router.reservation_usecase, "create_reservation", fake_create_reservation)
    monkeypatch.setattr(router, "emit_audit_log", fake_emit)

    result: ReservationRead = await router.create_reservation(
        payload=ReservationCreate(event_id=event.id),
        session=cast(AsyncSession, session),
        actor=Actor(user_id=reservation.user_id),
    )

    assert result.reservation_id == reservation.id
    assert result.status == ReservationStatus.PENDING
    assert result.event is not None and result.event.title == "Concert"
    assert len(calls) == 1
    assert calls[0]["action"] == "reservation.created"
    assert calls[0]["initiator"] == "participant"
    assert calls[0]["reservation_id"] == reservation.id


@pytest.mark.asyncio
async def test_status_change_emits_transition_and_delta(monkeypatch: pytest.MonkeyPatch, patched_repos: None) -> None:
    session = DummySession()
    event = _event()
    reservation = _reservation(status=ReservationStatus.CONFIRMED)

    async def fake_change_status(*args: object, **kwargs: object) -> tuple[Reservation, Event, StatusTransition]:
        assert kwargs["new_status"] == ReservationStatus.CONFIRMED
        transition = StatusTransition(
            status_from=ReservationStatus.PENDING,
            status_to=ReservationStatus.CONFIRMED,
            seat_delta=-1,
        )
        return reservation, event, transition

    calls: list[dict[str, Any]] = []

    monkeypatch.setattr(router.reservation_usecase, "change_status", fake_change_status)
    monkeypatch.setattr(router, "emit_audit_log", lambda **kwargs: calls.append(kwargs))

    result = await router.change_reservation_status(
        payload=ReservationStatusChange(status=ReservationStatus.CONFIRMED),
        reservation_id=reservation.id,
        session=cast(AsyncSession, session),
        actor=Actor(user_id=1, is_admin=True),
    )

    assert result.status == ReservationStatus.CONFIRMED
    assert len(calls) == 1
    assert calls[0]["action"] == "reservation.status_changed"
    assert calls[0]["initiator"] == "admin"
    assert calls[0]["status_from"] == ReservationStatus.PENDING
    assert calls[0]["seat_delta"] == -1


@pytest.mark.asyncio
async def test_status_change_log_failure_returns_500(monkeypatch: pytest.MonkeyPatch, patched_repos: None) -> None:
    session = DummySession()
    event = _event()
    reservation = _reservation(status=ReservationStatus.CANCELED)

    async def fake_change_status(*args: object, **kwargs: object) -> tuple[Reservation, Event, StatusTransition]:
        return reservation, event, StatusTransition(ReservationStatus.PENDING, ReservationStatus.CANCELED, 0)

    def fake_emit(**kwargs: Any) -> None:
        raise RuntimeError("fail log")

    monkeypatch.setattr(router.reservation_usecase, "change_status", fake_change_status)
    monkeypatch.setattr(router, "emit_audit_log", fake_emit)

    with pytest.raises(HTTPException) as excinfo:
        await router.change_reservation_status(
            payload=ReservationStatusChange(status=ReservationStatus.CANCELED),
            reservation_id=reservation.id,
            session=cast(AsyncSession, session),
            actor=Actor(user_id=reservation.user_id),
        )
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_remove_emits_audit_and_returns_204(monkeypatch: pytest.MonkeyPatch, patched_repos: None) -> None:
    session = DummySession()
    reservation = _reservation(status=ReservationStatus.CONFIRMED)

    async def fake_remove(*args: object, **kwargs: object) -> Reservation:
        return reservation

    calls: list[dict[str, Any]] = []

    monkeypatch.setattr(router.reservation_usecase, "remove_reservation", fake_remove)
    monkeypatch.setattr(router, "emit_audit_log", lambda **kwargs: calls.append(kwargs))

    response = await router.remove_reservation(
        reservation_id=reservation.id,
        session=cast(AsyncSession, session),
        actor=Actor(user_id=1, is_admin=True),
    )

    assert response.status_code == 204
    assert calls[0]["action"] == "reservation.removed"
    assert calls[0]["status_from"] == ReservationStatus.CONFIRMED
    assert calls[0]["status_to"] is None
