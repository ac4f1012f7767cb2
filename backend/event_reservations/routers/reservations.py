import logging
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_actor, get_session, require_admin
from ..domain.errors import (
    CapacityExceededError,
    DuplicateReservationError,
    EventNotOpenError,
    ForbiddenError,
    NotFoundError,
    ReservationDomainError,
)
from ..domain.policy import Actor
from ..infrastructure.repositories import SqlAlchemyEventRepository, SqlAlchemyReservationRepository
from ..schemas import ReservationCreate, ReservationRead, ReservationStats, ReservationStatusChange
from ..usecases import reservations as reservation_usecase
from ..utils.audit_log import emit_audit_log

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reservations", tags=["reservations"], dependencies=[Depends(get_current_actor)])

_ERROR_STATUS: list[tuple[type[ReservationDomainError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (EventNotOpenError, status.HTTP_400_BAD_REQUEST),
    (DuplicateReservationError, status.HTTP_409_CONFLICT),
    (CapacityExceededError, status.HTTP_409_CONFLICT),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
]


def _http_error(exc: ReservationDomainError) -> HTTPException:
    for error_cls, status_code in _ERROR_STATUS:
        if isinstance(exc, error_cls):
            return HTTPException(status_code=status_code, detail={"code": exc.code, "message": str(exc)})
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"code": exc.code, "message": str(exc)})


def _audit(**kwargs: Any) -> None:
    try:
        emit_audit_log(**kwargs)
    except RuntimeError:
        logger.exception("audit log emission failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="failed to write audit log")


def _initiator(actor: Actor) -> str:
    return "admin" if actor.is_admin else "participant"


@router.post("", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate,
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> ReservationRead:
    event_repo = SqlAlchemyEventRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        try:
            reservation, event = await reservation_usecase.create_reservation(
                event_repo,
                res_repo,
                event_id=payload.event_id,
                user_id=actor.user_id,
            )
        except ReservationDomainError as exc:
            raise _http_error(exc)

    _audit(
        action="reservation.created",
        initiator=_initiator(actor),
        actor_id=actor.user_id,
        reservation_id=reservation.id,
        event_id=reservation.event_id,
        user_id=reservation.user_id,
        status_from=None,
        status_to=reservation.status,
    )
    return ReservationRead.from_db(reservation=reservation, event=event)


@router.get("", response_model=List[ReservationRead])
async def list_reservations(
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> list[ReservationRead]:
    res_repo = SqlAlchemyReservationRepository(session)
    rows = await reservation_usecase.find_all(res_repo, actor=actor)
    return [ReservationRead.from_db(reservation=res, event=event, user=user) for res, event, user in rows]


@router.get("/my-reservations", response_model=List[ReservationRead])
async def list_my_reservations(
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> list[ReservationRead]:
    res_repo = SqlAlchemyReservationRepository(session)
    rows = await reservation_usecase.find_by_user(res_repo, user_id=actor.user_id)
    return [ReservationRead.from_db(reservation=res, event=event, user=user) for res, event, user in rows]


@router.get("/stats/all", response_model=ReservationStats, dependencies=[Depends(require_admin)])
async def get_stats(session: AsyncSession = Depends(get_session)) -> ReservationStats:
    res_repo = SqlAlchemyReservationRepository(session)
    return ReservationStats(**await reservation_usecase.get_stats(res_repo))


@router.get("/event/{event_id}", response_model=List[ReservationRead])
async def list_event_reservations(
    event_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> list[ReservationRead]:
    event_repo = SqlAlchemyEventRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        rows = await reservation_usecase.find_by_event(
            event_repo,
            res_repo,
            event_id=event_id,
            actor_is_admin=actor.is_admin,
        )
    except ReservationDomainError as exc:
        raise _http_error(exc)
    return [ReservationRead.from_db(reservation=res, event=event, user=user) for res, event, user in rows]


@router.get("/{reservation_id}", response_model=ReservationRead)
async def get_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        reservation, event, user = await reservation_usecase.find_one(res_repo, reservation_id=reservation_id)
    except ReservationDomainError as exc:
        raise _http_error(exc)
    return ReservationRead.from_db(reservation=reservation, event=event, user=user)


@router.patch("/{reservation_id}/status", response_model=ReservationRead)
async def change_reservation_status(
    payload: ReservationStatusChange,
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> ReservationRead:
    event_repo = SqlAlchemyEventRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    # Seat adjustment and status write share one transaction.
    try:
        async with session.begin():
            reservation, event, transition = await reservation_usecase.change_status(
                event_repo,
                res_repo,
                reservation_id=reservation_id,
                new_status=payload.status,
                actor=actor,
            )
    except ReservationDomainError as exc:
        raise _http_error(exc)
    except IntegrityError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "seat_counter_out_of_range", "message": "no seats left to confirm"},
        )

    _audit(
        action="reservation.status_changed",
        initiator=_initiator(actor),
        actor_id=actor.user_id,
        reservation_id=reservation.id,
        event_id=reservation.event_id,
        user_id=reservation.user_id,
        status_from=transition.status_from,
        status_to=transition.status_to,
        seat_delta=transition.seat_delta,
    )
    return ReservationRead.from_db(reservation=reservation, event=event)


@router.delete("/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_current_actor),
) -> Response:
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        try:
            removed = await reservation_usecase.remove_reservation(
                res_repo,
                reservation_id=reservation_id,
                actor=actor,
            )
        except ReservationDomainError as exc:
            raise _http_error(exc)

    _audit(
        action="reservation.removed",
        initiator=_initiator(actor),
        actor_id=actor.user_id,
        reservation_id=removed.id,
        event_id=removed.event_id,
        user_id=removed.user_id,
        status_from=removed.status,
        status_to=None,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
