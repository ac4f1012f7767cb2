from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_actor, get_session
from ..domain.errors import EventNotFoundError
from ..infrastructure.repositories import SqlAlchemyEventRepository, SqlAlchemyReservationRepository
from ..schemas import EventAvailability
from ..usecases import events as event_usecase

router = APIRouter(prefix="/events", tags=["events"], dependencies=[Depends(get_current_actor)])


@router.get("/{event_id}/availability", response_model=EventAvailability)
async def get_event_availability(
    event_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> EventAvailability:
    event_repo = SqlAlchemyEventRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        admission = await event_usecase.get_event_admission(event_repo, res_repo, event_id=event_id)
    except EventNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": exc.code, "message": str(exc)},
        )
    return EventAvailability.from_admission(admission)
