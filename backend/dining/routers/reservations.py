import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from ..deps import get_reservation_service
from ..domain.errors import BusinessRuleViolation, NotFoundError, OptimisticConflictError, SlotConflictError
from ..schemas import ReservationCancel, ReservationCreate, ReservationRead
from ..service import ReservationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["reservations"])


@router.post("/reservations", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate,
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationRead:
    try:
        reservation, room = await service.create_reservation(
            room_id=payload.room_id,
            reservation_date=payload.reservation_date,
            time_slot=payload.time_slot,
            party_size=payload.party_size,
            diner=payload.diner.to_domain(),
            estimated_spend=payload.estimated_spend.to_domain() if payload.estimated_spend else None,
            special_requests=payload.special_requests,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except SlotConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except BusinessRuleViolation as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    return ReservationRead.from_db(reservation=reservation, room=room)


@router.get("/reservations/{reservation_id}", response_model=ReservationRead)
async def get_reservation(
    reservation_id: uuid.UUID = Path(...),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationRead:
    try:
        reservation, room = await service.get_reservation(reservation_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return ReservationRead.from_db(reservation=reservation, room=room)


@router.post("/reservations/{reservation_id}/cancel", response_model=ReservationRead)
async def cancel_reservation(
    payload: ReservationCancel,
    reservation_id: uuid.UUID = Path(...),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationRead:
    logger.info("cancel requested for reservation %s by %s", reservation_id, payload.cancelled_by)
    try:
        reservation, room = await service.cancel_reservation(
            reservation_id,
            cancelled_by=payload.cancelled_by,
            reason=payload.reason,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except OptimisticConflictError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="the reservation was modified by another request; refresh and try again",
        )
    except BusinessRuleViolation as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    return ReservationRead.from_db(reservation=reservation, room=room)


@router.get("/diners/{email}/reservations", response_model=List[ReservationRead])
async def list_diner_reservations(
    email: str,
    upcoming_only: bool = Query(default=False),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    service: ReservationService = Depends(get_reservation_service),
) -> list[ReservationRead]:
    rows = await service.list_for_diner(email, upcoming_only=upcoming_only, limit=limit, offset=offset)
    return [ReservationRead.from_db(reservation=res, room=room) for res, room in rows]


@router.get("/restaurants/{restaurant_id}/reservations", response_model=List[ReservationRead])
async def list_restaurant_reservations(
    restaurant_id: uuid.UUID,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    service: ReservationService = Depends(get_reservation_service),
) -> list[ReservationRead]:
    rows = await service.list_for_restaurant(restaurant_id, limit=limit, offset=offset)
    return [ReservationRead.from_db(reservation=res, room=room) for res, room in rows]
