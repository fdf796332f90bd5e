import uuid
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..config import Settings
from ..deps import get_app_settings, get_reservation_service
from ..schemas import AvailabilityRead
from ..service import ReservationService

router = APIRouter(prefix="/api/v1/rooms", tags=["availability"])


@router.get("/{room_id}/availability", response_model=AvailabilityRead)
async def get_availability(
    room_id: uuid.UUID,
    start: date = Query(..., description="First day (inclusive)"),
    end: date = Query(..., description="Last day (inclusive)"),
    service: ReservationService = Depends(get_reservation_service),
    settings: Settings = Depends(get_app_settings),
) -> AvailabilityRead:
    if start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start must not be after end")
    if (end - start).days + 1 > settings.availability_max_days:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"range exceeds {settings.availability_max_days} days",
        )
    grid = await service.get_availability(room_id, start, end)
    return AvailabilityRead.from_grid(room_id=room_id, grid=grid)
