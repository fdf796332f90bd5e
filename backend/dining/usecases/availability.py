import logging
import uuid
from datetime import date

from ..domain.repositories import ReservationRepository
from ..domain.services import DayAvailability, build_availability_grid
from ..models import TimeSlot

logger = logging.getLogger(__name__)


async def is_available(
    res_repo: ReservationRepository,
    *,
    room_id: uuid.UUID,
    reservation_date: date,
    time_slot: TimeSlot,
) -> bool:
    """Point-in-time read; may be stale by the time a booking is inserted."""
    available = not await res_repo.exists_active(room_id, reservation_date, time_slot)
    logger.debug("slot check room=%s date=%s slot=%s -> %s", room_id, reservation_date, time_slot.value, available)
    return available


async def get_availability_grid(
    res_repo: ReservationRepository,
    *,
    room_id: uuid.UUID,
    start: date,
    end: date,
) -> list[DayAvailability]:
    logger.debug("calculating availability for room %s between %s and %s", room_id, start, end)
    if start > end:
        return []
    reservations = await res_repo.list_by_room_and_date_range(room_id, start, end)
    return build_availability_grid(reservations, start=start, end=end)
