import logging
import uuid
from datetime import date
from typing import Optional

from ..domain.errors import BusinessRuleViolation, NotFoundError, OptimisticConflictError, SlotConflictError
from ..domain.repositories import ReservationRepository, RoomRepository, UniquenessViolation, VersionConflict
from ..domain.services import Diner, Money, RoomSnapshot, ensure_cancellable, validate_admission
from ..models import Reservation, ReservationStatus, Room, TimeSlot
from ..utils.time import today_in, utc_now_naive

logger = logging.getLogger(__name__)


def _slot_taken(reservation_date: date, time_slot: TimeSlot) -> SlotConflictError:
    return SlotConflictError(f"room already booked for {reservation_date.isoformat()} ({time_slot.value})")


def _restaurant_today(room: Room) -> date:
    restaurant = room.restaurant
    return today_in(restaurant.timezone if restaurant is not None else None)


async def create_reservation(
    room_repo: RoomRepository,
    res_repo: ReservationRepository,
    *,
    room_id: uuid.UUID,
    reservation_date: date,
    time_slot: TimeSlot,
    party_size: int,
    diner: Diner,
    estimated_spend: Optional[Money] = None,
    special_requests: Optional[str] = None,
) -> tuple[Reservation, Room]:
    """
    Admission pipeline. The existence check is only a fast rejection; the partial
    unique index decides when two bookings race for the same slot.
    """
    logger.info("creating reservation for room %s on %s (%s)", room_id, reservation_date, time_slot.value)

    room = await room_repo.get_by_id(room_id)
    if room is None:
        raise NotFoundError(f"room {room_id} not found")

    try:
        validate_admission(RoomSnapshot.from_room(room), party_size=party_size, estimated_spend=estimated_spend)
    except BusinessRuleViolation as exc:
        logger.warning("rejected booking for room %s: %s", room.id, exc)
        raise

    if await res_repo.exists_active(room.id, reservation_date, time_slot):
        logger.warning("slot already booked: room=%s date=%s slot=%s", room.id, reservation_date, time_slot.value)
        raise _slot_taken(reservation_date, time_slot)

    result = await res_repo.insert(
        room=room,
        reservation_date=reservation_date,
        time_slot=time_slot,
        party_size=party_size,
        diner=diner,
        special_requests=special_requests,
        status=ReservationStatus.CONFIRMED,
    )
    if isinstance(result, UniquenessViolation):
        # The session is rolled back here; room attributes are no longer loadable.
        logger.warning(
            "lost booking race: room=%s date=%s slot=%s", result.room_id, reservation_date, time_slot.value
        )
        raise _slot_taken(reservation_date, time_slot)

    logger.info("created reservation %s for room %s on %s", result.id, room.id, reservation_date)
    return result, room


async def cancel_reservation(
    res_repo: ReservationRepository,
    *,
    reservation_id: uuid.UUID,
    cancelled_by: str,
    reason: Optional[str] = None,
    today: Optional[date] = None,
) -> tuple[Reservation, Room]:
    row = await res_repo.get_with_room(reservation_id)
    if row is None:
        raise NotFoundError(f"reservation {reservation_id} not found")
    reservation, room = row

    try:
        ensure_cancellable(
            reservation.status,
            reservation.reservation_date,
            today=today or _restaurant_today(room),
        )
    except BusinessRuleViolation as exc:
        logger.warning("cannot cancel reservation %s: %s", reservation_id, exc)
        raise

    # Conditional on the version read above; never retried here.
    result = await res_repo.update_if_version_matches(
        reservation,
        reservation.version,
        status=ReservationStatus.CANCELLED,
        cancelled_by=cancelled_by,
        cancellation_reason=reason,
        cancelled_at=utc_now_naive(),
    )
    if isinstance(result, VersionConflict):
        logger.warning(
            "version conflict cancelling reservation %s (expected version %s)",
            reservation_id,
            result.expected_version,
        )
        raise OptimisticConflictError("reservation was modified concurrently; re-read and retry")

    logger.info("cancelled reservation %s by %s", result.id, cancelled_by)
    return result, room


async def get_reservation(
    res_repo: ReservationRepository,
    *,
    reservation_id: uuid.UUID,
) -> tuple[Reservation, Room]:
    row = await res_repo.get_with_room(reservation_id)
    if row is None:
        raise NotFoundError(f"reservation {reservation_id} not found")
    return row


async def list_diner_reservations(
    res_repo: ReservationRepository,
    *,
    email: str,
    upcoming_only: bool,
    limit: int,
    offset: int,
    today: Optional[date] = None,
) -> list[tuple[Reservation, Room]]:
    """
    ``upcoming_only`` keeps reservations dated on or after today in UTC. A diner's
    bookings may span restaurants in different timezones; cancellation alone judges
    "past" against the owning restaurant's local date.
    """
    from_date = (today or today_in(None)) if upcoming_only else None
    return await res_repo.list_by_diner(email, from_date=from_date, limit=limit, offset=offset)


async def list_restaurant_reservations(
    res_repo: ReservationRepository,
    *,
    restaurant_id: uuid.UUID,
    limit: int,
    offset: int,
) -> list[tuple[Reservation, Room]]:
    return await res_repo.list_by_restaurant(restaurant_id, limit=limit, offset=offset)
