from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .domain.errors import SlotConflictError
from .domain.services import DayAvailability, Diner, Money
from .events import ReservationCancelled, ReservationCreated
from .infrastructure.repositories import (
    SqlAlchemyReservationRepository,
    SqlAlchemyRoomRepository,
    is_slot_uniqueness_violation,
)
from .models import Reservation, Room, TimeSlot
from .usecases import availability as availability_usecase
from .usecases import reservations as reservation_usecase
from .utils.cache import AvailabilityCache
from .utils.event_bus import EventBus

logger = logging.getLogger(__name__)


class ReservationService:
    """
    Runs each use case inside its own transaction and publishes domain events
    only after the commit succeeded. Holds no per-request state.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        events: EventBus,
        availability_cache: AvailabilityCache[list[DayAvailability]],
    ) -> None:
        self._session_factory = session_factory
        self._events = events
        self._availability_cache = availability_cache

    async def create_reservation(
        self,
        *,
        room_id: uuid.UUID,
        reservation_date: date,
        time_slot: TimeSlot,
        party_size: int,
        diner: Diner,
        estimated_spend: Optional[Money] = None,
        special_requests: Optional[str] = None,
    ) -> tuple[Reservation, Room]:
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    reservation, room = await reservation_usecase.create_reservation(
                        SqlAlchemyRoomRepository(session),
                        SqlAlchemyReservationRepository(session),
                        room_id=room_id,
                        reservation_date=reservation_date,
                        time_slot=time_slot,
                        party_size=party_size,
                        diner=diner,
                        estimated_spend=estimated_spend,
                        special_requests=special_requests,
                    )
            except IntegrityError as exc:
                # Same outcome whether the index fires on flush or on commit.
                if not is_slot_uniqueness_violation(exc):
                    raise
                raise SlotConflictError(
                    f"room already booked for {reservation_date.isoformat()} ({time_slot.value})"
                ) from exc

        self._availability_cache.invalidate_room(room.id)
        self._events.publish(ReservationCreated.from_reservation(reservation, room))
        return reservation, room

    async def cancel_reservation(
        self,
        reservation_id: uuid.UUID,
        *,
        cancelled_by: str,
        reason: Optional[str] = None,
        today: Optional[date] = None,
    ) -> tuple[Reservation, Room]:
        async with self._session_factory() as session:
            async with session.begin():
                reservation, room = await reservation_usecase.cancel_reservation(
                    SqlAlchemyReservationRepository(session),
                    reservation_id=reservation_id,
                    cancelled_by=cancelled_by,
                    reason=reason,
                    today=today,
                )

        self._availability_cache.invalidate_room(room.id)
        self._events.publish(ReservationCancelled.from_reservation(reservation, room))
        return reservation, room

    async def is_available(self, room_id: uuid.UUID, reservation_date: date, time_slot: TimeSlot) -> bool:
        async with self._session_factory() as session:
            return await availability_usecase.is_available(
                SqlAlchemyReservationRepository(session),
                room_id=room_id,
                reservation_date=reservation_date,
                time_slot=time_slot,
            )

    async def get_availability(self, room_id: uuid.UUID, start: date, end: date) -> list[DayAvailability]:
        key = (room_id, start, end)
        cached = self._availability_cache.get(key)
        if cached is not None:
            return cached
        generation = self._availability_cache.generation(room_id)
        async with self._session_factory() as session:
            grid = await availability_usecase.get_availability_grid(
                SqlAlchemyReservationRepository(session),
                room_id=room_id,
                start=start,
                end=end,
            )
        self._availability_cache.put(key, grid, generation=generation)
        return grid

    async def get_reservation(self, reservation_id: uuid.UUID) -> tuple[Reservation, Room]:
        async with self._session_factory() as session:
            return await reservation_usecase.get_reservation(
                SqlAlchemyReservationRepository(session),
                reservation_id=reservation_id,
            )

    async def list_for_diner(
        self,
        email: str,
        *,
        upcoming_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> list[tuple[Reservation, Room]]:
        async with self._session_factory() as session:
            rows = await reservation_usecase.list_diner_reservations(
                SqlAlchemyReservationRepository(session),
                email=email,
                upcoming_only=upcoming_only,
                limit=limit,
                offset=offset,
            )
        logger.debug("found %d reservations for diner %s (upcoming_only=%s)", len(rows), email, upcoming_only)
        return rows

    async def list_for_restaurant(
        self,
        restaurant_id: uuid.UUID,
        *,
        limit: int = 20,
        offset: int = 0,
    ) -> list[tuple[Reservation, Room]]:
        async with self._session_factory() as session:
            return await reservation_usecase.list_restaurant_reservations(
                SqlAlchemyReservationRepository(session),
                restaurant_id=restaurant_id,
                limit=limit,
                offset=offset,
            )
