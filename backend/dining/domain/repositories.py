from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Protocol

from ..models import Reservation, ReservationStatus, Room, TimeSlot
from .services import Diner


@dataclass(frozen=True)
class UniquenessViolation:
    """Returned by insert when the active-slot index rejects the row."""

    room_id: uuid.UUID
    reservation_date: date
    time_slot: TimeSlot


@dataclass(frozen=True)
class VersionConflict:
    """Returned by a conditional update when the stored version moved on."""

    reservation_id: uuid.UUID
    expected_version: int


class RoomRepository(Protocol):
    async def get_by_id(self, room_id: uuid.UUID) -> Room | None: ...


class ReservationRepository(Protocol):
    async def exists_active(self, room_id: uuid.UUID, reservation_date: date, time_slot: TimeSlot) -> bool: ...

    async def insert(
        self,
        *,
        room: Room,
        reservation_date: date,
        time_slot: TimeSlot,
        party_size: int,
        diner: Diner,
        special_requests: Optional[str],
        status: ReservationStatus,
    ) -> Reservation | UniquenessViolation: ...

    async def get_with_room(self, reservation_id: uuid.UUID) -> tuple[Reservation, Room] | None: ...

    async def update_if_version_matches(
        self,
        reservation: Reservation,
        expected_version: int,
        **changes: Any,
    ) -> Reservation | VersionConflict: ...

    async def list_by_room_and_date_range(self, room_id: uuid.UUID, start: date, end: date) -> list[Reservation]: ...

    async def list_by_diner(
        self,
        email: str,
        *,
        from_date: Optional[date],
        limit: int,
        offset: int,
    ) -> list[tuple[Reservation, Room]]: ...

    async def list_by_restaurant(
        self,
        restaurant_id: uuid.UUID,
        *,
        limit: int,
        offset: int,
    ) -> list[tuple[Reservation, Room]]: ...
