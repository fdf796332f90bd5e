from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from .domain.services import Diner
from .models import Reservation, Room, TimeSlot


@dataclass(frozen=True)
class ReservationCreated:
    reservation_id: uuid.UUID
    restaurant_id: uuid.UUID
    room_id: uuid.UUID
    room_name: str
    reservation_date: date
    time_slot: TimeSlot
    party_size: int
    diner: Diner
    special_requests: Optional[str]
    created_at: datetime

    @classmethod
    def from_reservation(cls, reservation: Reservation, room: Room) -> "ReservationCreated":
        return cls(
            reservation_id=reservation.id,
            restaurant_id=reservation.restaurant_id,
            room_id=room.id,
            room_name=room.name,
            reservation_date=reservation.reservation_date,
            time_slot=reservation.time_slot,
            party_size=reservation.party_size,
            diner=_diner_of(reservation),
            special_requests=reservation.special_requests,
            created_at=reservation.created_at,
        )


@dataclass(frozen=True)
class ReservationCancelled:
    reservation_id: uuid.UUID
    restaurant_id: uuid.UUID
    room_id: uuid.UUID
    room_name: str
    reservation_date: date
    time_slot: TimeSlot
    diner: Diner
    cancelled_by: Optional[str]
    reason: Optional[str]
    cancelled_at: Optional[datetime]

    @classmethod
    def from_reservation(cls, reservation: Reservation, room: Room) -> "ReservationCancelled":
        return cls(
            reservation_id=reservation.id,
            restaurant_id=reservation.restaurant_id,
            room_id=room.id,
            room_name=room.name,
            reservation_date=reservation.reservation_date,
            time_slot=reservation.time_slot,
            diner=_diner_of(reservation),
            cancelled_by=reservation.cancelled_by,
            reason=reservation.cancellation_reason,
            cancelled_at=reservation.cancelled_at,
        )


def _diner_of(reservation: Reservation) -> Diner:
    return Diner(name=reservation.diner_name, email=reservation.diner_email, phone=reservation.diner_phone)
