import datetime as dt
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

from .domain.services import DayAvailability, Diner, Money
from .models import Reservation, ReservationStatus, Room, TimeSlot


class MoneyIn(BaseModel):
    amount: Decimal = Field(ge=0)
    currency: str = Field(min_length=3, max_length=3)

    def to_domain(self) -> Money:
        return Money(amount=self.amount, currency=self.currency)


class DinerIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: str = Field(min_length=1, max_length=50)

    def to_domain(self) -> Diner:
        return Diner(name=self.name, email=self.email, phone=self.phone)


class ReservationCreate(BaseModel):
    room_id: uuid.UUID
    reservation_date: date
    time_slot: TimeSlot
    party_size: int = Field(ge=1)
    estimated_spend: Optional[MoneyIn] = None
    special_requests: Optional[str] = Field(default=None, max_length=500)
    diner: DinerIn


class ReservationCancel(BaseModel):
    cancelled_by: str = Field(min_length=1, max_length=255)
    reason: Optional[str] = Field(default=None, max_length=500)


class ReservationRead(BaseModel):
    reservation_id: uuid.UUID
    restaurant_id: uuid.UUID
    room_id: uuid.UUID
    room_name: str
    reservation_date: date
    time_slot: TimeSlot
    starts_at: time
    ends_at: time
    party_size: int
    diner_name: str
    diner_email: str
    diner_phone: str
    status: ReservationStatus
    special_requests: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    version: int
    created_at: datetime

    @field_serializer("starts_at", "ends_at")
    def _ser_time(self, value: time) -> str:
        return value.strftime("%H:%M")

    @classmethod
    def from_db(cls, *, reservation: Reservation, room: Room) -> "ReservationRead":
        return cls(
            reservation_id=reservation.id,
            restaurant_id=reservation.restaurant_id,
            room_id=reservation.room_id,
            room_name=room.name,
            reservation_date=reservation.reservation_date,
            time_slot=reservation.time_slot,
            starts_at=reservation.time_slot.starts_at,
            ends_at=reservation.time_slot.ends_at,
            party_size=reservation.party_size,
            diner_name=reservation.diner_name,
            diner_email=reservation.diner_email,
            diner_phone=reservation.diner_phone,
            status=reservation.status,
            special_requests=reservation.special_requests,
            cancelled_by=reservation.cancelled_by,
            cancellation_reason=reservation.cancellation_reason,
            cancelled_at=reservation.cancelled_at,
            version=reservation.version,
            created_at=reservation.created_at,
        )


class SlotAvailabilityRead(BaseModel):
    slot: TimeSlot
    available: bool
    reason: Optional[str] = None


class DayAvailabilityRead(BaseModel):
    date: dt.date
    slots: List[SlotAvailabilityRead]


class AvailabilityRead(BaseModel):
    room_id: uuid.UUID
    days: List[DayAvailabilityRead]

    @classmethod
    def from_grid(cls, *, room_id: uuid.UUID, grid: List[DayAvailability]) -> "AvailabilityRead":
        return cls(
            room_id=room_id,
            days=[
                DayAvailabilityRead(
                    date=day.date,
                    slots=[
                        SlotAvailabilityRead(slot=s.slot, available=s.available, reason=s.reason)
                        for s in day.slots
                    ],
                )
                for day in grid
            ],
        )
