from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from ..models import ACTIVE_STATUSES, Reservation, ReservationStatus, Room, TimeSlot
from .errors import BusinessRuleViolation

ALREADY_BOOKED = "Already booked"


@dataclass(frozen=True)
class Money:
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class Diner:
    name: str
    email: str
    phone: str


@dataclass(frozen=True)
class RoomSnapshot:
    active: bool
    min_capacity: int
    max_capacity: int
    minimum_spend: Optional[Money]

    @classmethod
    def from_room(cls, room: Room) -> "RoomSnapshot":
        minimum_spend = None
        if room.minimum_spend_amount is not None and room.minimum_spend_currency:
            minimum_spend = Money(amount=room.minimum_spend_amount, currency=room.minimum_spend_currency)
        return cls(
            active=room.active,
            min_capacity=room.min_capacity,
            max_capacity=room.max_capacity,
            minimum_spend=minimum_spend,
        )


@dataclass(frozen=True)
class SlotAvailability:
    slot: TimeSlot
    available: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class DayAvailability:
    date: date
    slots: list[SlotAvailability]


def validate_admission(
    snapshot: RoomSnapshot,
    *,
    party_size: int,
    estimated_spend: Optional[Money] = None,
) -> None:
    """
    Pure validation of the room rules, in order: active flag, capacity range, minimum spend.
    Raises BusinessRuleViolation on the first failing rule.
    """
    if not snapshot.active:
        raise BusinessRuleViolation("room not accepting reservations")
    if not snapshot.min_capacity <= party_size <= snapshot.max_capacity:
        raise BusinessRuleViolation("party size outside room capacity")

    minimum = snapshot.minimum_spend
    if estimated_spend is None or minimum is None:
        return
    if estimated_spend.currency.upper() != minimum.currency.upper():
        raise BusinessRuleViolation(f"estimated spend must be provided in {minimum.currency.upper()}")
    if estimated_spend.amount < minimum.amount:
        raise BusinessRuleViolation("estimated spend must satisfy minimum")


def ensure_cancellable(status: ReservationStatus, reservation_date: date, *, today: date) -> None:
    if status == ReservationStatus.CANCELLED:
        raise BusinessRuleViolation("reservation already cancelled")
    if reservation_date < today:
        raise BusinessRuleViolation("cannot cancel past reservations")


def build_availability_grid(
    reservations: Iterable[Reservation],
    *,
    start: date,
    end: date,
) -> list[DayAvailability]:
    """Every date in [start, end] with every slot; only active reservations block a slot."""
    taken = {
        (res.reservation_date, res.time_slot)
        for res in reservations
        if res.status in ACTIVE_STATUSES
    }
    days: list[DayAvailability] = []
    current = start
    while current <= end:
        slots = [
            SlotAvailability(slot=slot, available=False, reason=ALREADY_BOOKED)
            if (current, slot) in taken
            else SlotAvailability(slot=slot, available=True)
            for slot in TimeSlot
        ]
        days.append(DayAvailability(date=current, slots=slots))
        current += timedelta(days=1)
    return days
