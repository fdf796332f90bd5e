from __future__ import annotations

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from enum import StrEnum
from typing import Optional

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Index, UniqueConstraint, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import Boolean, Date, DateTime, Integer, Numeric, String, Uuid


class Base(DeclarativeBase):
    pass


class TimeSlot(StrEnum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    LATE_NIGHT = "late_night"

    @property
    def starts_at(self) -> time:
        return _SLOT_WINDOWS[self][0]

    @property
    def ends_at(self) -> time:
        return _SLOT_WINDOWS[self][1]


_SLOT_WINDOWS: dict[TimeSlot, tuple[time, time]] = {
    TimeSlot.BREAKFAST: (time(8, 30), time(10, 30)),
    TimeSlot.LUNCH: (time(11, 30), time(14, 30)),
    TimeSlot.DINNER: (time(17, 30), time(21, 30)),
    TimeSlot.LATE_NIGHT: (time(21, 30), time(23, 30)),
}


class RoomType(StrEnum):
    ROOFTOP = "rooftop"
    HALL = "hall"
    PRIVATE_ROOM = "private_room"
    CHEF_TABLE = "chef_table"


class ReservationStatus(StrEnum):
    # PENDING is reserved for a future confirmation step; bookings start CONFIRMED.
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES: tuple[ReservationStatus, ...] = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)

SLOT_UNIQUE_INDEX = "uq_res_room_date_slot_active"

# Partial index predicate; rendered for both PostgreSQL and SQLite.
_ACTIVE_PREDICATE = text("status IN ({})".format(", ".join(f"'{s.value}'" for s in ACTIVE_STATUSES)))


def _enum_column(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda cls: [e.value for e in cls],
        native_enum=False,
        length=20,
    )


class Restaurant(Base):
    __tablename__ = "restaurants"
    __table_args__ = (UniqueConstraint("name", "city", name="uq_restaurants_name_city"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    timezone: Mapped[str] = mapped_column(String(50), nullable=False, default="UTC")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    rooms: Mapped[list["Room"]] = relationship(back_populates="restaurant")


class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (
        CheckConstraint("min_capacity >= 1", name="chk_rooms_min_capacity"),
        CheckConstraint("max_capacity >= min_capacity", name="chk_rooms_capacity_range"),
        Index("idx_rooms_restaurant", "restaurant_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    room_type: Mapped[RoomType] = mapped_column(
        _enum_column(RoomType), nullable=False, default=RoomType.PRIVATE_ROOM
    )
    min_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    max_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    minimum_spend_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    minimum_spend_currency: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    restaurant: Mapped["Restaurant"] = relationship(back_populates="rooms")
    reservations: Mapped[list["Reservation"]] = relationship(back_populates="room")


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("party_size >= 1", name="chk_res_party_size"),
        # At most one active reservation per room/date/slot; cancelled rows are exempt.
        Index(
            SLOT_UNIQUE_INDEX,
            "room_id",
            "reservation_date",
            "time_slot",
            unique=True,
            postgresql_where=_ACTIVE_PREDICATE,
            sqlite_where=_ACTIVE_PREDICATE,
        ),
        Index("idx_res_room_date", "room_id", "reservation_date"),
        Index("idx_res_restaurant", "restaurant_id"),
        Index("idx_res_diner_email", "diner_email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    restaurant_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("restaurants.id"), nullable=False)
    room_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("rooms.id"), nullable=False)
    reservation_date: Mapped[date] = mapped_column(Date, nullable=False)
    time_slot: Mapped[TimeSlot] = mapped_column(_enum_column(TimeSlot), nullable=False)
    party_size: Mapped[int] = mapped_column(Integer, nullable=False)
    diner_name: Mapped[str] = mapped_column(String(255), nullable=False)
    diner_email: Mapped[str] = mapped_column(String(255), nullable=False)
    diner_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[ReservationStatus] = mapped_column(
        _enum_column(ReservationStatus),
        nullable=False,
        default=ReservationStatus.CONFIRMED,
    )
    special_requests: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    cancelled_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    room: Mapped["Room"] = relationship(back_populates="reservations")
