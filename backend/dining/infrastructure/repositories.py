from __future__ import annotations

import uuid
from datetime import date
from typing import Any, List, Optional, Tuple, cast

from sqlalchemy import Select, func, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from ..domain.repositories import ReservationRepository, RoomRepository, UniquenessViolation, VersionConflict
from ..domain.services import Diner
from ..models import ACTIVE_STATUSES, SLOT_UNIQUE_INDEX, Reservation, ReservationStatus, Room, TimeSlot
from ..utils.time import utc_now_naive

_SLOT_COLUMNS = ("room_id", "reservation_date", "time_slot")


def is_slot_uniqueness_violation(exc: IntegrityError) -> bool:
    """True when the error comes from the active-slot unique index (PostgreSQL or SQLite wording)."""
    constraint = getattr(exc.orig, "constraint_name", None)
    if constraint == SLOT_UNIQUE_INDEX:
        return True
    message = str(exc.orig)
    if SLOT_UNIQUE_INDEX in message:
        return True
    return "UNIQUE" in message.upper() and all(column in message for column in _SLOT_COLUMNS)


class SqlAlchemyRoomRepository(RoomRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, room_id: uuid.UUID) -> Room | None:
        stmt = select(Room).options(joinedload(Room.restaurant)).where(Room.id == room_id)
        result = await self.session.scalar(stmt)
        return result if isinstance(result, Room) else None


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def exists_active(self, room_id: uuid.UUID, reservation_date: date, time_slot: TimeSlot) -> bool:
        stmt = select(Reservation.id).where(
            Reservation.room_id == room_id,
            Reservation.reservation_date == reservation_date,
            Reservation.time_slot == time_slot,
            Reservation.status.in_(ACTIVE_STATUSES),
        )
        return await self.session.scalar(stmt.limit(1)) is not None

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
    ) -> Reservation | UniquenessViolation:
        # A failed flush expires loaded objects; read keys before adding.
        room_id, restaurant_id = room.id, room.restaurant_id
        now = utc_now_naive()
        reservation = Reservation(
            id=uuid.uuid4(),
            restaurant_id=restaurant_id,
            room_id=room_id,
            reservation_date=reservation_date,
            time_slot=time_slot,
            party_size=party_size,
            diner_name=diner.name,
            diner_email=diner.email,
            diner_phone=diner.phone,
            special_requests=special_requests,
            status=status,
            version=1,
            created_at=now,
            updated_at=now,
        )
        self.session.add(reservation)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            if not is_slot_uniqueness_violation(exc):
                raise
            return UniquenessViolation(room_id=room_id, reservation_date=reservation_date, time_slot=time_slot)
        return reservation

    async def get_with_room(self, reservation_id: uuid.UUID) -> Optional[Tuple[Reservation, Room]]:
        stmt: Select[Tuple[Reservation, Room]] = (
            select(Reservation, Room)
            .join(Room, Reservation.room_id == Room.id)
            .options(joinedload(Room.restaurant))
            .where(Reservation.id == reservation_id)
        )
        row = (await self.session.execute(stmt)).first()
        return cast(Optional[Tuple[Reservation, Room]], row)

    async def update_if_version_matches(
        self,
        reservation: Reservation,
        expected_version: int,
        **changes: Any,
    ) -> Reservation | VersionConflict:
        stmt = (
            update(Reservation)
            .where(Reservation.id == reservation.id, Reservation.version == expected_version)
            .values(**changes, version=expected_version + 1, updated_at=utc_now_naive())
            .execution_options(synchronize_session=False)
        )
        result = cast(CursorResult[Any], await self.session.execute(stmt))
        if result.rowcount != 1:
            return VersionConflict(reservation_id=reservation.id, expected_version=expected_version)
        await self.session.refresh(reservation)
        return reservation

    async def list_by_room_and_date_range(self, room_id: uuid.UUID, start: date, end: date) -> List[Reservation]:
        stmt = select(Reservation).where(
            Reservation.room_id == room_id,
            Reservation.reservation_date >= start,
            Reservation.reservation_date <= end,
        )
        return list((await self.session.scalars(stmt)).all())

    async def list_by_diner(
        self,
        email: str,
        *,
        from_date: Optional[date],
        limit: int,
        offset: int,
    ) -> List[Tuple[Reservation, Room]]:
        stmt: Select[Tuple[Reservation, Room]] = (
            select(Reservation, Room)
            .join(Room, Reservation.room_id == Room.id)
            .where(func.lower(Reservation.diner_email) == email.lower())
        )
        if from_date is not None:
            stmt = stmt.where(Reservation.reservation_date >= from_date)
        stmt = stmt.order_by(Reservation.reservation_date.desc(), Reservation.created_at.desc())
        rows = await self.session.execute(stmt.limit(limit).offset(offset))
        return cast(List[Tuple[Reservation, Room]], list(rows.all()))

    async def list_by_restaurant(
        self,
        restaurant_id: uuid.UUID,
        *,
        limit: int,
        offset: int,
    ) -> List[Tuple[Reservation, Room]]:
        stmt: Select[Tuple[Reservation, Room]] = (
            select(Reservation, Room)
            .join(Room, Reservation.room_id == Room.id)
            .where(Reservation.restaurant_id == restaurant_id)
            .order_by(Reservation.reservation_date.desc(), Reservation.created_at.desc())
        )
        rows = await self.session.execute(stmt.limit(limit).offset(offset))
        return cast(List[Tuple[Reservation, Room]], list(rows.all()))
