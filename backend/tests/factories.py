from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
import uuid

from dining.models import Restaurant, Room, RoomType


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def make_restaurant(**overrides: Any) -> Restaurant:
    now = utc_now_naive()
    values: dict[str, Any] = dict(
        id=uuid.uuid4(),
        name=f"Test Restaurant {uuid.uuid4().hex[:6]}",
        city="New York",
        state="NY",
        timezone="UTC",
        currency="USD",
        created_at=now,
        updated_at=now,
    )
    values.update(overrides)
    return Restaurant(**values)


def make_room(restaurant: Restaurant, **overrides: Any) -> Room:
    """Room with capacity 2..10 and a 500.00 USD minimum spend unless overridden."""
    now = utc_now_naive()
    values: dict[str, Any] = dict(
        id=uuid.uuid4(),
        restaurant_id=restaurant.id,
        name="Garden Room",
        room_type=RoomType.PRIVATE_ROOM,
        min_capacity=2,
        max_capacity=10,
        minimum_spend_amount=Decimal("500.00"),
        minimum_spend_currency="USD",
        active=True,
        created_at=now,
        updated_at=now,
    )
    values.update(overrides)
    room = Room(**values)
    room.restaurant = restaurant
    return room
