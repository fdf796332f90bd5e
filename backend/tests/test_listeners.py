from datetime import date, datetime
import json
from typing import Any, List
import uuid

import pytest
from dining import listeners
from dining.events import ReservationCancelled, ReservationCreated
from dining.listeners import (
    AnalyticsListener,
    NotificationListener,
    audit_cancelled,
    build_cancellation_email,
    build_confirmation_email,
    register_listeners,
)
from dining.models import Reservation, ReservationStatus, Room, TimeSlot
from dining.utils import audit_log
from dining.utils.event_bus import EventBus

from tests.factories import make_restaurant, make_room
from tests.fakes import CapturingLogger


def _reservation(**overrides: Any) -> tuple[Reservation, Room]:
    room = make_room(make_restaurant())
    now = datetime(2026, 10, 19, 9, 0)
    values: dict[str, Any] = dict(
        id=uuid.uuid4(),
        restaurant_id=room.restaurant_id,
        room_id=room.id,
        reservation_date=date(2026, 11, 6),
        time_slot=TimeSlot.LATE_NIGHT,
        party_size=8,
        diner_name="Ava Chen",
        diner_email="ava@example.com",
        diner_phone="+1-555-0100",
        status=ReservationStatus.CONFIRMED,
        version=1,
        created_at=now,
        updated_at=now,
    )
    values.update(overrides)
    return Reservation(**values), room


def test_events_carry_reservation_and_diner_details() -> None:
    reservation, room = _reservation(special_requests="Birthday cake")
    created = ReservationCreated.from_reservation(reservation, room)

    assert created.room_name == "Garden Room"
    assert created.diner.email == "ava@example.com"
    assert created.special_requests == "Birthday cake"

    body = build_confirmation_email(created)
    assert body.startswith("Dear Ava Chen,")
    assert "Time: late_night (21:30-23:30)" in body
    assert "Party Size: 8" in body
    assert str(reservation.id) in body


def test_cancellation_email_names_original_date() -> None:
    reservation, room = _reservation(status=ReservationStatus.CANCELLED, cancelled_by="staff")
    body = build_cancellation_email(ReservationCancelled.from_reservation(reservation, room))
    assert "has been cancelled" in body
    assert "Original Date: 2026-11-06" in body


@pytest.mark.parametrize(
    ("cancelled_by", "initiator"),
    [("AVA@example.com", "diner"), ("manager@example.com", "staff")],
)
def test_cancel_audit_initiator(monkeypatch, cancelled_by: str, initiator: str) -> None:
    messages: List[str] = []

    class CapturingLogger:
        def info(self, message: str) -> None:
            messages.append(message)

    monkeypatch.setattr(audit_log, "_audit_logger", CapturingLogger())
    reservation, room = _reservation(
        status=ReservationStatus.CANCELLED, cancelled_by=cancelled_by, cancellation_reason="Unwell"
    )

    audit_cancelled(ReservationCancelled.from_reservation(reservation, room))

    payload = json.loads(messages[0])
    assert payload["action"] == "reservation.cancelled"
    assert payload["initiator"] == initiator
    assert payload["cancelled_by"] == cancelled_by
    assert payload["message"] == "Unwell"
    assert payload["time_slot"] == "late_night"


@pytest.mark.asyncio
async def test_register_listeners_wires_every_consumer(monkeypatch) -> None:
    monkeypatch.setattr(audit_log, "_audit_logger", CapturingLogger())
    captured = CapturingLogger()
    monkeypatch.setattr(listeners, "logger", captured)
    bus = EventBus(workers=2, queue_size=20)
    notifications, analytics = register_listeners(bus)
    assert isinstance(notifications, NotificationListener)
    assert isinstance(analytics, AnalyticsListener)
    assert len(bus.handlers_for(ReservationCreated)) == 3
    assert len(bus.handlers_for(ReservationCancelled)) == 3

    reservation, room = _reservation()
    await bus.start()
    bus.publish(ReservationCreated.from_reservation(reservation, room))
    bus.publish(ReservationCancelled.from_reservation(reservation, room))
    await bus.join()
    await bus.stop()

    assert sorted(captured.messages("info")) == [
        "notification to ava@example.com: Reservation Cancelled",
        "notification to ava@example.com: Reservation Confirmation",
    ]
    assert any("Party Size: 8" in body for body in captured.messages("debug"))
    assert analytics.counters["reservation.created"] == 1
    assert analytics.counters["reservation.party_size"] == 8
    assert analytics.counters["reservation.time_slot.late_night"] == 1
    assert analytics.counters["reservation.cancelled"] == 1


def test_notification_listener_holds_no_per_event_state(monkeypatch) -> None:
    captured = CapturingLogger()
    monkeypatch.setattr(listeners, "logger", captured)
    notifications = NotificationListener()
    reservation, room = _reservation()

    for _ in range(3):
        notifications.on_created(ReservationCreated.from_reservation(reservation, room))

    assert vars(notifications) == {}
    assert len(captured.messages("info")) == 3
