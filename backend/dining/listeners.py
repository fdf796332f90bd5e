"""
Side-effect consumers of reservation events: diner notification, audit trail and
analytics counters. None of them can influence an admission decision; they only
run after the state change has committed.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from .events import ReservationCancelled, ReservationCreated
from .utils.audit_log import emit_audit_log
from .utils.event_bus import EventBus

logger = logging.getLogger(__name__)


def build_confirmation_email(event: ReservationCreated) -> str:
    return (
        f"Dear {event.diner.name},\n\n"
        f"Your reservation at {event.room_name} has been confirmed!\n\n"
        f"Date: {event.reservation_date.isoformat()}\n"
        f"Time: {event.time_slot.value} ({event.time_slot.starts_at:%H:%M}-{event.time_slot.ends_at:%H:%M})\n"
        f"Party Size: {event.party_size}\n\n"
        f"Reservation ID: {event.reservation_id}\n"
    )


def build_cancellation_email(event: ReservationCancelled) -> str:
    return (
        f"Dear {event.diner.name},\n\n"
        f"Your reservation at {event.room_name} has been cancelled.\n\n"
        f"Original Date: {event.reservation_date.isoformat()}\n"
        f"Original Time: {event.time_slot.value}\n"
        f"Reservation ID: {event.reservation_id}\n"
    )


class NotificationListener:
    """Logs the e-mail a mail integration would send to the diner."""

    def on_created(self, event: ReservationCreated) -> None:
        self._send(event.diner.email, "Reservation Confirmation", build_confirmation_email(event))

    def on_cancelled(self, event: ReservationCancelled) -> None:
        self._send(event.diner.email, "Reservation Cancelled", build_cancellation_email(event))

    def _send(self, to: str, subject: str, body: str) -> None:
        logger.info("notification to %s: %s", to, subject)
        logger.debug("notification body:\n%s", body)


def audit_created(event: ReservationCreated) -> None:
    emit_audit_log(
        action="reservation.created",
        initiator="diner",
        reservation_id=event.reservation_id,
        restaurant_id=event.restaurant_id,
        room_id=event.room_id,
        reservation_date=event.reservation_date,
        time_slot=event.time_slot.value,
        party_size=event.party_size,
        diner_email=event.diner.email,
        status_to="confirmed",
    )


def audit_cancelled(event: ReservationCancelled) -> None:
    by_diner = (event.cancelled_by or "").lower() == event.diner.email.lower()
    emit_audit_log(
        action="reservation.cancelled",
        initiator="diner" if by_diner else "staff",
        reservation_id=event.reservation_id,
        restaurant_id=event.restaurant_id,
        room_id=event.room_id,
        reservation_date=event.reservation_date,
        time_slot=event.time_slot.value,
        diner_email=event.diner.email,
        status_to="cancelled",
        message=event.reason,
        extra={"cancelled_by": event.cancelled_by},
    )


class AnalyticsListener:
    """In-process counters; a metrics client would replace ``track``."""

    def __init__(self) -> None:
        self.counters: Counter[str] = Counter()

    async def on_created(self, event: ReservationCreated) -> None:
        self.track("reservation.created", 1, restaurant_id=event.restaurant_id)
        self.track("reservation.party_size", event.party_size, restaurant_id=event.restaurant_id)
        self.track(f"reservation.time_slot.{event.time_slot.value}", 1, restaurant_id=event.restaurant_id)

    async def on_cancelled(self, event: ReservationCancelled) -> None:
        self.track("reservation.cancelled", 1, restaurant_id=event.restaurant_id)

    def track(self, metric: str, value: int, **tags: Any) -> None:
        self.counters[metric] += value
        logger.debug("metric %s += %s %s", metric, value, tags)


def register_listeners(
    bus: EventBus,
    *,
    notifications: NotificationListener | None = None,
    analytics: AnalyticsListener | None = None,
) -> tuple[NotificationListener, AnalyticsListener]:
    notifications = notifications or NotificationListener()
    analytics = analytics or AnalyticsListener()

    bus.subscribe(ReservationCreated, notifications.on_created)
    bus.subscribe(ReservationCreated, audit_created)
    bus.subscribe(ReservationCreated, analytics.on_created)

    bus.subscribe(ReservationCancelled, notifications.on_cancelled)
    bus.subscribe(ReservationCancelled, audit_cancelled)
    bus.subscribe(ReservationCancelled, analytics.on_cancelled)
    return notifications, analytics
