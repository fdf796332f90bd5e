import asyncio
from dataclasses import dataclass
import threading
from typing import List

import pytest
from dining.utils.event_bus import EventBus
from dining.utils.request_id import get_request_id, reset_request_id, set_request_id


@dataclass(frozen=True)
class Ping:
    n: int


@dataclass(frozen=True)
class Pong:
    n: int


@pytest.mark.asyncio
async def test_publish_delivers_to_sync_and_async_handlers_by_type() -> None:
    bus = EventBus(workers=2, queue_size=10)
    seen_sync: List[int] = []
    seen_async: List[int] = []
    pongs: List[int] = []

    def on_ping_sync(event: Ping) -> None:
        seen_sync.append(event.n)

    async def on_ping_async(event: Ping) -> None:
        seen_async.append(event.n)

    bus.subscribe(Ping, on_ping_sync)
    bus.subscribe(Ping, on_ping_async)
    bus.subscribe(Pong, lambda event: pongs.append(event.n))
    await bus.start()
    try:
        bus.publish(Ping(1))
        bus.publish(Ping(2))
        await bus.join()
    finally:
        await bus.stop()

    assert sorted(seen_sync) == [1, 2]
    assert sorted(seen_async) == [1, 2]
    assert pongs == []


@pytest.mark.asyncio
async def test_sync_handlers_run_off_the_event_loop_with_publisher_context() -> None:
    bus = EventBus(workers=1, queue_size=10)
    seen: List[tuple] = []
    loop_thread = threading.get_ident()

    def handler(event: Ping) -> None:
        seen.append((threading.get_ident() != loop_thread, get_request_id()))

    bus.subscribe(Ping, handler)
    await bus.start()
    token = set_request_id("req-77")
    try:
        bus.publish(Ping(1))
    finally:
        reset_request_id(token)
    await bus.join()
    await bus.stop()

    assert seen == [(True, "req-77")]


@pytest.mark.asyncio
async def test_handler_failure_does_not_stop_other_deliveries() -> None:
    bus = EventBus(workers=1, queue_size=10)
    delivered: List[int] = []

    async def broken(event: Ping) -> None:
        raise ValueError("boom")

    bus.subscribe(Ping, broken)
    bus.subscribe(Ping, lambda event: delivered.append(event.n))
    await bus.start()
    bus.publish(Ping(1))
    bus.publish(Ping(2))
    await bus.join()
    await bus.stop()

    assert sorted(delivered) == [1, 2]


@pytest.mark.asyncio
async def test_full_queue_drops_events_without_blocking_publisher() -> None:
    bus = EventBus(workers=1, queue_size=1)
    release = asyncio.Event()
    delivered: List[int] = []

    async def slow(event: Ping) -> None:
        await release.wait()
        delivered.append(event.n)

    bus.subscribe(Ping, slow)
    await bus.start()
    for n in range(3):
        bus.publish(Ping(n))
    release.set()
    await bus.join()
    await bus.stop()

    assert delivered == [0]


@pytest.mark.asyncio
async def test_publish_before_start_is_dropped_and_unsubscribe_works() -> None:
    bus = EventBus(workers=1, queue_size=10)
    delivered: List[int] = []

    def handler(event: Ping) -> None:
        delivered.append(event.n)

    bus.subscribe(Ping, handler)
    bus.subscribe(Ping, handler)
    assert bus.handlers_for(Ping) == [handler]

    bus.publish(Ping(1))
    await bus.start()
    assert bus.running
    bus.unsubscribe(Ping, handler)
    bus.publish(Ping(2))
    await bus.join()
    await bus.stop()

    assert delivered == []
    assert not bus.running


def test_requires_at_least_one_worker() -> None:
    with pytest.raises(ValueError):
        EventBus(workers=0)
