"""
In-process publish/subscribe with bounded background delivery.

Publishers never wait on subscribers: ``publish`` enqueues one delivery per
handler and returns. A fixed number of worker tasks drain the queue. Delivery
is at-most-once; a full queue drops the event and handler errors are logged.
"""
from __future__ import annotations

import asyncio
import contextvars
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Union[Awaitable[None], None]]
_Delivery = Tuple[contextvars.Context, Handler, Any]


class EventBus:
    def __init__(self, *, workers: int = 4, queue_size: int = 100) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._workers = workers
        self._queue_size = queue_size
        self._subscribers: Dict[type, List[Handler]] = {}
        self._queue: Optional[asyncio.Queue[_Delivery]] = None
        self._tasks: List[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        handlers = self._subscribers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            logger.debug("handler %s subscribed to %s", _name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type, handler: Handler) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event_type: type) -> List[Handler]:
        return list(self._subscribers.get(event_type, []))

    def publish(self, event: Any) -> None:
        handlers = self.handlers_for(type(event))
        if not handlers:
            return
        if self._queue is None or not self.running:
            logger.warning("event bus not running; dropping %s", type(event).__name__)
            return
        for handler in handlers:
            # One copy per delivery: a Context cannot be entered by two workers at once.
            ctx = contextvars.copy_context()
            try:
                self._queue.put_nowait((ctx, handler, event))
            except asyncio.QueueFull:
                logger.warning("event queue full; dropping %s for %s", type(event).__name__, _name(handler))

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self._queue_size)
        self._tasks = [
            asyncio.create_task(self._worker(), name=f"event-worker-{i}") for i in range(self._workers)
        ]
        logger.info("event bus started with %d workers (queue size %d)", self._workers, self._queue_size)

    async def join(self) -> None:
        """Wait until every queued delivery has been attempted."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self, timeout: float = 30.0) -> None:
        if not self.running:
            return
        try:
            await asyncio.wait_for(self.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("event bus stopped with undelivered events")
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._queue = None
        logger.info("event bus stopped")

    async def _worker(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            ctx, handler, event = await queue.get()
            try:
                await _deliver(ctx, handler, event)
            except Exception:
                logger.exception("event handler %s failed for %s", _name(handler), type(event).__name__)
            finally:
                queue.task_done()


async def _deliver(ctx: contextvars.Context, handler: Handler, event: Any) -> None:
    if inspect.iscoroutinefunction(handler):
        await asyncio.create_task(handler(event), context=ctx)
        return
    # Plain callables may block (mail, HTTP); keep them off the event loop.
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, ctx.run, handler, event)


def _name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", repr(handler))
