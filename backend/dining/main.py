import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response

from .config import get_settings
from .database import build_engine, build_session_factory, create_schema
from .listeners import register_listeners
from .routers import availability, reservations
from .service import ReservationService
from .utils.cache import AvailabilityCache
from .utils.event_bus import EventBus
from .utils.logging_config import configure_logging
from .utils.request_id import REQUEST_ID_HEADER, generate_request_id, reset_request_id, set_request_id

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings)

    engine = build_engine(settings)
    if settings.create_schema:
        await create_schema(engine)

    bus = EventBus(workers=settings.event_workers, queue_size=settings.event_queue_size)
    register_listeners(bus)
    await bus.start()

    app.state.event_bus = bus
    app.state.reservation_service = ReservationService(
        build_session_factory(engine),
        bus,
        AvailabilityCache(settings.availability_cache_ttl_seconds),
    )
    logger.info("reservation service ready")
    try:
        yield
    finally:
        await bus.stop()
        await engine.dispose()


async def request_id_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
    token = set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        reset_request_id(token)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


app = FastAPI(title="Private Dining Reservation API", lifespan=lifespan)
app.middleware("http")(request_id_middleware)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(reservations.router)
app.include_router(availability.router)
