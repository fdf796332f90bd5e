from fastapi import HTTPException, Request, status

from .config import Settings, get_settings
from .service import ReservationService


async def get_reservation_service(request: Request) -> ReservationService:
    service = getattr(request.app.state, "reservation_service", None)
    if service is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="service not ready")
    return service


def get_app_settings() -> Settings:
    return get_settings()
