from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today_in(tz_name: str | None) -> date:
    """Current calendar date in the given IANA zone; unknown or empty zones fall back to UTC."""
    if not tz_name:
        return datetime.now(timezone.utc).date()
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return datetime.now(timezone.utc).date()
    return datetime.now(tz).date()
