from typing import Iterator

import pytest
from dining.config import Settings, get_settings
from pydantic import ValidationError


@pytest.fixture(autouse=True)
def fresh_settings() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch) -> None:
    for name in ("DATABASE_URL", "EVENT_WORKERS", "AVAILABILITY_MAX_DAYS", "CREATE_SCHEMA", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.database_url.startswith("postgresql+asyncpg://")
    assert settings.event_workers == 4
    assert settings.event_queue_size == 100
    assert settings.availability_max_days == 90
    assert settings.create_schema is True


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///./dining.db")
    monkeypatch.setenv("EVENT_WORKERS", "8")
    monkeypatch.setenv("AVAILABILITY_CACHE_TTL_SECONDS", "0")
    monkeypatch.setenv("ECHO_SQL", "1")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = get_settings()

    assert settings.database_url == "sqlite+aiosqlite:///./dining.db"
    assert settings.event_workers == 8
    assert settings.availability_cache_ttl_seconds == 0
    assert settings.echo_sql is True
    assert settings.log_level == "DEBUG"
    assert get_settings() is settings


def test_rejects_non_positive_workers() -> None:
    with pytest.raises(ValidationError):
        Settings(event_workers=0)
