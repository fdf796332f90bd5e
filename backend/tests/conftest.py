from pathlib import Path
from typing import AsyncIterator

import pytest_asyncio
from dining.database import create_schema
from dining.models import Room
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from tests.factories import make_restaurant, make_room


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'dining.db'}")
    await create_schema(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def room(session_factory: async_sessionmaker[AsyncSession]) -> Room:
    restaurant = make_restaurant()
    room = make_room(restaurant)
    async with session_factory() as session:
        async with session.begin():
            session.add_all([restaurant, room])
    return room
