import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from db.database import build_engine, create_db_and_tables


@pytest.fixture()
async def engine():
    eng = build_engine("sqlite+aiosqlite://")
    await create_db_and_tables(eng)
    yield eng
    await eng.dispose()


@pytest.fixture()
async def db(engine):
    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    async with session_maker() as session:
        yield session
