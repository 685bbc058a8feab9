import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker

import main
from db.database import build_engine, create_db_and_tables, get_async_session


@pytest.fixture()
def client(monkeypatch):
    engine = build_engine("sqlite+aiosqlite://")
    session_maker = async_sessionmaker(engine, expire_on_commit=False)

    async def create_test_tables():
        await create_db_and_tables(engine)

    async def override_get_async_session():
        async with session_maker() as session:
            yield session

    # Startup creates the tables on the test engine, inside the client's event loop
    monkeypatch.setattr(main, "create_db_and_tables", create_test_tables)
    main.app.dependency_overrides[get_async_session] = override_get_async_session
    with TestClient(main.app) as test_client:
        yield test_client
        test_client.portal.call(engine.dispose)
    main.app.dependency_overrides.clear()


@pytest.fixture()
def headers():
    return {"X-User-Id": "alice"}
