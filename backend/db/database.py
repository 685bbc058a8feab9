from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine; in-memory SQLite shares one connection."""
    if database_url.startswith("sqlite") and (database_url.endswith("://") or ":memory:" in database_url):
        return create_async_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(database_url, echo=echo)


engine = build_engine(settings.database_url, echo=settings.database_echo)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


def _import_models():
    # Registers every table on Base.metadata
    from db import category, location  # noqa: F401
    from db.inventory import activity, item, stock  # noqa: F401


async def create_db_and_tables(bind: Optional[AsyncEngine] = None):
    _import_models()
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db_and_tables(bind: Optional[AsyncEngine] = None):
    _import_models()
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session
