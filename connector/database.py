"""Database engine and session management for the reference commerce store."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from connector.config import settings
from connector.models.records import Base


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Ledger reads happen after every commit; keep loaded state usable.
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = create_async_engine(settings.database_url, echo=False)
async_session = create_session_factory(engine)


async def init_db(target: AsyncEngine = engine):
    """Create all tables. Safe to call multiple times (CREATE IF NOT EXISTS)."""
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db():
    await engine.dispose()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        yield session
