# cart_recovery/database.py

from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from cart_recovery.core.config import get_settings

Base = declarative_base()

engine: Optional[AsyncEngine] = None
async_session: Optional[async_sessionmaker] = None


def configure_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Create the shared engine and session factory (once per process)."""
    global engine, async_session

    url = database_url or get_settings().async_database_url
    if not url:
        raise ValueError("DATABASE_URL is not set in environment variables")

    kwargs = {"echo": False, "future": True}
    if url.startswith("postgresql"):
        kwargs.update(pool_size=10, max_overflow=20, pool_timeout=30, pool_recycle=1800)

    engine = create_async_engine(url, **kwargs)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return engine


def get_sessionmaker() -> async_sessionmaker:
    if async_session is None:
        configure_engine()
    return async_session


async def init_db():
    """Create tables that do not exist yet. There are no migrations."""
    # Models must be imported so they register with Base
    from cart_recovery import models  # noqa: F401

    if engine is None:
        configure_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine():
    global engine, async_session
    if engine is not None:
        await engine.dispose()
    engine = None
    async_session = None


@asynccontextmanager
async def get_session() -> AsyncSession:
    session = get_sessionmaker()()
    try:
        yield session
    finally:
        await session.close()
