# app/db/session.py

from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings


def make_engine(url: Optional[str] = None, **kwargs) -> AsyncEngine:
    """Async engine for ``url`` (defaults to the configured store)."""
    url = url or settings.async_db_uri
    if url.startswith("sqlite"):
        # aiosqlite runs the connection on a worker thread
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, **kwargs)


engine = make_engine()

# Request-scoped sessions; objects stay readable after commit for response models
AsyncSessionLocal = async_sessionmaker(
    engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


class Base(DeclarativeBase):
    pass


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency; anything left uncommitted is rolled back on close."""
    async with AsyncSessionLocal() as session:
        yield session
