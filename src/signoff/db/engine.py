"""Async SQLAlchemy engine and session creation."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from signoff.config import settings


def create_db_engine(url: str | None = None):
    """Create an async SQLAlchemy engine.

    SQLite does not support pool_size / max_overflow, so pool sizing is only
    applied to server databases.
    """
    db_url = url or settings.effective_database_url
    engine_kwargs: dict = {"echo": False}
    if "sqlite" not in db_url:
        engine_kwargs.update(pool_size=10, max_overflow=20)
    return create_async_engine(db_url, **engine_kwargs)


def create_session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
