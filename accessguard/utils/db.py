"""Async database session management."""
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from accessguard.config import get_settings

settings = get_settings()

engine_options: dict[str, Any] = {"echo": settings.DEBUG}
if settings.database_type == "sqlite":
    # aiosqlite connections are bound to the loop that opened them
    engine_options["connect_args"] = {"check_same_thread": False}
    engine_options["poolclass"] = NullPool

# Create async engine
engine = create_async_engine(settings.DATABASE_URL, **engine_options)

# Create async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency injection for async database sessions."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_all() -> None:
    """Create every table known to the ORM metadata."""
    from accessguard.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

