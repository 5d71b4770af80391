"""
Database Session Management with Connection Pooling

This module builds the async engine and session factory. Both are created
once at startup and carried by ServiceResources; nothing here is a
module-level global.

Key Features:
- Database abstraction: Easy to switch between SQLite, PostgreSQL, etc.
- Async session management: Proper async context management
- Error handling: Automatic rollback on exceptions
"""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from shortlink.db.sqlite_adapter import get_database_adapter
from shortlink.db import models  # noqa: F401  register tables on SQLModel.metadata


def build_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Create the async engine through the configured database adapter."""
    return get_database_adapter().create_engine(database_url, **kwargs)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,  # Prevents SQLAlchemy from expiring objects after commit
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create any missing tables (development and tests; production uses alembic)."""
    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function for FastAPI to get database session.

    This function:
    - Creates a new async session from the process-wide factory
    - Yields it to the endpoint
    - Commits on success, rolls back on exception
    - Closes session automatically (context manager handles it)
    """
    async with request.app.state.resources.session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
