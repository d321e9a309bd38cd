"""Async engine and session factory for the Feed Relay store."""

from __future__ import annotations

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from feed_relay.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Model modules must be imported for create_all to see their tables.
import feed_relay.models  # noqa: E402,F401

engine = create_async_engine(
    settings.async_database_url,
    pool_pre_ping=True,
    echo=settings.sql_debug,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield a request-scoped session that is closed afterwards."""
    async with AsyncSessionLocal() as session:
        yield session


async def create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
