# tests/conftest.py
from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime
from itertools import count
from typing import Any
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from feed_relay.db.session import Base
from feed_relay.db.time import utcnow
from feed_relay.models import FailRecord, Feed
from feed_relay.repositories.connection_repo import ConnectionRepository
from feed_relay.services.destination_verifier import DestinationVerifier
from feed_relay.services.discord_api import DiscordAPIClient, DiscordChannel, DiscordWebhook
from feed_relay.services.discord_auth import DiscordAuthService

TEST_DB_URL = "sqlite+aiosqlite://"
GUILD_ID = "guild-1"

_FEED_COUNTER = count(1)

MakeFeed = Callable[..., Awaitable[Feed]]
MakeFailRecord = Callable[..., Awaitable[FailRecord]]


@pytest_asyncio.fixture()
async def engine() -> AsyncIterator[AsyncEngine]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture()
def make_feed(db_session: AsyncSession) -> MakeFeed:
    """Return a factory that persists a feed with overridable fields."""

    async def _make_feed(**overrides: Any) -> Feed:
        number = next(_FEED_COUNTER)
        data: dict[str, Any] = {
            "title": f"feed-{number}",
            "url": f"https://example.com/feed-{number}.xml",
            "guild": GUILD_ID,
            "channel": "channel-1",
        }
        data.update(overrides)
        feed = Feed(**data)
        db_session.add(feed)
        await db_session.commit()
        return feed

    return _make_feed


@pytest.fixture()
def make_fail_record(db_session: AsyncSession) -> MakeFailRecord:
    """Return a factory that persists a fail record for a URL."""

    async def _make_fail_record(
        url: str,
        *,
        failed_at: datetime | None = None,
        reason: str = "test-fail-reason",
    ) -> FailRecord:
        record = FailRecord(
            url=url,
            reason=reason,
            failed_at=failed_at or utcnow(),
            alerted=False,
        )
        db_session.add(record)
        await db_session.commit()
        return record

    return _make_fail_record


@pytest.fixture()
def connection_repo(db_session: AsyncSession) -> ConnectionRepository:
    return ConnectionRepository(db_session)


@pytest.fixture()
def mock_discord_api() -> MagicMock:
    """Discord client double whose async methods are AsyncMocks."""
    api = MagicMock(spec=DiscordAPIClient)
    api.get_channel.return_value = DiscordChannel(id="channel-1", guild_id=GUILD_ID)
    api.get_webhook.return_value = DiscordWebhook(
        id="webhook-1",
        type=1,
        guild_id=GUILD_ID,
        token="webhook-token",
    )
    api.can_be_used_by_bot.return_value = True
    return api


@pytest.fixture()
def mock_discord_auth() -> MagicMock:
    auth = MagicMock(spec=DiscordAuthService)
    auth.user_manages_guild.return_value = True
    return auth


@pytest.fixture()
def verifier(mock_discord_api: MagicMock, mock_discord_auth: MagicMock) -> DestinationVerifier:
    return DestinationVerifier(mock_discord_api, mock_discord_auth)
