"""Data access helpers for the connections embedded in a feed."""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import insert, literal, null, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import Executable

from feed_relay.core.exceptions import ConnectionNotPersistedError
from feed_relay.models.feed import Feed
from feed_relay.models.feed_connection import FeedConnection, FeedConnectionType
from feed_relay.schemas.connection import (
    Connection,
    ConnectionUpdate,
    DiscordChannelConnection,
    DiscordChannelConnectionDetails,
    DiscordWebhookConnection,
    DiscordWebhookConnectionDetails,
)

__all__ = ["ConnectionRepository", "connection_patch_values", "to_connection"]

logger = logging.getLogger(__name__)

_INSERT_COLUMNS = (
    "id",
    "feed_id",
    "connection_type",
    "name",
    "filters",
    "channel_id",
    "webhook",
    "content",
    "embeds",
    "format_options",
    "custom_placeholders",
)


def to_connection(row: FeedConnection) -> Connection:
    """Convert a FeedConnection row into its typed connection variant."""
    details: dict[str, Any] = {
        "content": row.content,
        "embeds": row.embeds or [],
        "format_options": row.format_options,
        "custom_placeholders": row.custom_placeholders or [],
    }
    if row.connection_type == FeedConnectionType.DISCORD_WEBHOOK.value:
        return DiscordWebhookConnection(
            id=row.id,
            name=row.name,
            filters=row.filters,
            details=DiscordWebhookConnectionDetails.model_validate(
                {**details, "webhook": row.webhook}
            ),
        )
    return DiscordChannelConnection(
        id=row.id,
        name=row.name,
        filters=row.filters,
        details=DiscordChannelConnectionDetails.model_validate(
            {**details, "channel": {"id": row.channel_id}}
        ),
    )


def _row_values(connection: Connection) -> dict[str, Any]:
    details = connection.details
    channel = getattr(details, "channel", None)
    webhook = getattr(details, "webhook", None)
    return {
        "id": connection.id,
        "connection_type": connection.connection_type.value,
        "name": connection.name,
        "filters": connection.filters,
        "channel_id": channel.id if channel else None,
        "webhook": webhook.model_dump() if webhook else None,
        "content": details.content,
        "embeds": [embed.model_dump(exclude_none=True) for embed in details.embeds],
        "format_options": (
            details.format_options.model_dump() if details.format_options else None
        ),
        "custom_placeholders": [
            placeholder.model_dump() for placeholder in details.custom_placeholders
        ],
    }


def connection_patch_values(patch: ConnectionUpdate) -> dict[str, Any]:
    """Translate a partial update into column assignments.

    Only fields explicitly set on the patch produce an assignment, so an
    absent field keeps its stored value while an explicit ``None`` clears a
    nullable one. ``name`` and ``details.channel`` can be replaced but never
    cleared.
    """
    values: dict[str, Any] = {}
    if "name" in patch.model_fields_set and patch.name is not None:
        values["name"] = patch.name
    if "filters" in patch.model_fields_set:
        values["filters"] = patch.filters

    details = patch.details
    if details is None:
        return values

    fields = details.model_fields_set
    if "channel" in fields and details.channel is not None:
        values["channel_id"] = details.channel.id
    if "webhook" in fields:
        webhook = details.webhook
        # An empty webhook id drops the whole object, not just the id.
        values["webhook"] = webhook.model_dump() if webhook and webhook.id else None
    if "content" in fields:
        values["content"] = details.content
    if "embeds" in fields:
        values["embeds"] = [embed.model_dump(exclude_none=True) for embed in details.embeds or []]
    if "format_options" in fields:
        values["format_options"] = (
            details.format_options.model_dump() if details.format_options else None
        )
    if "custom_placeholders" in fields:
        values["custom_placeholders"] = [
            placeholder.model_dump() for placeholder in details.custom_placeholders or []
        ]
    return values


class ConnectionRepository:
    """Persists connections as rows owned by exactly one feed.

    Every mutation is a single conditional statement; there is no
    application-level read-modify-write.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with a request-scoped async session."""
        self.session = session

    async def append_connection(self, feed_id: str, connection: Connection) -> Connection:
        """Attach a new connection to a feed and return it as stored.

        The insert selects from the feed table, so nothing is written when the
        feed does not exist.

        Raises:
            ConnectionNotPersistedError: If the record is missing after the write.
        """
        table = FeedConnection.__table__
        values = _row_values(connection)
        source_columns = []
        for name in _INSERT_COLUMNS:
            if name == "feed_id":
                source_columns.append(Feed.id.label(name))
            elif values[name] is None:
                source_columns.append(null().label(name))
            else:
                source_columns.append(literal(values[name], table.c[name].type).label(name))

        await self._write(
            insert(table).from_select(
                list(_INSERT_COLUMNS),
                select(*source_columns).where(Feed.id == feed_id),
            )
        )

        created = await self._find_row(feed_id, connection.id, connection.connection_type)
        if created is None:
            logger.error(
                "Connection %s was not found on feed %s after insert", connection.id, feed_id
            )
            raise ConnectionNotPersistedError(
                "Connection was not successfully created. "
                "Check insertion statement and schemas are correct."
            )
        logger.info(
            "Created %s connection %s on feed %s",
            connection.connection_type.value,
            connection.id,
            feed_id,
        )
        return to_connection(created)

    async def patch_connection(
        self,
        feed_id: str,
        connection_id: str,
        patch: ConnectionUpdate,
        connection_type: FeedConnectionType = FeedConnectionType.DISCORD_CHANNEL,
    ) -> Connection:
        """Merge the provided fields into one connection of one feed.

        Raises:
            ConnectionNotPersistedError: If the record is missing after the write.
        """
        values = connection_patch_values(patch)
        if values:
            table = FeedConnection.__table__
            await self._write(
                update(table)
                .where(
                    table.c.feed_id == feed_id,
                    table.c.id == connection_id,
                    table.c.connection_type == connection_type.value,
                )
                .values({key: null() if value is None else value for key, value in values.items()})
            )

        updated = await self._find_row(feed_id, connection_id, connection_type)
        if updated is None:
            logger.error(
                "Connection %s was not found on feed %s after update", connection_id, feed_id
            )
            raise ConnectionNotPersistedError(
                "Connection was not successfully updated. "
                "Check insertion statement and schemas are correct."
            )
        logger.info("Updated connection %s on feed %s (%s)", connection_id, feed_id, sorted(values))
        return to_connection(updated)

    async def get_connection(self, feed_id: str, connection_id: str) -> Connection | None:
        """Return one connection of a feed, or None if it does not exist."""
        result = await self.session.scalars(
            select(FeedConnection)
            .where(FeedConnection.feed_id == feed_id, FeedConnection.id == connection_id)
            .execution_options(populate_existing=True)
        )
        row = result.first()
        return to_connection(row) if row is not None else None

    async def list_connections(self, feed_id: str) -> list[Connection]:
        """Return every connection of a feed in storage order."""
        result = await self.session.scalars(
            select(FeedConnection)
            .where(FeedConnection.feed_id == feed_id)
            .order_by(FeedConnection.seq)
            .execution_options(populate_existing=True)
        )
        return [to_connection(row) for row in result]

    async def _write(self, stmt: Executable) -> None:
        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise

    async def _find_row(
        self,
        feed_id: str,
        connection_id: str,
        connection_type: FeedConnectionType,
    ) -> FeedConnection | None:
        result = await self.session.scalars(
            select(FeedConnection)
            .where(
                FeedConnection.feed_id == feed_id,
                FeedConnection.id == connection_id,
                FeedConnection.connection_type == connection_type.value,
            )
            .execution_options(populate_existing=True)
        )
        return result.first()
