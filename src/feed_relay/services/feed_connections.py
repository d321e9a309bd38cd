"""Orchestration of destination verification and connection persistence."""
from __future__ import annotations

import logging

from feed_relay.models.feed_connection import FeedConnectionType
from feed_relay.repositories.connection_repo import ConnectionRepository
from feed_relay.schemas.connection import (
    ChannelRef,
    ConnectionUpdate,
    DiscordChannelConnection,
    DiscordChannelConnectionDetails,
    DiscordWebhookConnection,
    DiscordWebhookConnectionDetails,
    WebhookConnectionTarget,
    WebhookDetails,
)
from feed_relay.services.destination_verifier import DestinationVerifier
from feed_relay.utils.ids import generate_object_id

logger = logging.getLogger(__name__)


class FeedConnectionsService:
    """Creates and updates the Discord destinations of a feed.

    Every destination is verified against the owning guild before anything is
    written. None of the operations are idempotent: retrying a create adds a
    second connection with a new id.
    """

    def __init__(self, repo: ConnectionRepository, verifier: DestinationVerifier) -> None:
        self.repo = repo
        self.verifier = verifier

    async def create_discord_channel_connection(
        self,
        *,
        feed_id: str,
        name: str,
        channel_id: str,
        access_token: str,
        guild_id: str,
    ) -> DiscordChannelConnection:
        """Verify the channel and attach a channel connection with no embeds.

        Raises:
            ChannelNotFoundError, ChannelPermissionDeniedError, ChannelNotOwnedError:
                If the channel cannot be used for this guild.
            ConnectionNotPersistedError: If the write could not be read back.
        """
        await self.verifier.verify_channel_usable(access_token, channel_id, guild_id)

        connection = DiscordChannelConnection(
            id=generate_object_id(),
            name=name,
            details=DiscordChannelConnectionDetails(
                channel=ChannelRef(id=channel_id),
                embeds=[],
            ),
        )
        return await self.repo.append_connection(feed_id, connection)

    async def update_discord_channel_connection(
        self,
        feed_id: str,
        connection_id: str,
        *,
        access_token: str,
        guild_id: str,
        updates: ConnectionUpdate,
    ) -> DiscordChannelConnection:
        """Apply a partial update to a channel connection.

        A new channel is verified against the connection's existing guild, so a
        connection can never be moved outside of it.
        """
        if updates.details is not None and updates.details.channel is not None:
            await self.verifier.verify_channel_usable(
                access_token,
                updates.details.channel.id,
                guild_id,
            )

        return await self.repo.patch_connection(
            feed_id,
            connection_id,
            updates,
            connection_type=FeedConnectionType.DISCORD_CHANNEL,
        )

    async def create_discord_webhook_connection(
        self,
        *,
        access_token: str,
        feed_id: str,
        guild_id: str,
        name: str,
        webhook: WebhookConnectionTarget,
    ) -> DiscordWebhookConnection:
        """Verify the webhook and attach a connection that posts through it.

        The webhook token fetched from Discord is stored alongside the display
        name and icon chosen by the user.
        """
        found = await self.verifier.verify_webhook_usable(webhook.id, guild_id, access_token)

        connection = DiscordWebhookConnection(
            id=generate_object_id(),
            name=name,
            details=DiscordWebhookConnectionDetails(
                webhook=WebhookDetails(
                    id=webhook.id,
                    name=webhook.name,
                    icon_url=webhook.icon_url,
                    token=found.token,
                ),
                embeds=[],
            ),
        )
        logger.debug("Webhook %s verified for guild %s", webhook.id, guild_id)
        return await self.repo.append_connection(feed_id, connection)
