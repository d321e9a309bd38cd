"""Verification that a Discord destination may receive a feed's articles.

Each failure is raised as a distinct exception so callers can map it to a
user-facing message. Remote failures other than the ones translated here
propagate unchanged.
"""

from __future__ import annotations

import logging

from feed_relay.core.exceptions import (
    ChannelNotFoundError,
    ChannelNotOwnedError,
    ChannelPermissionDeniedError,
    WebhookMissingUserPermissionError,
    WebhookNonexistentError,
    WebhookNotOwnedError,
    WebhookWrongTypeError,
)
from feed_relay.services.discord_api import (
    DiscordAPIClient,
    DiscordAPIError,
    DiscordChannel,
    DiscordWebhook,
)
from feed_relay.services.discord_auth import DiscordAuthService

logger = logging.getLogger(__name__)

HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404


class DestinationVerifier:
    """Confirms channels and webhooks exist, are usable and belong to a guild."""

    def __init__(self, api: DiscordAPIClient, auth: DiscordAuthService) -> None:
        self.api = api
        self.auth = auth

    async def verify_channel_usable(
        self,
        access_token: str,
        channel_id: str,
        expected_guild_id: str,
    ) -> DiscordChannel:
        """Return the channel if the user can see it and it belongs to the guild.

        Raises:
            ChannelNotFoundError: Discord reports the channel as missing.
            ChannelPermissionDeniedError: Discord refuses access to the channel.
            ChannelNotOwnedError: The channel is in a different guild.
        """
        try:
            channel = await self.api.get_channel(access_token, channel_id)
        except DiscordAPIError as err:
            if err.status_code == HTTP_NOT_FOUND:
                raise ChannelNotFoundError(f"Discord channel {channel_id} does not exist") from err
            if err.status_code == HTTP_FORBIDDEN:
                raise ChannelPermissionDeniedError(
                    f"Missing permissions to access Discord channel {channel_id}"
                ) from err
            raise

        if channel.guild_id != expected_guild_id:
            logger.warning(
                "Channel %s belongs to guild %s, not %s",
                channel_id,
                channel.guild_id,
                expected_guild_id,
            )
            raise ChannelNotOwnedError(
                f"Discord channel {channel_id} is not owned by guild {expected_guild_id}"
            )
        return channel

    async def verify_webhook_usable(
        self,
        webhook_id: str,
        expected_guild_id: str,
        access_token: str,
    ) -> DiscordWebhook:
        """Return the webhook after checking existence, type, ownership and user rights.

        The checks run in that order and the first failure stops the chain.
        """
        webhook = await self.api.get_webhook(webhook_id)
        if webhook is None:
            raise WebhookNonexistentError(f"Discord webhook {webhook_id} does not exist")

        if not self.api.can_be_used_by_bot(webhook):
            raise WebhookWrongTypeError(
                f"Discord webhook {webhook_id} is a different type and is not operable "
                "by bot to send messages"
            )

        if webhook.guild_id != expected_guild_id:
            logger.warning(
                "Webhook %s belongs to guild %s, not %s",
                webhook_id,
                webhook.guild_id,
                expected_guild_id,
            )
            raise WebhookNotOwnedError(
                f"Discord webhook {webhook_id} is not owned by guild {expected_guild_id}"
            )

        if not await self.auth.user_manages_guild(access_token, expected_guild_id):
            raise WebhookMissingUserPermissionError(
                f"User does not manage guild of webhook {webhook_id}"
            )
        return webhook
