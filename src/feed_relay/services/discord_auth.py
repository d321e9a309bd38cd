"""Authorization checks against a user's Discord guild memberships."""

from __future__ import annotations

import logging

from feed_relay.services.discord_api import DiscordAPIClient

logger = logging.getLogger(__name__)

# https://discord.com/developers/docs/topics/permissions#permissions-bitwise-permission-flags
PERMISSION_ADMINISTRATOR = 1 << 3
PERMISSION_MANAGE_CHANNELS = 1 << 4


class DiscordAuthService:
    """Answers whether an OAuth2 user may manage a guild's feeds."""

    def __init__(self, api: DiscordAPIClient) -> None:
        self.api = api

    async def user_manages_guild(self, access_token: str, guild_id: str) -> bool:
        """Return True if the user owns the guild or can manage its channels."""
        guilds = await self.api.get_user_guilds(access_token)
        guild = next((entry for entry in guilds if entry.id == guild_id), None)
        if guild is None:
            logger.debug("User is not a member of guild %s", guild_id)
            return False
        if guild.owner:
            return True
        return bool(guild.permissions & (PERMISSION_ADMINISTRATOR | PERMISSION_MANAGE_CHANNELS))
