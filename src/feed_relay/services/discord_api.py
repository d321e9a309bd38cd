"""HTTP client for the Discord REST API.

Only the handful of endpoints needed to verify delivery destinations are
wrapped here. Non-success responses are raised as ``DiscordAPIError`` with
the HTTP status preserved so callers can distinguish 403 from 404.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from feed_relay.core.settings import settings

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404
HTTP_MULTIPLE_CHOICES = 300

# https://discord.com/developers/docs/resources/webhook#webhook-object-webhook-types
WEBHOOK_TYPE_INCOMING = 1


class DiscordAPIError(RuntimeError):
    """Raised when Discord responds with a non-success status code."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class DiscordAPIConfig:
    """Immutable configuration for Discord API access."""

    base_url: str
    bot_token: str | None
    timeout_seconds: float


@dataclass(frozen=True)
class DiscordChannel:
    id: str
    guild_id: str | None
    name: str | None = None
    type: int | None = None


@dataclass(frozen=True)
class DiscordWebhook:
    id: str
    type: int
    guild_id: str | None
    channel_id: str | None = None
    name: str | None = None
    token: str | None = None
    application_id: str | None = None


@dataclass(frozen=True)
class DiscordPartialGuild:
    """Guild entry from the current user's guild list."""

    id: str
    owner: bool = False
    permissions: int = 0
    name: str | None = None


def load_discord_config() -> DiscordAPIConfig:
    """Build configuration object from global settings."""
    return DiscordAPIConfig(
        base_url=settings.discord_api_base_url,
        bot_token=settings.discord_bot_token,
        timeout_seconds=float(settings.discord_http_timeout_seconds),
    )


class DiscordAPIClient:
    """Async wrapper around the Discord REST endpoints used by this service."""

    def __init__(
        self,
        config: DiscordAPIConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_discord_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, authorization: str) -> Any:
        client = await self._ensure_client()
        logger.debug("GET %s", path)
        response = await client.get(path, headers={"Authorization": authorization})
        if response.status_code >= HTTP_MULTIPLE_CHOICES:
            raise DiscordAPIError(
                f"Discord responded with {response.status_code} for GET {path}",
                status_code=response.status_code,
            )
        return response.json()

    def _bot_authorization(self) -> str:
        return f"Bot {self.config.bot_token or ''}"

    async def get_channel(self, access_token: str, channel_id: str) -> DiscordChannel:
        """Fetch a channel using the user's OAuth2 access token.

        Raises:
            DiscordAPIError: For any non-success response, including 403 and 404.
        """
        payload = await self._get(f"/channels/{channel_id}", f"Bearer {access_token}")
        return DiscordChannel(
            id=str(payload["id"]),
            guild_id=payload.get("guild_id"),
            name=payload.get("name"),
            type=payload.get("type"),
        )

    async def get_webhook(self, webhook_id: str) -> DiscordWebhook | None:
        """Fetch a webhook with the bot credential, or None if it does not exist."""
        try:
            payload = await self._get(f"/webhooks/{webhook_id}", self._bot_authorization())
        except DiscordAPIError as err:
            if err.status_code == HTTP_NOT_FOUND:
                return None
            raise

        return DiscordWebhook(
            id=str(payload["id"]),
            type=int(payload.get("type", 0)),
            guild_id=payload.get("guild_id"),
            channel_id=payload.get("channel_id"),
            name=payload.get("name"),
            token=payload.get("token"),
            application_id=payload.get("application_id"),
        )

    async def get_user_guilds(self, access_token: str) -> list[DiscordPartialGuild]:
        """Return the guilds the token's user belongs to."""
        payload = await self._get("/users/@me/guilds", f"Bearer {access_token}")
        return [
            DiscordPartialGuild(
                id=str(entry["id"]),
                owner=bool(entry.get("owner", False)),
                permissions=int(entry.get("permissions", 0)),
                name=entry.get("name"),
            )
            for entry in payload
        ]

    @staticmethod
    def can_be_used_by_bot(webhook: DiscordWebhook) -> bool:
        """Return True if the bot can post messages through this webhook."""
        return webhook.type == WEBHOOK_TYPE_INCOMING

