"""Connection-related Pydantic schemas."""
from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from feed_relay.models.feed_connection import FeedConnectionType


class ChannelRef(BaseModel):
    """Reference to a Discord text channel."""

    id: str = Field(..., min_length=1)


class WebhookDetails(BaseModel):
    """Webhook destination together with the token used to post through it."""

    id: str
    name: str | None = None
    icon_url: str | None = None
    token: str | None = None


class EmbedField(BaseModel):
    name: str
    value: str
    inline: bool = False


class DiscordEmbed(BaseModel):
    """Embed template rendered for each delivered article."""

    title: str | None = None
    description: str | None = None
    url: str | None = None
    color: int | None = Field(None, ge=0, le=0xFFFFFF)
    timestamp: str | None = None
    footer_text: str | None = None
    footer_icon_url: str | None = None
    image_url: str | None = None
    thumbnail_url: str | None = None
    author_name: str | None = None
    author_url: str | None = None
    author_icon_url: str | None = None
    fields: list[EmbedField] = Field(default_factory=list)


class FormatOptions(BaseModel):
    """Date rendering options applied to article placeholders."""

    date_format: str | None = None
    date_timezone: str | None = None


class CustomPlaceholderStep(BaseModel):
    regex_search: str = Field(..., min_length=1)
    replacement_string: str | None = None


class CustomPlaceholder(BaseModel):
    """A placeholder derived from another by applying regex replacements in order."""

    id: str
    source_placeholder: str
    steps: list[CustomPlaceholderStep]


class DiscordChannelConnectionDetails(BaseModel):
    channel: ChannelRef
    content: str | None = None
    embeds: list[DiscordEmbed] = Field(default_factory=list)
    format_options: FormatOptions | None = None
    custom_placeholders: list[CustomPlaceholder] = Field(default_factory=list)


class DiscordWebhookConnectionDetails(BaseModel):
    webhook: WebhookDetails | None
    content: str | None = None
    embeds: list[DiscordEmbed] = Field(default_factory=list)
    format_options: FormatOptions | None = None
    custom_placeholders: list[CustomPlaceholder] = Field(default_factory=list)


class DiscordChannelConnection(BaseModel):
    """Connection delivering articles straight into a channel."""

    connection_type: ClassVar[FeedConnectionType] = FeedConnectionType.DISCORD_CHANNEL

    id: str
    name: str
    filters: dict[str, Any] | None = None
    details: DiscordChannelConnectionDetails

    model_config = ConfigDict(from_attributes=True)


class DiscordWebhookConnection(BaseModel):
    """Connection delivering articles through a guild webhook."""

    connection_type: ClassVar[FeedConnectionType] = FeedConnectionType.DISCORD_WEBHOOK

    id: str
    name: str
    filters: dict[str, Any] | None = None
    details: DiscordWebhookConnectionDetails

    model_config = ConfigDict(from_attributes=True)


Connection = DiscordChannelConnection | DiscordWebhookConnection


class ConnectionDetailsUpdate(BaseModel):
    """Partial details update. Fields that are not set are left unchanged.

    Setting ``webhook`` with an empty id removes the stored webhook object.
    """

    channel: ChannelRef | None = None
    webhook: WebhookDetails | None = None
    content: str | None = None
    embeds: list[DiscordEmbed] | None = None
    format_options: FormatOptions | None = None
    custom_placeholders: list[CustomPlaceholder] | None = None


class ConnectionUpdate(BaseModel):
    """Partial connection update. Fields that are not set are left unchanged."""

    name: str | None = Field(None, min_length=1)
    filters: dict[str, Any] | None = None
    details: ConnectionDetailsUpdate | None = None


class WebhookConnectionTarget(BaseModel):
    """Webhook chosen by the user when creating a webhook connection."""

    id: str = Field(..., min_length=1)
    name: str | None = None
    icon_url: str | None = None
