# src/feed_relay/schemas/__init__.py
"""
Pydantic schemas and value types exchanged with the Feed Relay services.
"""

from .connection import (
    Connection,
    ConnectionDetailsUpdate,
    ConnectionUpdate,
    DiscordChannelConnection,
    DiscordWebhookConnection,
    WebhookConnectionTarget,
)
from .delivery import ArticleDeliveryOutcome, Failed, FilteredOut, PendingDelivery, Rejected, Sent
from .feed import DetailedFeed, FeedFilter, FeedStatus, FeedUpdate, FeedWebhookUpdate

__all__ = [
    "Connection", "ConnectionDetailsUpdate", "ConnectionUpdate",
    "DiscordChannelConnection", "DiscordWebhookConnection", "WebhookConnectionTarget",
    "ArticleDeliveryOutcome", "Failed", "FilteredOut", "PendingDelivery", "Rejected", "Sent",
    "DetailedFeed", "FeedFilter", "FeedStatus", "FeedUpdate", "FeedWebhookUpdate",
]
