# src/feed_relay/services/__init__.py
"""Business logic services for the Feed Relay core."""

from .delivery_records import DeliveryRecordService
from .destination_verifier import DestinationVerifier
from .discord_api import DiscordAPIClient, DiscordAPIError
from .discord_auth import DiscordAuthService
from .feed_connections import FeedConnectionsService
from .feeds import FeedsService

__all__ = [
    "DeliveryRecordService",
    "DestinationVerifier",
    "DiscordAPIClient",
    "DiscordAPIError",
    "DiscordAuthService",
    "FeedConnectionsService",
    "FeedsService",
]
