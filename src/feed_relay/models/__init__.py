# src/feed_relay/models/__init__.py
"""SQLAlchemy models for the Feed Relay core."""

from .delivery_record import ArticleDeliveryStatus, DeliveryRecord
from .feed import FailRecord, Feed, FeedSchedule
from .feed_connection import FeedConnection, FeedConnectionType

__all__ = [
    "ArticleDeliveryStatus", "DeliveryRecord",
    "FailRecord", "Feed", "FeedSchedule",
    "FeedConnection", "FeedConnectionType",
]
