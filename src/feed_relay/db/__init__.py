# src/feed_relay/db/__init__.py
"""Database configuration and utilities."""

from .session import AsyncSessionLocal, get_session
from .time import UTCDateTime, utcnow

__all__ = ["AsyncSessionLocal", "UTCDateTime", "get_session", "utcnow"]
