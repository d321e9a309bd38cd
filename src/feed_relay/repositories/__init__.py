"""Data access layer."""

from .connection_repo import ConnectionRepository

__all__ = ["ConnectionRepository"]
