# src/feed_relay/models/feed_connection.py
"""SQLAlchemy model for delivery destinations attached to a feed."""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feed_relay.db.session import Base

if TYPE_CHECKING:
    from feed_relay.models.feed import Feed


class FeedConnectionType(str, enum.Enum):
    """Destination variants a connection can deliver to."""

    DISCORD_CHANNEL = "DISCORD_CHANNEL"
    DISCORD_WEBHOOK = "DISCORD_WEBHOOK"


class FeedConnection(Base):
    """A single destination owned by exactly one feed.

    Rows are ordered by ``seq``, which reflects storage insertion order.
    The details payload is split into columns so partial updates can target
    each key independently.
    """

    __tablename__ = "feed_connection"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(24), unique=True, nullable=False)
    feed_id: Mapped[str] = mapped_column(
        String(24),
        ForeignKey("feed.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    connection_type: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    filters: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Details
    channel_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    # {"id", "name", "icon_url", "token"} for webhook connections.
    webhook: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    embeds: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    format_options: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    custom_placeholders: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    feed: Mapped[Feed] = relationship("Feed", back_populates="connections")
