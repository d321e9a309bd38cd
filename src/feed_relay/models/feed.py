# src/feed_relay/models/feed.py
"""SQLAlchemy models for feed subscriptions and their failure bookkeeping."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, CheckConstraint, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feed_relay.db.session import Base
from feed_relay.db.time import UTCDateTime, utcnow
from feed_relay.utils.ids import generate_object_id

if TYPE_CHECKING:
    from feed_relay.models.feed_connection import FeedConnection


class Feed(Base):
    """A polled source URL delivered into a Discord guild.

    Health status is not stored here; it is derived on read from the
    ``fail_record`` table keyed by URL.
    """

    __tablename__ = "feed"

    id: Mapped[str] = mapped_column(String(24), primary_key=True, default=generate_object_id)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    guild: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    channel: Mapped[str] = mapped_column(String(32), nullable=False)
    text: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Embedded object {"id", "name"?, "avatar"?}; NULL when no webhook is set.
    webhook: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    format_tables: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    img_links_existence: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    img_previews: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    added_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
    )

    connections: Mapped[list[FeedConnection]] = relationship(
        "FeedConnection",
        back_populates="feed",
        cascade="all, delete-orphan",
        order_by="FeedConnection.seq",
    )


class FailRecord(Base):
    """Most recent fetch failure for a source URL."""

    __tablename__ = "fail_record"

    url: Mapped[str] = mapped_column(Text, primary_key=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    failed_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
    )
    alerted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class FeedSchedule(Base):
    """Named refresh interval applied to feeds by id or URL keyword."""

    __tablename__ = "feed_schedule"
    __table_args__ = (
        CheckConstraint("refresh_rate_minutes > 0", name="ck_feed_schedule_refresh_rate_positive"),
    )

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    keywords: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    feed_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    refresh_rate_minutes: Mapped[float] = mapped_column(Float, nullable=False)

    def matches(self, feed_id: str, url: str) -> bool:
        """Return True if this schedule applies to the given feed."""
        if feed_id in (self.feed_ids or []):
            return True
        lowered = url.lower()
        return any(keyword.lower() in lowered for keyword in self.keywords or [] if keyword)
